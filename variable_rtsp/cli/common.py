from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional, Sequence

from variable_rtsp import __version__
from variable_rtsp.core.logging_config import LOG_LEVELS

EXAMPLES = """\
examples:
  1. Create RTSP server out of the built-in pipeline:
     variable-rtsp-server -p 9099 -m /stream -i /dev/video0
  2. Create RTSP server out of a user created pipeline:
     variable-rtsp-server -u "videotestsrc name=source0 ! x264enc name=enc0 ! rtph264pay name=pay0 pt=96"
  3. Same as 2. but controlled through named pipes:
     variable-rtsp-server -u "..." --command-pipe /tmp/rtsp-control --status-pipe /tmp/rtsp-status
"""


def _non_negative_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("Value must be an integer") from exc
    if parsed < 0:
        raise argparse.ArgumentTypeError("Value must not be negative")
    return parsed


def _steps(value: str) -> int:
    parsed = _non_negative_int(value)
    if parsed < 2:
        raise argparse.ArgumentTypeError("Steps must be 2 or greater")
    return parsed


def _switch(value: str) -> bool:
    """``-e 0`` / ``-e 1`` as in the original command line."""
    return bool(_non_negative_int(value))


def build_parser() -> argparse.ArgumentParser:
    # Option defaults stay None so config-file values are only overridden by
    # options that were actually given.
    parser = argparse.ArgumentParser(
        prog="variable-rtsp-server",
        description="RTSP server whose encoder quality adapts to the number of connected clients",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")

    logging_group = parser.add_argument_group("logging")
    logging_group.add_argument(
        "-d", "--debug",
        type=_non_negative_int,
        default=0,
        help="Debug level; any value above 0 enables debug logging",
    )
    logging_group.add_argument(
        "--log-level",
        choices=sorted(LOG_LEVELS.keys()),
        default="info",
        help="Logging verbosity when --debug is not given",
    )
    logging_group.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Optional path to a rotating log file",
    )
    logging_group.add_argument(
        "--config",
        type=Path,
        default=None,
        help="key=value configuration file; command line options take precedence",
    )

    server = parser.add_argument_group("server")
    server.add_argument("-m", "--mount-point", dest="mount_point", default=None,
                        help="What URI to mount (default: /stream)")
    server.add_argument("-p", "--port", default=None,
                        help="Port to sink on (default: 9099)")
    server.add_argument("-u", "--user-pipeline", dest="user_pipeline", default=None,
                        help="User supplied pipeline; name elements source0, enc0 and pay0 "
                             "to take part in quality control")
    server.add_argument("-s", "--src-element", dest="src_element", default=None,
                        help="Video source element (default: v4l2src)")
    server.add_argument("-i", "--video-in", dest="video_in", default=None,
                        help="Input video device (default: /dev/video0)")

    quality = parser.add_argument_group("adaptive quality")
    quality.add_argument("-e", "--enable-variable-mode", dest="enable_variable_mode",
                         type=_switch, default=None,
                         help="Adapt quality to the number of clients: 1 on, 0 off (default: 1)")
    quality.add_argument("--steps", type=_steps, default=None,
                         help="Number of quality levels between the bounds (default: 5)")
    quality.add_argument("--min-bitrate", dest="min_bitrate", type=int, default=None,
                         help="Lowest bitrate in kbps (default: 1)")
    quality.add_argument("-b", "--max-bitrate", dest="max_bitrate", type=int, default=None,
                         help="Starting bitrate in kbps; 0 scales quant level instead (default: 10000)")
    quality.add_argument("-l", "--min-quant-lvl", dest="min_quant_lvl", type=int, default=None,
                         help="Starting (best) quant level, 0-51 (default: 0)")
    quality.add_argument("--max-quant-lvl", dest="max_quant_lvl", type=int, default=None,
                         help="Worst quant level, 0-51 (default: 51)")
    quality.add_argument("-c", "--config-interval", dest="config_interval",
                         type=_non_negative_int, default=None,
                         help="Interval in seconds to send SPS/PPS (default: 2)")
    quality.add_argument("-a", "--idr", type=_non_negative_int, default=None,
                         help="Interval between IDR frames (default: 0)")
    quality.add_argument("-r", "--msg-rate", dest="msg_rate", type=_non_negative_int, default=None,
                         help="Seconds between periodic reports; 0 disables them (default: 5)")

    ipc = parser.add_argument_group("ipc")
    ipc.add_argument("--command-pipe", dest="command_pipe", default=None,
                     help="Named pipe to read setparam/printbin/status commands from")
    ipc.add_argument("--status-pipe", dest="status_pipe", default=None,
                     help="Named pipe for command replies (default: stdout)")
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


__all__ = ["build_parser", "parse_args"]
