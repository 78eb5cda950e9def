import asyncio
import signal
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from variable_rtsp.cli.common import parse_args
from variable_rtsp.core.commands.command_handler import CommandHandler
from variable_rtsp.core.config import FILE_DEFAULTS, ServerConfig, SessionConfig, build_configs, merge_values
from variable_rtsp.core.config_loader import load_config_file
from variable_rtsp.core.errors import ConfigError, IpcError, PipelineError
from variable_rtsp.core.events import SessionEvent
from variable_rtsp.core.ipc.command_channel import CommandChannel
from variable_rtsp.core.ipc.status_channel import StatusChannel
from variable_rtsp.core.logging_config import configure_logging, level_for_debug
from variable_rtsp.core.logging_utils import get_module_logger
from variable_rtsp.core.pipeline.launch import build_launch
from variable_rtsp.core.session_controller import SessionController
from variable_rtsp.core.session_state import SessionState
from variable_rtsp.core.task_manager import AsyncTaskManager

logger = get_module_logger("Server")

EXIT_OK = 0
EXIT_CONFIG = 2
EXIT_RTSP = 3
EXIT_IPC = 4
EXIT_INTERRUPTED = 130

COMMAND_TASK_NAME = "command-poll"

BackendFactory = Callable[[ServerConfig, Callable[[SessionEvent], None]], Any]


def _default_backend(server_config: ServerConfig, on_event: Callable[[SessionEvent], None]) -> Any:
    from variable_rtsp.core.pipeline.gst_backend import GstRtspBackend

    return GstRtspBackend(server_config, on_event)


class VariableRtspServer:
    """Wires the RTSP backend, the session controller and the two pipes."""

    def __init__(
        self,
        server_config: ServerConfig,
        session_config: SessionConfig,
        backend_factory: Optional[BackendFactory] = None,
        status_channel: Optional[StatusChannel] = None,
    ) -> None:
        self.server_config = server_config
        self.session = SessionState(session_config)
        self.status_channel = status_channel or StatusChannel(server_config.status_pipe)
        self.task_manager = AsyncTaskManager("ServerTasks")
        self.backend = (backend_factory or _default_backend)(server_config, self._on_event)
        self.controller = SessionController(
            self.session, self.backend, self.status_channel.send, self.task_manager
        )
        self.handler = CommandHandler(self.session, self.backend, self.status_channel.send)
        self.command_channel: Optional[CommandChannel] = None
        if server_config.command_pipe:
            self.command_channel = CommandChannel(server_config.command_pipe)
        self._stop_event: Optional[asyncio.Event] = None
        self._started = False

    def _on_event(self, event: SessionEvent) -> None:
        self.controller.dispatch(event)

    def request_stop(self) -> None:
        if self._stop_event is not None and not self._stop_event.is_set():
            logger.info("Stop requested")
            self._stop_event.set()

    async def start(self) -> None:
        """Open the pipes and attach the RTSP server.

        Raises:
            IpcError: if the command pipe cannot be opened.
            PipelineError: if the RTSP server cannot be started.
        """
        self._stop_event = asyncio.Event()
        if self.command_channel is not None:
            self.command_channel.open()
        self.status_channel.prepare()

        self.backend.start()
        self._started = True

        if self.command_channel is not None:
            self.task_manager.create(
                self.command_channel.serve(self.handler.handle_line, self.server_config.poll_interval),
                name=COMMAND_TASK_NAME,
            )

    async def wait_closed(self) -> None:
        if self._stop_event is None:
            return
        await self._stop_event.wait()

    async def stop(self) -> None:
        await self.task_manager.shutdown()
        if self._started:
            self.backend.stop()
            self._started = False
        if self.command_channel is not None:
            self.command_channel.close()
        self.status_channel.close()
        logger.info("Server stopped")

    async def run(self) -> int:
        loop = asyncio.get_running_loop()
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop)
                installed.append(sig)
            except (NotImplementedError, RuntimeError):
                pass

        try:
            await self.start()
            await self.wait_closed()
            return EXIT_OK
        except IpcError as exc:
            logger.error("%s", exc)
            return EXIT_IPC
        except PipelineError as exc:
            logger.error("%s", exc)
            return EXIT_RTSP
        except ConfigError as exc:
            logger.error("%s", exc)
            return EXIT_CONFIG
        finally:
            await self.stop()
            for sig in installed:
                loop.remove_signal_handler(sig)


def load_configs(args: Any) -> tuple[ServerConfig, SessionConfig]:
    """Merge defaults, the optional config file and CLI options.

    Raises:
        ConfigError: on inconsistent bounds, steps or launch description.
    """
    file_values = {}
    if args.config is not None:
        path = Path(args.config)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        file_values = load_config_file(path, FILE_DEFAULTS)
    server_config, session_config = build_configs(merge_values(file_values, args))
    build_launch(server_config)
    return server_config, session_config


def _install_glib_policy() -> None:
    # GStreamer signals are dispatched by the GLib main context; running asyncio
    # on top of it keeps everything on one thread.
    try:
        from gi.events import GLibEventLoopPolicy
    except ImportError as exc:
        raise PipelineError(f"PyGObject with GLib asyncio support is required: {exc}") from exc
    asyncio.set_event_loop_policy(GLibEventLoopPolicy())


def run(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(list(argv) if argv is not None else None)

    configure_logging(
        level_for_debug(args.debug, args.log_level),
        log_file=args.log_file,
    )

    try:
        server_config, session_config = load_configs(args)
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return EXIT_CONFIG

    logger.info("Serving %s", server_config.url)
    logger.debug("Session config: %s", session_config.to_dict())

    try:
        _install_glib_policy()
    except PipelineError as exc:
        logger.error("%s", exc)
        return EXIT_RTSP

    try:
        return asyncio.run(VariableRtspServer(server_config, session_config).run())
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_INTERRUPTED


def main() -> None:
    raise SystemExit(run())


__all__ = [
    "EXIT_CONFIG",
    "EXIT_INTERRUPTED",
    "EXIT_IPC",
    "EXIT_OK",
    "EXIT_RTSP",
    "VariableRtspServer",
    "load_configs",
    "main",
    "run",
]
