"""Typed configuration for the RTSP server and its adaptive session."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional

from .errors import ConfigError
from .logging_utils import get_module_logger

logger = get_module_logger("Config")

# Hard limits of the imx h264 encoder
QUANT_FLOOR = 0
QUANT_CEILING = 51
BITRATE_FLOOR = 0
BITRATE_CAP = 4294967295

DEFAULT_PORT = "9099"
DEFAULT_MOUNT_POINT = "/stream"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_SRC_ELEMENT = "v4l2src"
DEFAULT_VIDEO_IN = "/dev/video0"
DEFAULT_STEPS = 5
DEFAULT_POLL_INTERVAL = 0.1

# Keys shared by the config file and the CLI (dest names). Steps are given as
# the number of quality levels; the session uses ``steps - 1`` intervals.
FILE_DEFAULTS: dict[str, Any] = {
    "port": DEFAULT_PORT,
    "mount_point": DEFAULT_MOUNT_POINT,
    "user_pipeline": None,
    "src_element": DEFAULT_SRC_ELEMENT,
    "video_in": DEFAULT_VIDEO_IN,
    "enable_variable_mode": True,
    "steps": DEFAULT_STEPS,
    "min_bitrate": 1,
    "max_bitrate": 10000,
    "min_quant_lvl": QUANT_FLOOR,
    "max_quant_lvl": QUANT_CEILING,
    "config_interval": 2,
    "idr": 0,
    "msg_rate": 5,
    "command_pipe": None,
    "status_pipe": None,
}


@dataclass(slots=True, frozen=True)
class SessionConfig:
    """Quality bounds and encoder settings, fixed for the process lifetime."""

    min_quant: int = QUANT_FLOOR
    max_quant: int = QUANT_CEILING
    min_bitrate: int = 1
    max_bitrate: int = 10000
    cap_bitrate: int = BITRATE_CAP
    steps: int = DEFAULT_STEPS - 1
    idr_interval: int = 0
    config_interval: int = 2
    status_interval: int = 5
    variable_mode: bool = True
    video_in: str = DEFAULT_VIDEO_IN

    @property
    def bitrate_scaling(self) -> bool:
        """Bitrate adapts when a nonzero max bitrate is configured, else quant does."""
        return self.max_bitrate > 0

    def validate(self) -> "SessionConfig":
        if self.max_quant < self.min_quant:
            raise ConfigError(
                f"Max quant level ({self.max_quant}) must be greater than "
                f"min quant level ({self.min_quant})"
            )
        if self.variable_mode and self.bitrate_scaling and self.min_bitrate > self.max_bitrate:
            raise ConfigError(
                f"Max bitrate ({self.max_bitrate}) must be greater than "
                f"min bitrate ({self.min_bitrate})"
            )
        if self.steps < 1:
            # users pass levels, we store intervals
            raise ConfigError("Steps must be 2 or greater")
        return self

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class ServerConfig:
    """Transport and IPC settings consumed by the backend and the pipes."""

    port: str = DEFAULT_PORT
    mount_point: str = DEFAULT_MOUNT_POINT
    host: str = DEFAULT_HOST
    src_element: str = DEFAULT_SRC_ELEMENT
    user_pipeline: Optional[str] = None
    command_pipe: Optional[str] = None
    status_pipe: Optional[str] = None
    poll_interval: float = DEFAULT_POLL_INTERVAL

    @property
    def url(self) -> str:
        return f"rtsp://{self.host}:{self.port}{self.mount_point}"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Input clamping, applied before validation
# ---------------------------------------------------------------------------


def clamp_quant(value: int) -> int:
    if value > QUANT_CEILING:
        logger.info("Maximum quant-lvl is %d.", QUANT_CEILING)
        return QUANT_CEILING
    if value < QUANT_FLOOR:
        logger.info("Minimum quant-lvl is %d.", QUANT_FLOOR)
        return QUANT_FLOOR
    return value


def clamp_min_bitrate(value: int) -> int:
    if value > BITRATE_CAP:
        logger.info("Maximum bitrate is %d.", BITRATE_CAP)
        return BITRATE_CAP
    if value <= BITRATE_FLOOR:
        logger.info("Minimum bitrate is 1")
        return 1
    return value


def clamp_max_bitrate(value: int) -> int:
    if value > BITRATE_CAP:
        logger.info("Maximum bitrate is %d.", BITRATE_CAP)
        return BITRATE_CAP
    if value < BITRATE_FLOOR:
        logger.info("Minimum bitrate is %d.", BITRATE_FLOOR)
        return BITRATE_FLOOR
    return value


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def merge_values(file_values: Mapping[str, Any], args: Any = None) -> dict[str, Any]:
    """Layer defaults, config file values and non-None CLI values, in that order."""
    values = dict(FILE_DEFAULTS)
    values.update({k: v for k, v in file_values.items() if k in FILE_DEFAULTS})
    if args is not None:
        for key in FILE_DEFAULTS:
            val = getattr(args, key, None)
            if val is not None:
                values[key] = val
    return values


def build_configs(values: Mapping[str, Any]) -> tuple[ServerConfig, SessionConfig]:
    """Turn merged option values into validated config objects.

    Raises:
        ConfigError: if the bounds or step count are inconsistent.
    """
    try:
        session = SessionConfig(
            min_quant=clamp_quant(int(values["min_quant_lvl"])),
            max_quant=clamp_quant(int(values["max_quant_lvl"])),
            min_bitrate=clamp_min_bitrate(int(values["min_bitrate"])),
            max_bitrate=clamp_max_bitrate(int(values["max_bitrate"])),
            steps=int(values["steps"]) - 1,
            idr_interval=int(values["idr"]),
            config_interval=int(values["config_interval"]),
            status_interval=int(values["msg_rate"]),
            variable_mode=bool(values["enable_variable_mode"]),
            video_in=str(values["video_in"]),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid numeric option: {exc}") from exc

    server = ServerConfig(
        port=str(values["port"]),
        mount_point=str(values["mount_point"]),
        src_element=str(values["src_element"]),
        user_pipeline=_optional_str(values["user_pipeline"]),
        command_pipe=_optional_str(values["command_pipe"]),
        status_pipe=_optional_str(values["status_pipe"]),
    )
    return server, session.validate()


__all__ = [
    "BITRATE_CAP",
    "FILE_DEFAULTS",
    "QUANT_CEILING",
    "QUANT_FLOOR",
    "ServerConfig",
    "SessionConfig",
    "build_configs",
    "clamp_max_bitrate",
    "clamp_min_bitrate",
    "clamp_quant",
    "merge_values",
]
