"""Session core: quality model, lifecycle, command protocol and IPC."""

from .config import ServerConfig, SessionConfig, build_configs
from .errors import ConfigError, IpcError, PipelineError
from .logging_utils import get_module_logger

__all__ = [
    "ConfigError",
    "IpcError",
    "PipelineError",
    "ServerConfig",
    "SessionConfig",
    "build_configs",
    "get_module_logger",
]
