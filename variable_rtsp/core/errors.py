"""Exceptions raised at startup; everything after startup is logged, not raised."""


class ConfigError(ValueError):
    """Invalid quality bounds, step count or launch description."""


class IpcError(RuntimeError):
    """A requested IPC pipe could not be created or opened."""


class PipelineError(RuntimeError):
    """The media backend could not be created or attached."""


__all__ = ["ConfigError", "IpcError", "PipelineError"]
