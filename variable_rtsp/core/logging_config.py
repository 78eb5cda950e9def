"""Process-wide logging configuration for the server."""

from __future__ import annotations

import contextlib
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_MAX_BYTES = 500 * 1024
LOG_FILE_BACKUPS = 2

LOG_LEVELS: dict[str, int] = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, str):
        name = level.lower()
        if name not in LOG_LEVELS:
            raise ValueError(f"Unknown log level '{level}'")
        return LOG_LEVELS[name]
    return int(level)


def level_for_debug(debug: int, fallback: Union[int, str] = logging.INFO) -> int:
    """Map the legacy ``-d N`` verbosity onto a logging level."""
    if debug > 0:
        return logging.DEBUG
    return coerce_level(fallback)


def configure_logging(
    level: Union[int, str] = logging.INFO,
    *,
    log_file: Optional[Union[str, Path]] = None,
) -> None:
    """Replace the root handlers with a stdout handler and an optional log file.

    The file handler rotates at ``LOG_FILE_MAX_BYTES`` and keeps
    ``LOG_FILE_BACKUPS`` old files next to it.
    """

    numeric_level = coerce_level(level)
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        with contextlib.suppress(Exception):
            handler.close()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                path,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(numeric_level)


__all__ = [
    "LOG_DATEFMT",
    "LOG_FORMAT",
    "LOG_LEVELS",
    "coerce_level",
    "configure_logging",
    "level_for_debug",
]
