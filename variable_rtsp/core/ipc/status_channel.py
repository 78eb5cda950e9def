"""Outbound status pipe with a permanent stdout fallback."""

from __future__ import annotations

import os
import stat
import sys
from typing import Optional, TextIO

from variable_rtsp.core.commands.command_protocol import StatusMessage
from variable_rtsp.core.logging_utils import get_module_logger

logger = get_module_logger("StatusChannel")

FIFO_MODE = 0o666


def ensure_fifo(path: str) -> None:
    """Create ``path`` as a FIFO unless something already exists there."""
    try:
        os.mkfifo(path, FIFO_MODE)
        logger.debug("Created FIFO %s", path)
    except FileExistsError:
        if not stat.S_ISFIFO(os.stat(path).st_mode):
            logger.warning("%s exists and is not a FIFO", path)


class StatusChannel:
    """Writes status messages to the status pipe.

    The pipe is opened write-only on the first message, not at startup: an
    open for writing blocks until a reader attaches. If the pipe is not
    configured, cannot be opened, or a write fails, every later message goes
    to the fallback stream (stdout unless ``output_stream`` is given).
    """

    def __init__(self, path: Optional[str] = None, output_stream: Optional[TextIO] = None) -> None:
        self.path = path
        self.output_stream = output_stream
        self._fd: Optional[int] = None
        self._fallback = path is None
        self.sent = 0

    @property
    def using_fallback(self) -> bool:
        return self._fallback

    @property
    def is_open(self) -> bool:
        return self._fd is not None

    def prepare(self) -> None:
        if self.path is None:
            return
        logger.debug("Creating status pipe [%s]", self.path)
        try:
            ensure_fifo(self.path)
        except OSError as exc:
            logger.warning("Cannot create status pipe %s (%s); using stdout", self.path, exc)
            self._fallback = True

    def send(self, message: StatusMessage) -> None:
        if not self._fallback and self._fd is None:
            self._open()

        if self._fd is not None:
            try:
                self._write_all(message.encode().encode("utf-8"))
                self.sent += 1
                return
            except OSError as exc:
                logger.warning("Status pipe write failed (%s); switching to stdout", exc)
                self._select_fallback()

        stream = self.output_stream if self.output_stream is not None else sys.stdout
        stream.write(message.encode_fallback())
        stream.flush()
        self.sent += 1

    def close(self) -> None:
        if self._fd is not None:
            fd, self._fd = self._fd, None
            try:
                os.close(fd)
            except OSError as exc:
                logger.debug("Closing status pipe failed: %s", exc)

    def _open(self) -> None:
        logger.debug("Opening status pipe %s", self.path)
        try:
            self._fd = os.open(self.path, os.O_WRONLY)
        except OSError as exc:
            logger.warning("Failed to open status pipe %s (%s); using stdout", self.path, exc)
            self._fallback = True
            return
        logger.info("Status pipe ready (fd=%d)", self._fd)

    def _select_fallback(self) -> None:
        self.close()
        self._fallback = True

    def _write_all(self, data: bytes) -> None:
        view = memoryview(data)
        while view:
            written = os.write(self._fd, view)
            view = view[written:]


__all__ = ["StatusChannel", "ensure_fifo"]
