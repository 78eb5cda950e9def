"""Inbound command pipe, polled without ever blocking the event loop."""

from __future__ import annotations

import asyncio
import os
from typing import Callable, List, Optional

from variable_rtsp.core.commands.command_protocol import LineFramer
from variable_rtsp.core.errors import IpcError
from variable_rtsp.core.logging_utils import get_module_logger

from .status_channel import ensure_fifo

logger = get_module_logger("CommandChannel")

READ_CHUNK = 4096
DEFAULT_POLL_INTERVAL = 0.1


class CommandChannel:
    """Non-blocking reader over the command FIFO."""

    def __init__(self, path: str, framer: Optional[LineFramer] = None) -> None:
        self.path = path
        self.framer = framer or LineFramer()
        self._fd: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self._fd is not None

    def open(self) -> None:
        """Create (if needed) and open the pipe.

        Raises:
            IpcError: if the pipe cannot be created or opened.
        """
        try:
            ensure_fifo(self.path)
            self._fd = os.open(self.path, os.O_RDONLY | os.O_NONBLOCK)
        except OSError as exc:
            raise IpcError(f"Cannot open command pipe {self.path}: {exc}") from exc
        logger.info("Listening for commands on %s", self.path)

    def close(self) -> None:
        if self._fd is not None:
            fd, self._fd = self._fd, None
            try:
                os.close(fd)
            except OSError as exc:
                logger.debug("Closing command pipe failed: %s", exc)

    def read_available(self) -> List[str]:
        """Drain every byte currently in the pipe and return complete lines."""
        lines: List[str] = []
        if self._fd is None:
            return lines

        while True:
            try:
                chunk = os.read(self._fd, READ_CHUNK)
            except BlockingIOError:
                break
            except OSError as exc:
                logger.error("Command pipe read failed: %s", exc)
                break
            if not chunk:
                # no writer attached
                break
            lines.extend(self.framer.feed(chunk))
        return lines

    def poll(self, on_line: Callable[[str], None]) -> int:
        lines = self.read_available()
        for line in lines:
            logger.debug("command is %s", line)
            on_line(line)
        return len(lines)

    async def serve(self, on_line: Callable[[str], None], interval: float = DEFAULT_POLL_INTERVAL) -> None:
        """Poll every ``interval`` seconds until cancelled."""
        while self._fd is not None:
            self.poll(on_line)
            await asyncio.sleep(interval)


__all__ = ["CommandChannel", "DEFAULT_POLL_INTERVAL"]
