"""Tracking and cancellation of the server's background asyncio tasks."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Optional

from .logging_utils import LoggerLike, ensure_structured_logger


@dataclass(slots=True)
class _TaskRecord:
    task: asyncio.Task
    name: str
    created: float
    cancel_requested: bool = False


class AsyncTaskManager:
    """Owns named background tasks (command polling, periodic reports).

    Names are unique: spawning a name that is still running is refused, so a
    second report loop can never be started for the same session. A task whose
    cancellation has been requested no longer holds its name and may be
    replaced before it has unwound.
    """

    def __init__(
        self,
        name: Optional[str] = None,
        logger: LoggerLike = None,
    ) -> None:
        self._name = name or self.__class__.__name__
        self._logger = ensure_structured_logger(logger, fallback_name=self._name)
        self._closed = False
        self._records: dict[str, _TaskRecord] = {}
        self._retiring: set[asyncio.Task] = set()

    @property
    def closed(self) -> bool:
        return self._closed

    def create(
        self,
        coro: Awaitable,
        *,
        name: str,
    ) -> asyncio.Task:
        """Create and register a task on the running loop.

        Raises:
            RuntimeError: after shutdown, or if ``name`` is already running.
        """
        if self._closed:
            _close_coro(coro)
            raise RuntimeError(f"{self._name} is shutting down; no new tasks permitted")
        if self.is_running(name):
            _close_coro(coro)
            raise RuntimeError(f"{self._name} task {name} is already running")

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _close_coro(coro)
            raise
        previous = self._records.get(name)
        if previous is not None and not previous.task.done():
            self._retiring.add(previous.task)
        task = loop.create_task(coro, name=name)
        self._records[name] = _TaskRecord(task=task, name=name, created=time.perf_counter())
        task.add_done_callback(self._finalize)
        return task

    def is_running(self, name: str) -> bool:
        record = self._records.get(name)
        return record is not None and not record.cancel_requested and not record.task.done()

    def cancel_nowait(self, name: str) -> bool:
        """Request cancellation without waiting; safe from sync callbacks."""
        record = self._records.get(name)
        if record is None or record.cancel_requested or record.task.done():
            return False
        record.cancel_requested = True
        record.task.cancel()
        return True

    async def shutdown(self, *, timeout: float = 5.0) -> bool:
        """Cancel outstanding tasks and wait for their completion."""
        self._closed = True
        pending = [rec.task for rec in self._records.values() if not rec.task.done()]
        retiring = [task for task in self._retiring if not task.done()]
        if not pending and not retiring:
            return True
        return await self._cancel_and_wait(pending, timeout=timeout, reason="shutdown", waiting=retiring)

    def active_names(self) -> list[str]:
        return [name for name in self._records if self.is_running(name)]

    async def _cancel_and_wait(
        self,
        tasks: list[asyncio.Task],
        *,
        timeout: float,
        reason: str,
        waiting: Optional[list[asyncio.Task]] = None,
    ) -> bool:
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        # already cancelled, only awaited
        pending.extend(waiting or ())
        if not pending:
            return True

        try:
            await asyncio.wait_for(asyncio.gather(*pending, return_exceptions=True), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            hanging = [task.get_name() for task in pending if not task.done()]
            self._logger.warning(
                "%s %s timed out after %.1fs; still pending: %s",
                self._name,
                reason,
                timeout,
                ", ".join(hanging),
            )
            return False

    def _finalize(self, task: asyncio.Task) -> None:
        name = task.get_name()
        self._retiring.discard(task)
        record = self._records.get(name)
        if record is not None and record.task is task:
            del self._records[name]
        else:
            record = None
        status = self._task_status(task)
        elapsed_ms = (time.perf_counter() - record.created) * 1000 if record else 0.0
        self._logger.debug("%s task %s finished (%s) in %.1fms", self._name, name, status, elapsed_ms)

    def _task_status(self, task: asyncio.Task) -> str:
        if task.cancelled():
            return "cancelled"
        exc = task.exception()
        if exc is not None:
            self._logger.error(
                "%s task %s failed: %s",
                self._name,
                task.get_name(),
                exc,
                exc_info=exc,
            )
            return f"error:{exc.__class__.__name__}"
        return "completed"


def _close_coro(coro: Awaitable) -> None:
    close = getattr(coro, "close", None)
    if close is not None:
        close()


__all__ = ["AsyncTaskManager"]
