"""Drives the shared session through Idle, Configuring and Active.

All handlers run on the event loop thread and return without awaiting, so
the session state is only ever touched by one callback at a time.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, List, Optional

from .commands.command_protocol import StatusMessage
from .commands.status_report import build_status_message
from .events import ClientAttached, ClientDetached, PipelineReady, SessionEvent
from .logging_utils import get_module_logger
from .pipeline.interface import (
    ENCODER_ELEMENT,
    PAYLOADER_ELEMENT,
    SOURCE_ELEMENT,
    PipelineBackend,
    PipelineHandle,
)
from .quality import QualityChange, recompute, step_factor
from .session_state import ElementHandles, LifecycleState, SessionState
from .task_manager import AsyncTaskManager

REPORT_TASK_NAME = "periodic-report"


class SessionController:
    """Single writer of :class:`SessionState`."""

    def __init__(
        self,
        session: SessionState,
        backend: PipelineBackend,
        publish: Callable[[StatusMessage], None],
        task_manager: Optional[AsyncTaskManager] = None,
    ) -> None:
        self.session = session
        self.backend = backend
        self.publish = publish
        self.task_manager = task_manager
        self.logger = get_module_logger("SessionController")

    @property
    def config(self):
        return self.session.config

    def dispatch(self, event: SessionEvent) -> None:
        try:
            if isinstance(event, ClientAttached):
                self.on_client_attached(event)
            elif isinstance(event, ClientDetached):
                self.on_client_detached(event)
            elif isinstance(event, PipelineReady):
                self.on_pipeline_ready(event.pipeline)
            else:
                self.logger.warning("Unknown session event: %r", event)
        except Exception:
            self.logger.exception("Handling %s failed", type(event).__name__)

    # ------------------------------------------------------------------
    # lifecycle events
    # ------------------------------------------------------------------

    def on_client_attached(self, event: Optional[ClientAttached] = None) -> None:
        session = self.session
        session.client_count += 1
        self.logger.info("[%d] A new client has connected", session.client_count)

        if session.elements is None:
            session.elements = ElementHandles()
            session.cycles += 1
            self.logger.debug("Subscribing to pipeline-ready (cycle %d)", session.cycles)
            self.backend.watch_pipeline_ready(self._pipeline_ready)
        else:
            self._adapt_quality()

        self.broadcast_status("client-attached")

    def on_client_detached(self, event: Optional[ClientDetached] = None) -> None:
        session = self.session
        if session.client_count == 0:
            self.logger.warning("Client detached while idle; ignoring")
            return

        session.client_count -= 1
        self.logger.info("[%d] Client is closing down", session.client_count)

        if session.client_count == 0:
            self._teardown()
            self.broadcast_status("client-detached")
        else:
            self._adapt_quality()

    def on_pipeline_ready(self, pipeline: PipelineHandle) -> None:
        session = self.session
        state = session.lifecycle
        if state is not LifecycleState.CONFIGURING:
            self.logger.warning("Pipeline ready while %s; ignoring", state.value)
            return

        self.logger.info("[%d] Configuring pipeline...", session.client_count)
        elements = session.elements
        elements.pipeline = pipeline
        elements.source = self._lookup(pipeline, SOURCE_ELEMENT, "source")
        elements.encoder = self._lookup(pipeline, ENCODER_ELEMENT, "encoder")
        elements.payloader = self._lookup(pipeline, PAYLOADER_ELEMENT, "protocol")
        elements.bound = True

        self._configure_elements(elements)
        self._start_report()

    # ------------------------------------------------------------------
    # status
    # ------------------------------------------------------------------

    def broadcast_status(self, origin: str) -> None:
        try:
            self.publish(build_status_message(self.session, origin))
        except Exception:
            self.logger.exception("Failed to publish status")

    def report_lines(self) -> List[str]:
        """Lines of one periodic report block."""
        session = self.session
        cfg = self.config
        lines = ["### MSG BLOCK ###", f"Number of Clients    : {session.client_count}"]
        if cfg.variable_mode:
            lines.append(f"Current Quant Level  : {session.quality.current_quant}")
            lines.append(f"Current Bitrate Level: {session.quality.current_bitrate}")
            lines.append(f"Step Factor          : {step_factor(cfg)}")
        stats = self._payloader_stats()
        if stats:
            lines.append(f"General RTSP Stats   : {stats}")
        return lines

    async def run_periodic_report(self) -> None:
        interval = self.config.status_interval
        while True:
            await asyncio.sleep(interval)
            if not self.session.connected or interval <= 0:
                self.logger.debug("Destroying periodic report")
                return
            for line in self.report_lines():
                self.logger.info(line)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _pipeline_ready(self, pipeline: PipelineHandle) -> None:
        self.dispatch(PipelineReady(pipeline))

    def _lookup(self, pipeline: PipelineHandle, name: str, role: str) -> Any:
        element = self.backend.get_element_by_name(pipeline, name)
        if element is None:
            self.logger.error("Couldn't get %s (%s) pipeline element", role, name)
        return element

    def _set(self, target: Any, name: str, value: Any) -> bool:
        try:
            self.backend.set_property(target, name, value)
            return True
        except Exception as exc:
            self.logger.warning("Setting %s=%s failed: %s", name, value, exc)
            return False

    def _configure_elements(self, elements: ElementHandles) -> None:
        cfg = self.config
        quality = self.session.quality

        if elements.source is not None:
            self.logger.info("Setting input device=%s", cfg.video_in)
            self._set(elements.source, "device", cfg.video_in)

        if elements.encoder is not None:
            if cfg.variable_mode:
                self.logger.info("Setting encoder bitrate=%d", quality.current_bitrate)
                self._set(elements.encoder, "bitrate", quality.current_bitrate)
                self.logger.info("Setting encoder quant-param=%d", quality.current_quant)
                self._set(elements.encoder, "quant-param", quality.current_quant)
                self._set(elements.encoder, "idr-interval", cfg.idr_interval)
            else:
                self.logger.debug("Not setting any encoder properties")

        if elements.payloader is not None:
            self.logger.info("Setting rtp config-interval=%d", cfg.config_interval)
            self._set(elements.payloader, "config-interval", cfg.config_interval)

    def _adapt_quality(self) -> Optional[QualityChange]:
        if not self.config.variable_mode:
            return None
        session = self.session
        change = recompute(session.quality, session.client_count, self.config)
        encoder = session.encoder
        if change.changed and encoder is not None:
            self.logger.info(
                "[%d] Changing %s from %d to %d",
                session.client_count,
                change.property_name,
                change.previous,
                change.value,
            )
            self._set(encoder, change.property_name, change.value)
        return change

    def _teardown(self) -> None:
        session = self.session
        elements = session.elements
        self.logger.debug("Connection terminated")
        self._stop_report()

        if elements is not None:
            if elements.pipeline is not None:
                try:
                    self.backend.stop_pipeline(elements.pipeline)
                except Exception:
                    self.logger.exception("Stopping pipeline failed")
            for role, handle in elements.slots():
                if handle is None:
                    continue
                self.logger.debug("Releasing %s", role)
                try:
                    self.backend.release(handle)
                except Exception:
                    self.logger.exception("Releasing %s failed", role)
            elements.clear()

        session.elements = None
        self.backend.unwatch_pipeline_ready()

    def _start_report(self) -> None:
        interval = self.config.status_interval
        if interval <= 0:
            self.logger.debug("Periodic report disabled")
            return
        if self.task_manager is None or self.task_manager.closed:
            return
        if self.task_manager.is_running(REPORT_TASK_NAME):
            return
        try:
            self.task_manager.create(self.run_periodic_report(), name=REPORT_TASK_NAME)
        except RuntimeError as exc:
            self.logger.warning("Cannot start periodic report: %s", exc)

    def _stop_report(self) -> None:
        if self.task_manager is not None:
            self.task_manager.cancel_nowait(REPORT_TASK_NAME)

    def _payloader_stats(self) -> Optional[str]:
        payloader = self.session.payloader
        if payloader is None:
            return None
        try:
            stats = self.backend.get_property(payloader, "stats")
        except Exception as exc:
            self.logger.debug("Reading payloader stats failed: %s", exc)
            return None
        if stats is None:
            return None
        to_string = getattr(stats, "to_string", None)
        return to_string() if callable(to_string) else str(stats)


__all__ = ["REPORT_TASK_NAME", "SessionController"]
