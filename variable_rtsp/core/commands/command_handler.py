from typing import Callable, Optional

from variable_rtsp.core.introspection import describe_element
from variable_rtsp.core.logging_utils import get_module_logger
from variable_rtsp.core.pipeline.interface import PipelineBackend
from variable_rtsp.core.session_state import SessionState

from .command_protocol import (
    Command,
    CommandAction,
    SETPARAM_DELIMITERS,
    StatusMessage,
    parse_command,
    setparam_reply,
)
from .status_report import build_status_message

Publisher = Callable[[StatusMessage], None]


class SetParamResult:
    OK = "ok"
    NOT_STREAMING = "not streaming"
    NO_ELEMENT = "no such element"
    NO_PAD = "no such pad"
    INVALID_VALUE = "invalid value"
    FAILED = "failed"


class CommandHandler:
    """Dispatches parsed command-pipe lines against the live session."""

    def __init__(self, session: SessionState, backend: PipelineBackend, publish: Publisher) -> None:
        self.session = session
        self.backend = backend
        self.publish = publish
        self.logger = get_module_logger("CommandHandler")

    def handle_line(self, line: str) -> bool:
        command = parse_command(line)
        if command is None:
            return False
        return self.handle_command(command)

    def handle_command(self, command: Command) -> bool:
        action = command.action
        self.logger.debug("Received command: %s", action)

        try:
            if action == CommandAction.SETPARAM:
                if command.delimiters < SETPARAM_DELIMITERS:
                    self.logger.warning("not enough values: %d", command.delimiters)
                    return False
                self.handle_setparam(command)
                return True
            elif action == CommandAction.PRINTBIN:
                self.handle_printbin(command)
                return True
            elif action == CommandAction.STATUS:
                self.handle_status(command)
                return True
            else:
                self.logger.warning("Undefined action [%s]", action)
                return False
        except Exception:
            self.logger.exception("Command '%s' failed", action)
            return True

    def handle_setparam(self, command: Command) -> str:
        """Set one property, coercing the value to a double.

        Every failure is logged and answered, never raised.
        """
        result = self._apply_setparam(command)
        self.publish(setparam_reply(command, result))
        return result

    def _apply_setparam(self, command: Command) -> str:
        self.logger.info(
            "action: [%s], element: [%s], padName: [%s], paramName: [%s], paramValue: [%s]",
            *command.fields,
        )
        pipeline = self.session.pipeline
        if not self.session.connected or pipeline is None:
            self.logger.warning("Not streaming; ignoring setparam for %s", command.element_name)
            return SetParamResult.NOT_STREAMING

        element = self.backend.get_element_by_name(pipeline, command.element_name)
        if element is None:
            self.logger.warning("Failed getting the element name = %s", command.element_name)
            return SetParamResult.NO_ELEMENT

        pad = None
        try:
            if command.pad_name:
                pad = self.backend.get_pad(element, command.pad_name)
                if pad is None:
                    self.logger.warning("Failed to get static pad %s", command.pad_name)
                    return SetParamResult.NO_PAD
            else:
                self.logger.debug("No pad provided, setting element property")

            value = self._parse_value(command.param_value)
            if value is None:
                return SetParamResult.INVALID_VALUE

            target = pad if pad is not None else element
            try:
                self.backend.set_double_property(target, command.param_name, value)
            except Exception as exc:
                self.logger.warning(
                    "Setting %s.%s=%s failed: %s",
                    command.element_name, command.param_name, value, exc,
                )
                return SetParamResult.FAILED
            return SetParamResult.OK
        finally:
            if pad is not None:
                self.backend.release(pad)
            self.backend.release(element)

    def _parse_value(self, text: str) -> Optional[float]:
        try:
            return float(text)
        except ValueError:
            self.logger.warning("Cannot parse setparam value [%s]", text)
            return None

    def handle_printbin(self, command: Command) -> int:
        pipeline = self.session.pipeline
        if not self.session.connected or pipeline is None:
            self.logger.info("not connected, nothing to do.")
            return 0

        count = 0
        for element in self.backend.iterate_elements(pipeline):
            self.publish(describe_element(self.backend, element))
            count += 1
        self.logger.debug("Dumped properties of %d element(s)", count)
        return count

    def handle_status(self, command: Command) -> None:
        self.publish(build_status_message(self.session, "command"))


__all__ = ["CommandHandler", "SetParamResult"]
