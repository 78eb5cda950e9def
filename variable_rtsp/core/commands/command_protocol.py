"""Wire format of the command and status pipes.

Commands are single lines of up to five ``:``-separated fields::

    setparam:<element>:<pad-or-empty>:<property>:<number>
    printbin
    status

Status replies are framed so a reader can split them without a length
prefix::

    msg{
    type:<type>,
    data:{
    <key>:<value>,
    ...
    }}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from variable_rtsp.core.logging_utils import get_module_logger

logger = get_module_logger("CommandProtocol")

MAX_LINE_LENGTH = 255
MAX_FIELD_LENGTH = 255
FIELD_COUNT = 5
FIELD_DELIMITER = ":"
SETPARAM_DELIMITERS = FIELD_COUNT - 1


class CommandAction:
    SETPARAM = "setparam"
    PRINTBIN = "printbin"
    STATUS = "status"


class StatusType:
    STATUS = "status"
    ELEMENT_PROPS = "elementprops"
    SETPARAM = "setparam"


@dataclass(frozen=True, slots=True)
class Command:
    action: str
    element_name: str = ""
    pad_name: str = ""
    param_name: str = ""
    param_value: str = ""
    delimiters: int = 0

    @property
    def fields(self) -> Tuple[str, str, str, str, str]:
        return (self.action, self.element_name, self.pad_name, self.param_name, self.param_value)


def parse_command(line: str) -> Optional[Command]:
    """Split one command line into its five fields.

    Returns None for blank lines and for lines with an oversized field.
    Fields past the fifth are dropped.
    """
    if not line:
        return None

    parts = line.split(FIELD_DELIMITER)
    delimiters = len(parts) - 1

    if len(parts) > FIELD_COUNT:
        logger.warning(
            "Discarding %d extra field(s): %s",
            len(parts) - FIELD_COUNT,
            FIELD_DELIMITER.join(parts[FIELD_COUNT:])[:64],
        )
        parts = parts[:FIELD_COUNT]

    for value in parts:
        if len(value) > MAX_FIELD_LENGTH:
            logger.warning("Rejecting command with a field longer than %d characters", MAX_FIELD_LENGTH)
            return None

    parts.extend([""] * (FIELD_COUNT - len(parts)))
    return Command(*parts, delimiters=delimiters)


class LineFramer:
    """Accumulates command-pipe bytes into complete lines.

    A line longer than ``max_length`` bytes is dropped as a whole, up to and
    including its terminating newline.
    """

    def __init__(self, max_length: int = MAX_LINE_LENGTH) -> None:
        self.max_length = max_length
        self._buffer = bytearray()
        self._discarding = False
        self.discarded = 0

    @property
    def pending(self) -> int:
        return len(self._buffer)

    def feed(self, data: bytes) -> List[str]:
        lines: List[str] = []
        pieces = data.split(b"\n")
        for index, piece in enumerate(pieces):
            if not self._discarding:
                self._buffer.extend(piece)
                if len(self._buffer) > self.max_length:
                    logger.warning(
                        "Invalid command! Line exceeds %d bytes: %r...",
                        self.max_length,
                        bytes(self._buffer[:32]),
                    )
                    self._buffer.clear()
                    self._discarding = True
                    self.discarded += 1

            if index == len(pieces) - 1:
                break

            # newline seen
            if not self._discarding and self._buffer:
                line = self._decode(bytes(self._buffer))
                if line:
                    lines.append(line)
            self._buffer.clear()
            self._discarding = False
        return lines

    def _decode(self, raw: bytes) -> Optional[str]:
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Invalid command! Undecodable bytes: %r", raw[:32])
            self.discarded += 1
            return None
        return text.rstrip("\r")


PayloadEntry = Union[str, Tuple[str, object]]


def format_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(slots=True)
class StatusMessage:
    """A reply on the status pipe: a type plus ordered payload lines."""

    type: str
    payload: List[str] = field(default_factory=list)

    @classmethod
    def from_entries(cls, msg_type: str, entries: Iterable[PayloadEntry]) -> "StatusMessage":
        lines = []
        for entry in entries:
            if isinstance(entry, tuple):
                key, value = entry
                lines.append(f"{key}:{format_value(value)}")
            else:
                lines.append(entry)
        return cls(msg_type, lines)

    @property
    def body(self) -> str:
        return ",\n".join(self.payload)

    def encode(self) -> str:
        return f"msg{{\ntype:{self.type},\ndata:{{\n{self.body}\n}}}}\n"

    def encode_fallback(self) -> str:
        return f"status-reply: {{{self.body}}}\n"


def setparam_reply(command: Command, result: str) -> StatusMessage:
    fields: Sequence[str] = (
        command.element_name,
        command.pad_name,
        command.param_name,
        command.param_value,
        result,
    )
    return StatusMessage(StatusType.SETPARAM, [FIELD_DELIMITER.join(fields)])


__all__ = [
    "Command",
    "CommandAction",
    "FIELD_COUNT",
    "LineFramer",
    "MAX_FIELD_LENGTH",
    "MAX_LINE_LENGTH",
    "SETPARAM_DELIMITERS",
    "StatusMessage",
    "StatusType",
    "format_value",
    "parse_command",
    "setparam_reply",
]
