from .command_protocol import (
    Command,
    CommandAction,
    LineFramer,
    StatusMessage,
    StatusType,
    parse_command,
)

__all__ = [
    "Command",
    "CommandAction",
    "LineFramer",
    "StatusMessage",
    "StatusType",
    "parse_command",
]
