from .command_channel import CommandChannel
from .status_channel import StatusChannel, ensure_fifo

__all__ = ["CommandChannel", "StatusChannel", "ensure_fifo"]
