"""Process entry point and server wiring."""

from .server import VariableRtspServer, run

__all__ = ["VariableRtspServer", "run"]
