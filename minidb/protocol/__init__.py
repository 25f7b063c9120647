"""Protocol module for mini-db."""

from .commands import Command, CommandType, Response, ResponseStatus
from .dispatcher import CommandDispatcher
from .parser import ProtocolParser

__all__ = [
    "Command",
    "CommandType",
    "CommandDispatcher",
    "Response",
    "ResponseStatus",
    "ProtocolParser",
]
