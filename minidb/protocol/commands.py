"""
Protocol Command and Response Definitions

This module defines the data structures for protocol commands and responses.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class CommandType(Enum):
    """Enumeration of supported command types."""
    POST = auto()
    GET = auto()
    DELETE = auto()
    EMPTY = auto()
    UNKNOWN = auto()


class ResponseStatus(Enum):
    """Enumeration of response status codes as sent on the wire."""
    OK = "0"
    NOT_FOUND = "1"
    ERROR = "2"


@dataclass
class Command:
    """
    Represents a parsed protocol command.

    Attributes:
        type: The type of command (POST, GET, DELETE, EMPTY, UNKNOWN)
        key: The key for the operation (empty for EMPTY/UNKNOWN)
        value: The value for POST operations (empty for other operations)
        raw: The request line with whitespace normalised
    """
    type: CommandType
    key: str = ""
    value: str = ""
    raw: str = ""

    @property
    def is_valid(self) -> bool:
        """Check if the command can be executed against the store."""
        return self.type in (CommandType.POST, CommandType.GET, CommandType.DELETE)


@dataclass
class Response:
    """
    Represents a protocol response.

    Attributes:
        status: OK, NOT_FOUND or ERROR
        value: The value returned (GET hits only)
    """
    status: ResponseStatus
    value: Optional[str] = None

    @classmethod
    def ok(cls) -> "Response":
        """Create a successful response with no payload."""
        return cls(status=ResponseStatus.OK)

    @classmethod
    def not_found(cls) -> "Response":
        """Create a 'key not found' response."""
        return cls(status=ResponseStatus.NOT_FOUND)

    @classmethod
    def error(cls) -> "Response":
        """Create a response for an empty, malformed or unknown command."""
        return cls(status=ResponseStatus.ERROR)

    @classmethod
    def value_response(cls, value: str) -> "Response":
        """Create a GET response with a value."""
        return cls(status=ResponseStatus.OK, value=value)
