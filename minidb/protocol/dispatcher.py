"""
Command Dispatcher Module

Routes parsed commands to the KVStore and turns the outcome into a
protocol response. Keeps the network layer free of any knowledge about
the command grammar.
"""

import logging
from typing import Optional, Union

from ..storage.store import KVStore
from .commands import Command, CommandType, Response
from .parser import ProtocolParser

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """
    Executes protocol commands against a store.

    Usage:
        dispatcher = CommandDispatcher(store)
        reply = dispatcher.handle_line(b"GET foo")   # b"1\\n"

    Attributes:
        store: The KVStore that commands are applied to
        parser: The ProtocolParser used to read lines and format replies
    """

    def __init__(self, store: KVStore, parser: Optional[ProtocolParser] = None):
        self.store = store
        self.parser = parser if parser is not None else ProtocolParser()

    def execute(self, command: Command) -> Response:
        """
        Execute a parsed command on the store.

        Args:
            command: The Command object to execute

        Returns:
            Response object with the result
        """
        if not command.is_valid:
            logger.debug(f"Rejected command: {command.raw!r}")
            return Response.error()

        if command.type == CommandType.POST:
            self.store.put(command.key, command.value)
            return Response.ok()

        if command.type == CommandType.GET:
            value = self.store.get(command.key)
            return Response.value_response(value) if value is not None else Response.not_found()

        if command.type == CommandType.DELETE:
            deleted = self.store.delete(command.key)
            return Response.ok() if deleted else Response.not_found()

        return Response.error()

    def handle_line(self, line: Union[bytes, str]) -> bytes:
        """Parse one request line, execute it and return the encoded reply."""
        command = self.parser.parse_request(line)
        return self.parser.encode_response(self.execute(command))
