"""
Protocol Parser Module

This module handles parsing of request lines and formatting of responses.
"""

from typing import List, Union

from .commands import Command, CommandType, Response

ENCODING = "utf-8"
ENCODING_ERRORS = "surrogateescape"


class ProtocolParser:
    """
    Parser for the mini-db text protocol.

    Protocol Format:
        Request:  <COMMAND> [ARGS...]\n
        Response: <STATUS> [DATA]\n

    Commands:
        POST <key> <value>   -> 0
        GET <key>            -> 0 <value> | 1
        DELETE <key>         -> 0 | 1
        (anything else)      -> 2

    Constraints:
        - Verbs are case-sensitive
        - Tokens are separated by runs of ASCII whitespace
        - Keys and values cannot contain whitespace
    """

    def parse_request(self, data: Union[bytes, str]) -> Command:
        """
        Parse one request line into a Command object.

        Args:
            data: Request line, with or without its trailing newline

        Returns:
            Command object representing the parsed request.
            Returns EMPTY for a blank line and UNKNOWN for anything that
            is not a well-formed POST, GET or DELETE.

        Examples:
            >>> parser = ProtocolParser()
            >>> cmd = parser.parse_request(b"POST mykey myvalue")
            >>> cmd.type == CommandType.POST
            True
            >>> cmd.key, cmd.value
            ('mykey', 'myvalue')
        """
        if isinstance(data, str):
            data = data.encode(ENCODING, ENCODING_ERRORS)

        # bytes.split() only breaks on ASCII whitespace
        parts = [p.decode(ENCODING, ENCODING_ERRORS) for p in data.split()]
        raw = " ".join(parts)

        if not parts:
            return Command(type=CommandType.EMPTY, raw=raw)

        command_name = parts[0]

        if command_name == "POST":
            return self._parse_post(parts, raw)
        if command_name == "GET":
            return self._parse_keyed(CommandType.GET, parts, raw)
        if command_name == "DELETE":
            return self._parse_keyed(CommandType.DELETE, parts, raw)

        return Command(type=CommandType.UNKNOWN, raw=raw)

    def _parse_post(self, parts: List[str], raw: str) -> Command:
        """
        Parse a POST command.

        Format: POST <key> <value>
        """
        if len(parts) != 3:
            return Command(type=CommandType.UNKNOWN, raw=raw)

        return Command(type=CommandType.POST, key=parts[1], value=parts[2], raw=raw)

    def _parse_keyed(self, command_type: CommandType, parts: List[str], raw: str) -> Command:
        """
        Parse a single-key command (GET or DELETE).

        Format: <VERB> <key>
        """
        if len(parts) != 2:
            return Command(type=CommandType.UNKNOWN, raw=raw)

        return Command(type=command_type, key=parts[1], raw=raw)

    def format_response(self, response: Response) -> str:
        """
        Format a Response object into a protocol string.

        Args:
            response: Response object to format

        Returns:
            Formatted response string WITH trailing newline.

        Examples:
            >>> parser = ProtocolParser()
            >>> parser.format_response(Response.ok())
            '0\\n'
            >>> parser.format_response(Response.value_response("hello"))
            '0 hello\\n'
            >>> parser.format_response(Response.not_found())
            '1\\n'
        """
        prefix = response.status.value

        if response.value is not None:
            return f"{prefix} {response.value}\n"
        return f"{prefix}\n"

    def encode_response(self, response: Response) -> bytes:
        """Format a response and encode it for the wire."""
        return self.format_response(response).encode(ENCODING, ENCODING_ERRORS)
