"""
Connection Framing Module

Accumulates the raw byte stream of one connection and cuts it into
newline-terminated request lines.
"""

from typing import Iterator

DELIMITER = b"\n"


class LineBuffer:
    """
    Growable inbound buffer owned by a single connection.

    Bytes are appended as they arrive from the socket; complete lines are
    pulled from the front with extract_lines(). Whatever follows the last
    newline stays buffered until the next append completes it.

    Usage:
        buf = LineBuffer()
        buf.append(b"POST a 1\\nGE")
        list(buf.extract_lines())   # [b"POST a 1"]
        buf.pending                 # b"GE"
    """

    def __init__(self):
        self._buffer = bytearray()

    def append(self, data: bytes) -> None:
        """Add received bytes to the end of the buffer."""
        self._buffer += data

    def extract_lines(self) -> Iterator[bytes]:
        """
        Yield every complete line in arrival order, without its newline.

        Each line is removed from the buffer before it is yielded, so a
        consumer that stops early leaves the remaining lines in place.
        """
        while True:
            pos = self._buffer.find(DELIMITER)
            if pos < 0:
                return
            line = bytes(self._buffer[:pos])
            del self._buffer[:pos + 1]
            yield line

    @property
    def pending(self) -> bytes:
        """Bytes received but not yet resolved into a line."""
        return bytes(self._buffer)

    def clear(self) -> None:
        self._buffer.clear()

    def __len__(self) -> int:
        return len(self._buffer)
