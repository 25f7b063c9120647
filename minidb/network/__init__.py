"""Network module for mini-db."""

from .framer import LineBuffer
from .tcp_server import Connection, FatalServerError, KVServer

__all__ = ["Connection", "FatalServerError", "KVServer", "LineBuffer"]
