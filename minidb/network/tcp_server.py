"""
Selector-Driven TCP Server Module

This module implements the single-threaded event loop for mini-db.

One thread owns every socket. A level-triggered selector reports which
descriptors are readable; the listening socket is drained by the acceptor,
client sockets are drained into their LineBuffer and every complete line
is dispatched and answered before the next select() call.

Key selector concepts used here:
- selectors.DefaultSelector: epoll on Linux, kqueue on BSD/macOS
- register()/unregister() with a data payload identifying the handler
- non-blocking sockets: BlockingIOError marks "would block", not a failure
"""

import logging
import selectors
import socket
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple

from ..config.settings import settings
from ..protocol.dispatcher import CommandDispatcher
from ..storage.snapshot import Snapshot
from ..storage.store import KVStore
from .framer import LineBuffer

logger = logging.getLogger(__name__)

# Selector payloads for the two non-client sockets
_ACCEPT = object()
_WAKEUP = object()


class FatalServerError(Exception):
    """
    A core system call failed and the whole process must stop.

    Attributes:
        cause: Short name of the failed operation (e.g. "bind")
        error: The underlying OSError, if any
    """

    def __init__(self, cause: str, error: Optional[BaseException] = None):
        self.cause = cause
        self.error = error
        message = f"{cause}: {error}" if error is not None else cause
        super().__init__(message)


@contextmanager
def fatal_on_error(cause: str) -> Iterator[None]:
    """Turn any OSError raised inside the block into a FatalServerError."""
    try:
        yield
    except OSError as exc:
        raise FatalServerError(cause, exc) from exc


@dataclass
class Connection:
    """
    One accepted client socket and its inbound buffer.

    Attributes:
        sock: The non-blocking client socket
        address: Peer address as returned by accept()
        buffer: Bytes received but not yet resolved into lines
        fd: File descriptor, fixed at accept time (stays valid as a table
            key after the socket is closed)
    """
    sock: socket.socket
    address: Tuple[str, int]
    buffer: LineBuffer = field(default_factory=LineBuffer)
    fd: int = -1

    def __post_init__(self):
        if self.fd < 0:
            self.fd = self.sock.fileno()


class KVServer:
    """
    Single-threaded TCP server for the mini-db service.

    The server object is the only owner of all mutable server state: the
    listening socket, the selector, the connection table and the store.
    Every handler runs on the thread that called serve_forever(); the only
    method meant to be called from elsewhere (a signal handler or another
    thread) is stop().

    Lifecycle:
        server = KVServer(path="data.txt", port=7171)
        server.setup()          # load snapshot, bind, listen
        server.serve_forever()  # until stop() is called
        server.shutdown()       # save snapshot, close sockets

    run() performs the three steps in order.

    Attributes:
        host: Bind address (always loopback unless overridden in tests)
        port: Port number; 0 picks a free port, updated after bind
        store: The KVStore shared by all connections
        snapshot: Snapshot file, or None to run without persistence
        dispatcher: Executes request lines against the store
    """

    def __init__(
            self,
            path: Optional[str] = None,
            host: Optional[str] = None,
            port: int = 0,
            store: Optional[KVStore] = None,
    ):
        self.host = host if host is not None else settings.HOST
        self.port = port
        self.store = store if store is not None else KVStore()
        self.snapshot = Snapshot(path) if path is not None else None
        self.dispatcher = CommandDispatcher(self.store)
        self.read_size = settings.READ_BUFFER_SIZE
        self.backlog = settings.LISTEN_BACKLOG

        # Server state
        self._sock: Optional[socket.socket] = None
        self._selector: Optional[selectors.BaseSelector] = None
        self._wakeup_reader: Optional[socket.socket] = None
        self._wakeup_writer: Optional[socket.socket] = None
        self._connections: Dict[int, Connection] = {}
        self._shutdown_requested = False
        self._running = False
        self._connection_count = 0
        self._total_requests = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def setup(self) -> None:
        """
        Load the snapshot and open the listening socket.

        Raises:
            FatalServerError: If the snapshot cannot be read or any socket
                or selector call fails
        """
        if self.snapshot is not None:
            with fatal_on_error("load snapshot"):
                self.snapshot.load(self.store)

        try:
            self._open_listener()
        except FatalServerError:
            self.close()
            raise

        logger.info(f"Serving on {self.host}:{self.port}")

    def _open_listener(self) -> None:
        with fatal_on_error("socket"):
            self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        with fatal_on_error("setsockopt"):
            self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self._sock.setblocking(False)
        with fatal_on_error("bind"):
            self._sock.bind((self.host, self.port))
        with fatal_on_error("listen"):
            self._sock.listen(self.backlog)
        self.port = self._sock.getsockname()[1]

        with fatal_on_error("selector"):
            self._selector = selectors.DefaultSelector()
            self._wakeup_reader, self._wakeup_writer = socket.socketpair()
            self._wakeup_reader.setblocking(False)
            self._wakeup_writer.setblocking(False)
        with fatal_on_error("register"):
            self._selector.register(self._sock, selectors.EVENT_READ, data=_ACCEPT)
            self._selector.register(self._wakeup_reader, selectors.EVENT_READ, data=_WAKEUP)

    def serve_forever(self) -> None:
        """
        Run the event loop until stop() is called.

        Each select() batch is processed to completion before the shutdown
        flag is looked at again.

        Raises:
            FatalServerError: If select() or accept() fails
        """
        if self._selector is None:
            raise RuntimeError("setup() must be called before serve_forever()")

        self._running = True
        try:
            while not self._shutdown_requested:
                # EINTR is retried inside select() itself (PEP 475)
                with fatal_on_error("select"):
                    events = self._selector.select()

                for key, _mask in events:
                    if key.data is _ACCEPT:
                        self._accept_connections()
                    elif key.data is _WAKEUP:
                        self._drain_wakeup()
                    else:
                        self._receive(key.data)
        finally:
            self._running = False

        logger.info("Event loop stopped")

    def stop(self) -> None:
        """
        Request a graceful shutdown.

        Safe to call from a signal handler or another thread: it only sets
        a flag and pokes the wakeup socket so a blocked select() returns.
        """
        self._shutdown_requested = True
        writer = self._wakeup_writer
        if writer is None:
            return
        try:
            writer.send(b"\0")
        except BlockingIOError:
            # Wakeup buffer full: a wakeup is already pending
            pass

    def shutdown(self) -> None:
        """
        Write the snapshot and release every socket.

        Raises:
            FatalServerError: If the snapshot cannot be written
        """
        if self.snapshot is not None:
            with fatal_on_error("save snapshot"):
                self.snapshot.save(self.store)
        self.close()

    def run(self) -> None:
        """Set up (if needed), serve until stopped, then shut down."""
        if self._selector is None:
            self.setup()
        self.serve_forever()
        self.shutdown()

    def close(self) -> None:
        """Close all connections, the listener and the selector."""
        for conn in list(self._connections.values()):
            self._disconnect(conn)

        if self._selector is not None:
            self._selector.close()
            self._selector = None

        for sock in (self._sock, self._wakeup_reader, self._wakeup_writer):
            if sock is not None:
                sock.close()
        self._sock = None
        self._wakeup_reader = None
        self._wakeup_writer = None

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _accept_connections(self) -> None:
        """Accept every pending connection until accept() would block."""
        while True:
            try:
                sock, addr = self._sock.accept()
            except BlockingIOError:
                return
            except OSError as exc:
                raise FatalServerError("accept", exc) from exc

            with fatal_on_error("register"):
                sock.setblocking(False)
                conn = Connection(sock=sock, address=addr)
                self._selector.register(sock, selectors.EVENT_READ, data=conn)

            self._connections[conn.fd] = conn
            self._connection_count += 1
            logger.debug(f"Client connected: {addr}")

    def _receive(self, conn: Connection) -> None:
        """
        Drain a readable client socket and dispatch every complete line.

        An orderly close (recv() returning b"") still gets replies for the
        lines that arrived before it, then the connection is released.
        """
        if self._connections.get(conn.fd) is not conn:
            # Closed earlier in this batch
            return

        peer_closed = False
        while True:
            try:
                data = conn.sock.recv(self.read_size)
            except BlockingIOError:
                break
            except OSError as exc:
                logger.warning(f"Receive failed for {conn.address}: {exc}")
                self._disconnect(conn)
                return

            if not data:
                peer_closed = True
                break
            conn.buffer.append(data)

        self._process_lines(conn)

        if peer_closed:
            logger.debug(f"Client disconnected: {conn.address}")
            self._disconnect(conn)

    def _process_lines(self, conn: Connection) -> None:
        for line in conn.buffer.extract_lines():
            self._total_requests += 1
            reply = self.dispatcher.handle_line(line)
            if not self._send(conn, reply):
                return

    def _send(self, conn: Connection, data: bytes) -> bool:
        """
        Write a reply with a single send() call.

        Bytes the socket does not take right away are dropped.

        Returns:
            False if the connection failed and was closed, True otherwise
        """
        try:
            sent = conn.sock.send(data)
        except BlockingIOError:
            sent = 0
        except OSError as exc:
            # Covers BrokenPipeError: SIGPIPE is ignored by the interpreter
            logger.debug(f"Send failed for {conn.address}: {exc}")
            self._disconnect(conn)
            return False

        if sent < len(data):
            logger.warning(f"Dropped {len(data) - sent} reply bytes for {conn.address}")
        return True

    def _disconnect(self, conn: Connection) -> None:
        if self._connections.pop(conn.fd, None) is None:
            return

        if self._selector is not None:
            with fatal_on_error("unregister"):
                self._selector.unregister(conn.sock)
        conn.sock.close()
        conn.buffer.clear()

    def _drain_wakeup(self) -> None:
        while True:
            try:
                if not self._wakeup_reader.recv(64):
                    return
            except BlockingIOError:
                return

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def is_running(self) -> bool:
        """Check if the event loop is currently running."""
        return self._running

    def get_stats(self) -> Dict[str, Any]:
        """
        Get server statistics.

        Returns:
            Dictionary with server stats including connection counts,
            request counts, and store statistics.
        """
        return {
            "running": self._running,
            "host": self.host,
            "port": self.port,
            "total_connections": self._connection_count,
            "active_connections": len(self._connections),
            "total_requests": self._total_requests,
            "store_stats": self.store.get_stats(),
        }
