"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests.
"""

import asyncio
import socket
import threading
from contextlib import closing
from pathlib import Path
from typing import Generator, Optional

import pytest
import pytest_asyncio

from minidb.network.tcp_server import KVServer
from minidb.protocol.dispatcher import CommandDispatcher
from minidb.protocol.parser import ProtocolParser
from minidb.storage.snapshot import Snapshot
from minidb.storage.store import KVStore


def find_free_port() -> int:
    """Find an available port for testing."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(('127.0.0.1', 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# ============================================================================
# Store and Protocol Fixtures
# ============================================================================

@pytest.fixture
def store() -> KVStore:
    """Create a fresh, empty KVStore instance."""
    return KVStore()


@pytest.fixture
def parser() -> ProtocolParser:
    """Create a ProtocolParser instance."""
    return ProtocolParser()


@pytest.fixture
def dispatcher(store: KVStore) -> CommandDispatcher:
    """Create a dispatcher bound to the store fixture."""
    return CommandDispatcher(store)


@pytest.fixture
def snapshot_path(tmp_path: Path) -> Path:
    """Path for a snapshot file that does not exist yet."""
    return tmp_path / "snapshot.txt"


@pytest.fixture
def snapshot(snapshot_path: Path) -> Snapshot:
    """Create a Snapshot bound to snapshot_path."""
    return Snapshot(snapshot_path)


# ============================================================================
# Server Fixtures
# ============================================================================

class ServerThread:
    """
    Runs a KVServer event loop on a background thread.

    The loop itself is single-threaded; the test thread only ever calls
    stop(), which is the one thread-safe entry point on KVServer.

    Usage:
        runner = ServerThread(path)
        runner.start()
        ...  # talk to 127.0.0.1:runner.port
        runner.stop()  # saves the snapshot like a SIGINT would
    """

    def __init__(self, path: Optional[Path] = None):
        self.server = KVServer(path=str(path) if path is not None else None, port=0)
        self.thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.port

    def start(self) -> "ServerThread":
        self.server.setup()
        self.thread = threading.Thread(target=self.server.run, daemon=True)
        self.thread.start()
        return self

    def stop(self) -> None:
        self.server.stop()
        if self.thread is not None:
            self.thread.join(timeout=5)
            assert not self.thread.is_alive(), "server thread did not stop"
            self.thread = None


@pytest.fixture
def server_factory():
    """
    Factory fixture to start servers on a given snapshot path.

    Every server started through it is stopped after the test.
    """
    runners = []

    def factory(path: Optional[Path] = None) -> ServerThread:
        runner = ServerThread(path).start()
        runners.append(runner)
        return runner

    yield factory

    for runner in runners:
        runner.stop()


@pytest.fixture
def server(snapshot_path: Path) -> Generator[KVServer, None, None]:
    """
    Create and start a server instance for testing.

    This fixture:
    1. Creates a KVServer on a free loopback port
    2. Runs its event loop in a background thread
    3. Yields the server for testing
    4. Stops it (writing the snapshot) after the test
    """
    runner = ServerThread(snapshot_path).start()

    yield runner.server

    runner.stop()


@pytest.fixture
def server_port(server: KVServer) -> int:
    """Port the running test server is bound to."""
    return server.port


# ============================================================================
# Client Fixtures
# ============================================================================

class AsyncClient:
    """
    Helper class for testing server interactions.

    Provides a simple async context manager interface for
    sending commands and receiving responses.

    Usage:
        async with AsyncClient('127.0.0.1', port) as client:
            response = await client.send_command("POST key value")
            assert response == "0"
    """

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self.reader = None
        self.writer = None

    async def connect(self) -> None:
        """Establish connection to server."""
        self.reader, self.writer = await asyncio.open_connection(
            self.host, self.port
        )

    async def disconnect(self) -> None:
        """Close connection to server."""
        if self.writer:
            self.writer.close()
            try:
                await self.writer.wait_closed()
            except ConnectionError:
                pass

    async def send_raw(self, data: bytes) -> None:
        """Write bytes as-is, without adding a newline."""
        self.writer.write(data)
        await self.writer.drain()

    async def read_response(self) -> str:
        """Read one response line, stripped of its trailing newline."""
        response = await asyncio.wait_for(self.reader.readline(), timeout=5)
        return response.decode().rstrip('\n')

    async def send_command(self, command: str) -> str:
        """
        Send a command and receive the response.

        Args:
            command: Command string (newline will be added if missing)

        Returns:
            Response string (stripped of trailing newline)
        """
        if not command.endswith('\n'):
            command += '\n'

        await self.send_raw(command.encode())
        return await self.read_response()

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()


@pytest.fixture
def client_factory(server_port: int):
    """
    Factory fixture to create test clients.

    Usage:
        async def test_something(server, client_factory):
            async with client_factory() as client:
                response = await client.send_command("GET key")
    """
    def factory() -> AsyncClient:
        return AsyncClient('127.0.0.1', server_port)
    return factory


@pytest_asyncio.fixture
async def client_reader_writer(server: KVServer, server_port: int):
    """
    Create a raw reader/writer pair connected to the server.

    Useful for low-level protocol testing.
    """
    reader, writer = await asyncio.open_connection('127.0.0.1', server_port)

    yield reader, writer

    writer.close()
    try:
        await writer.wait_closed()
    except ConnectionError:
        pass


async def wait_until(predicate, timeout: float = 5.0) -> None:
    """Poll predicate() until it is true or the timeout expires."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


