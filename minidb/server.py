#!/usr/bin/env python3
"""
mini-db Server Entry Point

This is the main entry point for starting the mini-db server.

Usage:
    python -m minidb.server <port> <path>
    mini-db <port> <path>

    port    TCP port to listen on (loopback only)
    path    Snapshot file, loaded at startup and rewritten on SIGINT

Environment Variables:
    MINIDB_BACKLOG      - listen() backlog
    MINIDB_READ_SIZE    - Bytes per recv() call
    MINIDB_DEBUG        - Enable debug logging (true/false)
    MINIDB_LOG_LEVEL    - Log level when debug is off
"""

import argparse
import logging
import signal
import sys
from typing import List, Optional

from .config.settings import settings
from .network.tcp_server import FatalServerError, KVServer

logger = logging.getLogger(__name__)


class UsageArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on bad usage."""

    def error(self, message: str) -> None:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def port_number(value: str) -> int:
    """argparse type for a TCP port."""
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}")
    if not 0 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port out of range: {port}")
    return port


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments. Extra trailing arguments are ignored."""
    parser = UsageArgumentParser(
        prog="mini-db",
        description="mini-db: persistent in-memory key-value store server",
    )
    parser.add_argument("port", type=port_number, help="Port number to listen on")
    parser.add_argument("path", help="Snapshot file to load and save")

    args, _extra = parser.parse_known_args(argv)
    return args


def setup_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    # stdout is reserved for the readiness marker
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stderr),
        ]
    )


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the server."""
    args = parse_args(argv)

    setup_logging(debug=settings.DEBUG)

    server = KVServer(path=args.path, port=args.port)

    # Only SIGINT triggers the graceful path; the handler just raises a flag.
    # A SIGINT during setup() makes serve_forever() return straight away.
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: server.stop())

    try:
        server.setup()
        print("ready", flush=True)

        server.serve_forever()
        logger.info("Received SIGINT, saving snapshot")
        server.shutdown()
    except FatalServerError as exc:
        # No snapshot on this path
        sys.exit(f"Fatal error: {exc}")
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    logger.info("Server shutdown complete")


if __name__ == "__main__":
    main()
