"""
Snapshot Persistence Module

Loads the key-value store from a plain-text snapshot at startup and writes
it back in full at graceful shutdown.

File format (identical for load and save):
    <key><whitespace><value>\n

No header, no escaping, no trailing metadata. Keys and values containing
whitespace cannot be represented and never reach the store.
"""

import logging
import os
from typing import Union

from .store import KVStore

logger = logging.getLogger(__name__)

# Tokens are raw bytes on disk; surrogateescape keeps non-UTF-8 bytes intact
# across a load/save cycle.
ENCODING = "utf-8"
ENCODING_ERRORS = "surrogateescape"


class Snapshot:
    """
    A snapshot file bound to a filesystem path.

    Usage:
        snapshot = Snapshot("/var/lib/minidb/data.txt")
        snapshot.load(store)   # at startup
        ...
        snapshot.save(store)   # at shutdown

    Attributes:
        path: Location of the snapshot file
    """

    def __init__(self, path: Union[str, "os.PathLike[str]"]):
        self.path = os.fspath(path)

    def load(self, store: KVStore) -> int:
        """
        Read the snapshot into the store.

        A file that does not exist (or cannot be opened) is treated as a
        first run and leaves the store untouched. Lines that do not split
        into exactly two fields are skipped. When a key appears on several
        lines, the last one wins.

        Args:
            store: Store to populate

        Returns:
            Number of records applied to the store
        """
        try:
            f = open(self.path, "rb")
        except OSError as exc:
            logger.info(f"No snapshot loaded from {self.path}: {exc.strerror}")
            return 0

        loaded = 0
        with f:
            for line in f:
                fields = line.split()
                if len(fields) != 2:
                    continue
                key, value = (
                    field.decode(ENCODING, ENCODING_ERRORS) for field in fields
                )
                store.put(key, value)
                loaded += 1

        logger.info(f"Loaded {loaded} records from {self.path}")
        return loaded

    def save(self, store: KVStore) -> int:
        """
        Overwrite the snapshot with the full contents of the store.

        Args:
            store: Store to serialize

        Returns:
            Number of records written

        Raises:
            OSError: If the file cannot be opened or written
        """
        written = 0
        with open(self.path, "wb") as f:
            for key, value in store.items():
                f.write(f"{key} {value}\n".encode(ENCODING, ENCODING_ERRORS))
                written += 1

        logger.info(f"Saved {written} records to {self.path}")
        return written
