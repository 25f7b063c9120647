"""
Key-Value Store Module

This module implements the in-memory key-value map that backs the server.
It performs no I/O: loading and saving live in snapshot.py, and the
network layer only ever talks to it through the command dispatcher.
"""

from typing import Any, Dict, Iterator, Optional, Tuple


class KVStore:
    """
    In-memory key-value store.

    This class provides O(1) average-case time complexity for:
    - put: Insert or update a key-value pair
    - get: Retrieve a value by key
    - delete: Remove a key-value pair
    - exists: Check if a key exists

    Keys and values are strings without embedded whitespace; the protocol
    and snapshot layers guarantee that before anything reaches the store.

    Internal Storage:
        Plain dict, key -> value. A key is never mapped to more than one
        value; put() on an existing key overwrites it.
    """

    def __init__(self):
        """Initialize an empty store."""
        self._store: Dict[str, str] = {}

    def put(self, key: str, value: str) -> bool:
        """
        Insert or update a key-value pair.

        Args:
            key: The key to store
            value: The value to associate with the key

        Returns:
            True on success

        Time Complexity: O(1) average
        """
        self._store[key] = value
        return True

    def get(self, key: str) -> Optional[str]:
        """
        Retrieve the value for a given key.

        Args:
            key: The key to look up

        Returns:
            The value if found, None otherwise

        Time Complexity: O(1) average
        """
        return self._store.get(key)

    def delete(self, key: str) -> bool:
        """
        Delete a key-value pair.

        Args:
            key: The key to delete

        Returns:
            True if key was deleted, False if key didn't exist

        Time Complexity: O(1) average
        """
        if key not in self._store:
            return False

        del self._store[key]
        return True

    def exists(self, key: str) -> bool:
        """Check if a key exists."""
        return key in self._store

    def size(self) -> int:
        """Get the current number of keys in the store."""
        return len(self._store)

    def clear(self) -> None:
        """Remove all keys from the store."""
        self._store.clear()

    def items(self) -> Iterator[Tuple[str, str]]:
        """
        Iterate over all (key, value) pairs.

        Used by the snapshot writer. The order is whatever the underlying
        dict yields and callers must not rely on it.
        """
        return iter(list(self._store.items()))

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the store.

        Returns:
            Dictionary containing:
            - total_keys: Total keys in store
            - key_bytes: Combined length of all keys
            - value_bytes: Combined length of all values
        """
        return {
            "total_keys": len(self._store),
            "key_bytes": sum(len(k) for k in self._store),
            "value_bytes": sum(len(v) for v in self._store.values()),
        }
