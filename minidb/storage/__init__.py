"""Storage module for mini-db."""

from .snapshot import Snapshot
from .store import KVStore

__all__ = ["KVStore", "Snapshot"]
