"""
mini-db: Persistent In-Memory Key-Value Store

A single-threaded key-value server built on a selector-driven event loop,
communicating over raw TCP sockets and snapshotting its data to a text
file on graceful shutdown.
"""

__version__ = "1.0.0"
