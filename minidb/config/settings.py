"""
mini-db Configuration Settings

This module contains all configuration constants for the mini-db server.
Values can be overridden through environment variables.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Server configuration settings."""

    # Network settings (the server only ever binds to loopback)
    HOST: str = "127.0.0.1"
    LISTEN_BACKLOG: int = int(os.environ.get("MINIDB_BACKLOG", "128"))

    # Connection settings
    READ_BUFFER_SIZE: int = int(os.environ.get("MINIDB_READ_SIZE", "1024"))

    # Logging settings
    DEBUG: bool = os.environ.get("MINIDB_DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.environ.get("MINIDB_LOG_LEVEL", "INFO")


# Global settings instance
settings = Settings()
