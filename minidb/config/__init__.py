"""Configuration module for mini-db."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
