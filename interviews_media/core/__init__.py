"""Core module for configuration and utilities."""

from interviews_media.core.config import settings
from interviews_media.core.database import Base, get_db

__all__ = [
    "settings",
    "Base",
    "get_db",
]
