"""Trackboard storage layer."""

from trackboard.storage.base import ProjectStore
from trackboard.storage.sqlite_store import SQLiteStore

__all__ = ["ProjectStore", "SQLiteStore"]
