"""SQLite store module."""

from defect_tracker.stores.sqlite.config import SqliteStoreConfig
from defect_tracker.stores.sqlite.manifest import sqlite_manifest
from defect_tracker.stores.sqlite.store import SqliteStore

__all__ = ["SqliteStore", "SqliteStoreConfig", "sqlite_manifest"]
