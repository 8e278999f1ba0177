"""JSON file store module."""

from defect_tracker.stores.json_file.config import JsonFileStoreConfig
from defect_tracker.stores.json_file.manifest import json_file_manifest
from defect_tracker.stores.json_file.store import JsonFileStore

__all__ = ["JsonFileStore", "JsonFileStoreConfig", "json_file_manifest"]
