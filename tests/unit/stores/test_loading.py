"""Tests for store loading module."""

from pathlib import Path

import pytest

from defect_tracker.stores.json_file import JsonFileStore, json_file_manifest
from defect_tracker.stores.loading import (
    StoreConfigError,
    StoreNotFoundError,
    load_store,
    load_store_manifest,
)
from defect_tracker.stores.sqlite import SqliteStore, sqlite_manifest


def test_load_store_manifest_returns_manifest() -> None:
    """Loads store manifests by key."""
    assert load_store_manifest("json-file") is json_file_manifest
    assert load_store_manifest("sqlite") is sqlite_manifest


def test_load_store_manifest_raises_for_unknown_store() -> None:
    """Raises StoreNotFoundError for unknown store key."""
    with pytest.raises(StoreNotFoundError) as exc_info:
        load_store_manifest("unknown-store")

    assert "unknown-store" in str(exc_info.value)
    assert "Available stores" in str(exc_info.value)


def test_manifest_validates_raw_config(tmp_path: Path) -> None:
    """Raw configuration is validated into the backend's config model."""
    store = json_file_manifest.create({"path": str(tmp_path / "t.json")})

    assert isinstance(store, JsonFileStore)
    assert store.path == tmp_path / "t.json"


def test_load_store_builds_configured_backend(tmp_path: Path) -> None:
    """Builds the store registered under the key from raw configuration."""
    store = load_store("sqlite", {"path": str(tmp_path / "t.db"), "timeout": 1})

    assert isinstance(store, SqliteStore)
    assert store.config.timeout == 1.0


def test_load_store_rejects_invalid_config() -> None:
    """Invalid backend configuration names the store."""
    with pytest.raises(StoreConfigError, match="json-file"):
        load_store("json-file", {"indent": "wide"})


def test_load_store_raises_for_unknown_store() -> None:
    """Unknown keys surface as StoreNotFoundError."""
    with pytest.raises(StoreNotFoundError):
        load_store("unknown-store", {})
