"""Loading of stores from entry points."""

import logging
from collections.abc import Mapping
from importlib.metadata import entry_points
from typing import Any

from pydantic import ValidationError

from defect_tracker.errors import TrackerError
from defect_tracker.stores.base import TrackerStore
from defect_tracker.stores.manifest import StoreManifest

log = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "defect_tracker.stores"


class StoreNotFoundError(TrackerError):
    """Raised when a store is not found."""


class StoreConfigError(TrackerError, ValueError):
    """Raised when a store's configuration does not validate."""


def load_store_manifest(key: str) -> StoreManifest[Any]:
    """Load a store manifest by key.

    Args:
        key: The store key as registered in pyproject.toml
             (e.g., "json-file", "sqlite")

    Returns:
        The store manifest instance

    Raises:
        StoreNotFoundError: If no store with the given key is found

    """
    entries = entry_points(group=ENTRY_POINT_GROUP)

    for entry in entries:
        if entry.name == key:
            manifest: StoreManifest[Any] = entry.load()
            return manifest

    available = sorted(e.name for e in entries)
    raise StoreNotFoundError(
        f"Store '{key}' not found. Available stores: {available}"
    )


def load_store(key: str, raw_config: Mapping[str, Any]) -> TrackerStore:
    """Build the store registered under ``key`` from raw configuration.

    Raises:
        StoreNotFoundError: If no store with the given key is found
        StoreConfigError: If ``raw_config`` is invalid for that store

    """
    manifest = load_store_manifest(key)
    try:
        store = manifest.create(raw_config)
    except ValidationError as exc:
        raise StoreConfigError(
            f"Invalid configuration for store '{key}': {exc}"
        ) from exc
    log.info("Using %s store %s", key, type(store).__name__)
    return store
