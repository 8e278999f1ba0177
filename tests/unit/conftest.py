"""Shared fixtures for unit tests."""

from collections.abc import Generator
from pathlib import Path

import pytest

from defect_tracker.stores.json_file import JsonFileStore, JsonFileStoreConfig
from defect_tracker.tracker import DefectTracker


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    """Location of the tracker document."""
    return tmp_path / "data" / "tracker.json"


@pytest.fixture
def store(store_path: Path) -> JsonFileStore:
    """JSON file store in a temporary directory."""
    return JsonFileStore(config=JsonFileStoreConfig(path=store_path))


@pytest.fixture
def tracker(store: JsonFileStore) -> Generator[DefectTracker]:
    """Tracker backed by the temporary JSON store."""
    with DefectTracker(store) as tracker:
        yield tracker
