"""End-to-end tests for DefectTracker over a real JSON store."""

from pathlib import Path
from unittest.mock import patch

import pytest

from defect_tracker.config import TrackerConfig
from defect_tracker.errors import RunNotOpenError, StorageError
from defect_tracker.stores.json_file import JsonFileStore
from defect_tracker.tracker import DefectTracker


def statuses(tracker: DefectTracker) -> dict[str, str]:
    return {d.test_id: d.status for d in tracker.get_all_defects()}


def test_end_to_end_scenario(tracker: DefectTracker) -> None:
    """Two tests across three runs: new, fixed and reopened defects."""
    tracker.start()
    tracker.report_failure("testA", "Test A", "ui", "button missing", "critical")
    tracker.report_pass("testB", "Test B", "api")
    run1 = tracker.complete(total_tests=2, passed=1, failed=1, skipped=0)

    assert statuses(tracker) == {"testA": "open"}
    assert (run1.new_defects, run1.fixed_defects, run1.reopened_defects) == (1, 0, 0)

    tracker.start()
    tracker.report_pass("testA", "Test A", "ui")
    tracker.report_failure("testB", "Test B", "api", "500 error", "medium")
    run2 = tracker.complete(total_tests=2, passed=1, failed=1, skipped=0)

    assert statuses(tracker) == {"testA": "fixed", "testB": "open"}
    assert (run2.new_defects, run2.fixed_defects, run2.reopened_defects) == (1, 1, 0)

    tracker.start()
    tracker.report_failure("testA", "Test A", "ui", "button missing again", "critical")
    tracker.report_pass("testB", "Test B", "api")
    run3 = tracker.complete(total_tests=2, passed=1, failed=1, skipped=0)

    assert statuses(tracker) == {"testA": "open", "testB": "fixed"}
    assert (run3.new_defects, run3.fixed_defects, run3.reopened_defects) == (0, 1, 1)

    defect_a = tracker.catalog.find_by_test_id("testA")
    assert defect_a is not None
    assert defect_a.first_found_run == 1
    assert defect_a.last_seen_run == 3
    assert defect_a.fixed_in_run is None
    assert defect_a.severity == "critical"

    metrics = tracker.get_improvement_metrics(5)
    assert metrics.run_labels == ["Run #1", "Run #2", "Run #3"]
    assert metrics.defect_trend == [1, 1, 1]
    assert metrics.fixed_trend == [0, 1, 1]
    assert metrics.reopened_trend == [0, 0, 1]
    assert metrics.pass_rate_trend == [50.0, 50.0, 50.0]


def test_state_survives_reopening_the_store(store: JsonFileStore) -> None:
    """A new tracker on the same store sees the committed state."""
    with DefectTracker(store) as tracker:
        tracker.start()
        tracker.report_failure("a", "A", "ui", "boom")
        tracker.complete()

    with DefectTracker(store) as reopened:
        assert reopened.load_warnings == []
        assert [d.test_id for d in reopened.get_open_defects()] == ["a"]
        assert [r.run_number for r in reopened.get_all_runs()] == [1]
        assert reopened.start() == 2


def test_fresh_store_reports_missing_warning(tracker: DefectTracker) -> None:
    """A store with no data loads empty and says so."""
    assert [w.kind for w in tracker.load_warnings] == ["missing"]
    assert tracker.get_all_runs() == []


def test_corrupt_store_degrades_to_empty(
    store: JsonFileStore, store_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """A corrupt document loads empty with a warning instead of raising."""
    store_path.parent.mkdir(parents=True)
    store_path.write_text("{not json")

    with DefectTracker(store) as tracker:
        assert [w.kind for w in tracker.load_warnings] == ["corrupt"]
        assert tracker.get_all_defects() == []
        assert "unreadable" in caplog.text

        tracker.start()
        tracker.report_pass("a")
        tracker.complete()

    backups = list(store_path.parent.glob("tracker.json.corrupt-*"))
    assert len(backups) == 1
    assert backups[0].read_text() == "{not json"


def test_clear_all_data_resets_numbering(tracker: DefectTracker) -> None:
    """After clearing, collections are empty and numbering restarts at 1."""
    for _ in range(2):
        tracker.start()
        tracker.report_failure("a", "A", "ui", "boom")
        tracker.complete()

    tracker.clear_all_data()

    assert tracker.get_all_defects() == []
    assert tracker.get_all_runs() == []
    assert tracker.get_defect_stats().total == 0
    assert tracker.start() == 1
    run = tracker.complete()
    assert run.run_number == 1


def test_clear_all_data_is_persisted(store: JsonFileStore) -> None:
    """A cleared store stays cleared for the next tracker."""
    with DefectTracker(store) as tracker:
        tracker.start()
        tracker.report_failure("a", "A", "ui", "boom")
        tracker.complete()
        tracker.clear_all_data()

    with DefectTracker(store) as reopened:
        assert reopened.get_all_runs() == []
        assert reopened.get_all_defects() == []


def test_failed_clear_keeps_memory(tracker: DefectTracker) -> None:
    """If the store cannot be cleared nothing is forgotten in memory."""
    tracker.start()
    tracker.report_failure("a", "A", "ui", "boom")
    tracker.complete()

    with (
        patch.object(JsonFileStore, "clear", side_effect=StorageError("read-only")),
        pytest.raises(StorageError),
    ):
        tracker.clear_all_data()

    assert len(tracker.get_all_defects()) == 1
    assert len(tracker.get_all_runs()) == 1


def test_failed_write_keeps_disk_and_memory_aligned(
    tracker: DefectTracker, store: JsonFileStore
) -> None:
    """A write error surfaces as StorageError and nothing is half-applied."""
    tracker.start()
    tracker.report_failure("a", "A", "ui", "boom")
    tracker.complete()

    tracker.start()
    tracker.report_pass("a")
    with (
        patch("defect_tracker.stores.json_file.store.os.replace", side_effect=OSError("disk full")),
        pytest.raises(StorageError, match="disk full"),
    ):
        tracker.complete()

    assert [d.status for d in tracker.get_all_defects()] == ["open"]
    assert len(tracker.get_all_runs()) == 1
    on_disk = store.load()
    assert [r.run_number for r in on_disk.runs] == [1]
    assert [d.status for d in on_disk.defects.values()] == ["open"]
    assert list(store.path.parent.glob("*.tmp")) == []


def test_unreadable_document_is_not_overwritten(
    tracker: DefectTracker, store: JsonFileStore
) -> None:
    """A read error during commit leaves the existing document in place."""
    tracker.start()
    tracker.report_failure("a", "A", "ui", "boom")
    tracker.complete()
    before = store.path.read_bytes()

    tracker.start()
    tracker.report_pass("a")
    with (
        patch.object(Path, "read_bytes", side_effect=PermissionError("denied")),
        pytest.raises(StorageError, match="denied"),
    ):
        tracker.complete()

    assert store.path.read_bytes() == before
    assert sorted(p.name for p in store.path.parent.iterdir()) == ["tracker.json"]
    assert tracker.recorder.is_open
    assert len(tracker.get_all_runs()) == 1
    assert [d.status for d in tracker.get_all_defects()] == ["open"]


def test_failure_history_newest_first(tracker: DefectTracker) -> None:
    """Runs where a test failed are listed most recent first."""
    for fails in (True, False, True, True):
        tracker.start()
        if fails:
            tracker.report_failure("a", "A", "ui", "boom")
        else:
            tracker.report_pass("a")
        tracker.complete()

    history = tracker.get_failure_history("a")

    assert [run.run_number for run in history] == [4, 3, 1]
    assert [run.run_number for run in tracker.get_failure_history("a", limit=1)] == [4]
    assert tracker.get_failure_history("never-failed") == []


def test_close_discards_open_run(store: JsonFileStore) -> None:
    """Closing with an open run persists nothing for it."""
    with DefectTracker(store) as tracker:
        tracker.start()
        tracker.report_failure("a", "A", "ui", "boom")

    assert tracker.current_run_number is None
    with pytest.raises(RunNotOpenError):
        tracker.complete()
    with DefectTracker(store) as reopened:
        assert reopened.get_all_runs() == []


def test_from_config_uses_registered_store(tmp_path: Path) -> None:
    """The store is built through its entry point."""
    config = TrackerConfig(
        store="sqlite",
        store_config={"path": str(tmp_path / "tracker.db")},
        trend_window=2,
    )

    with DefectTracker.from_config(config) as tracker:
        for _ in range(3):
            tracker.start()
            tracker.complete()

        assert len(tracker.get_improvement_metrics().run_labels) == 2

    assert (tmp_path / "tracker.db").exists()


def test_dashboard_summary(tracker: DefectTracker) -> None:
    """Summary combines run history and defect counts."""
    tracker.start()
    tracker.report_failure("a", "A", "ui", "boom")
    tracker.report_pass("b")
    tracker.complete()
    tracker.start()
    tracker.report_pass("a")
    tracker.report_pass("b")
    tracker.complete()

    summary = tracker.get_dashboard_summary()

    assert summary.total_runs == 2
    assert summary.total_defects == 1
    assert summary.open_defects == 0
    assert summary.fixed_defects == 1
    assert summary.latest_pass_rate == 100.0
    assert summary.average_pass_rate == 75.0
