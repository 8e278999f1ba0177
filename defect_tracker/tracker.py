"""DefectTracker: the object a test driver owns for its whole session."""

import logging
from collections.abc import Sequence
from types import TracebackType
from typing import Self

from defect_tracker.catalog import DefectCatalog
from defect_tracker.config import TrackerConfig
from defect_tracker.history import RunHistory
from defect_tracker.models.defect import Defect, DefectStats
from defect_tracker.models.metrics import DashboardSummary, ImprovementMetrics
from defect_tracker.models.outcome import Severity
from defect_tracker.models.run import CategoryResult, TestRun
from defect_tracker.recorder import RunListener, RunRecorder
from defect_tracker.stores.base import LoadWarning, TrackerStore
from defect_tracker.stores.loading import load_store
from defect_tracker.trends import DEFAULT_TREND_WINDOW, TrendAggregator

log = logging.getLogger(__name__)


class DefectTracker:
    """Defect catalog, run history and trends backed by an injected store.

    The tracker loads the store once on construction. Afterwards it is the
    only writer: the recorder commits every sealed run through the store
    before updating the in-memory catalog and history.
    """

    def __init__(
        self, store: TrackerStore, *, trend_window: int = DEFAULT_TREND_WINDOW
    ) -> None:
        self._store = store
        snapshot = store.load()
        self.load_warnings: Sequence[LoadWarning] = list(snapshot.warnings)

        self._catalog = DefectCatalog(snapshot.defects.values())
        self._history = RunHistory(snapshot.runs)
        self._recorder = RunRecorder(
            catalog=self._catalog, history=self._history, store=store
        )
        self._trends = TrendAggregator(
            history=self._history, catalog=self._catalog, default_window=trend_window
        )
        self._closed = False

        log.info(
            "Defect tracker ready: %d defect(s), %d run(s)",
            len(self._catalog),
            len(self._history),
        )

    @classmethod
    def from_config(cls, config: TrackerConfig) -> "DefectTracker":
        """Create a tracker with the store named in ``config``."""
        store = load_store(config.store, config.store_config)
        return cls(store, trend_window=config.trend_window)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Release the store. An unsealed run is dropped, never persisted."""
        if self._closed:
            return
        self._recorder.discard()
        self._store.close()
        self._closed = True

    @property
    def catalog(self) -> DefectCatalog:
        """The defect catalog."""
        return self._catalog

    @property
    def recorder(self) -> RunRecorder:
        """The run recorder."""
        return self._recorder

    @property
    def trends(self) -> TrendAggregator:
        """The trend aggregator."""
        return self._trends

    @property
    def current_run_number(self) -> int | None:
        """Number of the open run, if any."""
        return self._recorder.current_run_number

    def add_listener(self, listener: RunListener) -> None:
        """Register a callback for every run sealed from now on."""
        self._recorder.add_listener(listener)

    # Driver surface

    def start(self) -> int:
        """Open the next run."""
        return self._recorder.start()

    def report_pass(
        self, test_id: str, test_name: str | None = None, category: str | None = None
    ) -> None:
        """Record a passing test in the open run."""
        self._recorder.report_pass(test_id, test_name, category)

    def report_failure(
        self,
        test_id: str,
        test_name: str,
        category: str,
        error_message: str | None = None,
        severity: Severity = "medium",
    ) -> None:
        """Record a failing test in the open run."""
        self._recorder.report_failure(
            test_id, test_name, category, error_message, severity
        )

    def report_skip(
        self, test_id: str, test_name: str | None = None, category: str | None = None
    ) -> None:
        """Record a skipped test in the open run."""
        self._recorder.report_skip(test_id, test_name, category)

    def complete(
        self,
        total_tests: int | None = None,
        passed: int | None = None,
        failed: int | None = None,
        skipped: int | None = None,
        duration_ms: int | None = None,
        category_breakdown: Sequence[CategoryResult] | None = None,
    ) -> TestRun:
        """Seal the open run; see ``RunRecorder.complete``."""
        return self._recorder.complete(
            total_tests, passed, failed, skipped, duration_ms, category_breakdown
        )

    def abort(
        self, total_tests: int | None = None, duration_ms: int | None = None
    ) -> TestRun:
        """Seal the open run after a user stop."""
        return self._recorder.abort(total_tests, duration_ms)

    def clear_all_data(self) -> None:
        """Wipe the catalog and run history; numbering restarts at 1.

        The store is cleared first, so a failed clear leaves memory matching
        whatever is still on disk.
        """
        self._store.clear()
        self._recorder.discard()
        self._catalog.replace([])
        self._history.clear()
        log.info("All tracking data cleared")

    # Dashboard surface

    def get_all_defects(self) -> Sequence[Defect]:
        """All defects, oldest first."""
        return self._catalog.get_all_defects()

    def get_open_defects(self) -> Sequence[Defect]:
        """Open defects, oldest first."""
        return self._catalog.get_open_defects()

    def get_fixed_defects(self) -> Sequence[Defect]:
        """Fixed defects, oldest first."""
        return self._catalog.get_fixed_defects()

    def get_defect_stats(self) -> DefectStats:
        """Aggregate defect counts."""
        return self._catalog.get_defect_stats()

    def get_all_runs(self) -> Sequence[TestRun]:
        """All sealed runs in run-number order."""
        return self._history.get_all_runs()

    def get_improvement_metrics(self, window_size: int | None = None) -> ImprovementMetrics:
        """Trend series over the last ``window_size`` runs."""
        return self._trends.get_improvement_metrics(window_size)

    def get_dashboard_summary(self) -> DashboardSummary:
        """Headline dashboard figures."""
        return self._trends.get_dashboard_summary()

    def get_failure_history(
        self, test_id: str, limit: int | None = None
    ) -> Sequence[TestRun]:
        """Runs in which ``test_id`` failed, most recent first."""
        return self._history.get_failure_history(test_id, limit)
