"""Run recorder: accumulates one run's outcomes and seals it."""

import logging
import time
from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TypeAlias

from defect_tracker.catalog import UNCATEGORIZED, DefectCatalog
from defect_tracker.errors import RunAlreadyOpenError, RunNotOpenError
from defect_tracker.history import RunHistory
from defect_tracker.identity import validate_test_id
from defect_tracker.models.outcome import SEVERITIES, Severity, TestOutcome
from defect_tracker.models.run import (
    CategoryResult,
    RecordedOutcome,
    TestRun,
    compute_pass_rate,
)
from defect_tracker.stores.base import TrackerStore

log = logging.getLogger(__name__)

RunListener: TypeAlias = Callable[[TestRun], None]


@dataclass(kw_only=True)
class _OpenRun:
    run_number: int
    started: float
    outcomes: dict[str, TestOutcome] = field(default_factory=dict)


def derive_categories(outcomes: Iterable[TestOutcome]) -> Sequence[CategoryResult]:
    """Build per-category counts from the reported outcomes."""
    counts: dict[str, Counter[str]] = {}
    for outcome in outcomes:
        counts.setdefault(outcome.category or UNCATEGORIZED, Counter())[
            outcome.status
        ] += 1

    return [
        CategoryResult(
            category=category,
            total=counter.total(),
            passed=counter["passed"],
            failed=counter["failed"],
            skipped=counter["skipped"],
        )
        for category, counter in sorted(counts.items())
    ]


class RunRecorder:
    """Accumulates outcomes for the single open run and seals it.

    Reporting only buffers outcomes. Nothing reaches the catalog or the store
    until ``complete`` (or ``abort``) seals the run, and in-memory state is
    only updated once the store has accepted the write.
    """

    def __init__(
        self,
        *,
        catalog: DefectCatalog,
        history: RunHistory,
        store: TrackerStore,
        listeners: Sequence[RunListener] = (),
    ) -> None:
        self._catalog = catalog
        self._history = history
        self._store = store
        self._listeners: list[RunListener] = list(listeners)
        self._open: _OpenRun | None = None

    @property
    def is_open(self) -> bool:
        """Whether a run is currently accepting outcomes."""
        return self._open is not None

    @property
    def current_run_number(self) -> int | None:
        """Number of the open run, if any."""
        return self._open.run_number if self._open else None

    def add_listener(self, listener: RunListener) -> None:
        """Register a callback invoked with every successfully sealed run."""
        self._listeners.append(listener)

    def start(self) -> int:
        """Open a new run and return its number.

        Raises:
            RunAlreadyOpenError: If a run is already open

        """
        if self._open is not None:
            raise RunAlreadyOpenError(
                f"Run #{self._open.run_number} is still open; complete or abort it first"
            )
        self._open = _OpenRun(
            run_number=self._history.next_run_number, started=time.monotonic()
        )
        log.info("Starting test run #%d", self._open.run_number)
        return self._open.run_number

    def report_pass(
        self,
        test_id: str,
        test_name: str | None = None,
        category: str | None = None,
    ) -> None:
        """Record a passing test in the open run."""
        self._record(
            TestOutcome(
                test_id=test_id, status="passed", test_name=test_name, category=category
            )
        )

    def report_failure(
        self,
        test_id: str,
        test_name: str,
        category: str,
        error_message: str | None = None,
        severity: Severity = "medium",
    ) -> None:
        """Record a failing test in the open run.

        Raises:
            ValueError: If ``severity`` is not a known severity

        """
        if severity not in SEVERITIES:
            raise ValueError(f"Unknown severity {severity!r}, expected one of {SEVERITIES}")
        self._record(
            TestOutcome(
                test_id=test_id,
                status="failed",
                test_name=test_name,
                category=category,
                error_message=error_message,
                severity=severity,
            )
        )

    def report_skip(
        self,
        test_id: str,
        test_name: str | None = None,
        category: str | None = None,
    ) -> None:
        """Record a skipped test in the open run."""
        self._record(
            TestOutcome(
                test_id=test_id, status="skipped", test_name=test_name, category=category
            )
        )

    def _record(self, outcome: TestOutcome) -> None:
        open_run = self._require_open()
        validate_test_id(outcome.test_id)
        # The latest report for an identity within a run wins
        open_run.outcomes.pop(outcome.test_id, None)
        open_run.outcomes[outcome.test_id] = outcome

    def _require_open(self) -> _OpenRun:
        if self._open is None:
            raise RunNotOpenError("No test run is open; call start() first")
        return self._open

    def complete(
        self,
        total_tests: int | None = None,
        passed: int | None = None,
        failed: int | None = None,
        skipped: int | None = None,
        duration_ms: int | None = None,
        category_breakdown: Sequence[CategoryResult] | None = None,
    ) -> TestRun:
        """Seal the open run, apply it to the catalog and persist both.

        Counts left as ``None`` are taken from the reported outcomes. Tests
        included in ``total_tests`` that never reported count as skipped.

        Args:
            total_tests: Number of tests the driver meant to run
            passed: Passed tests
            failed: Failed tests
            skipped: Skipped tests
            duration_ms: Wall time of the run; measured from start() if omitted
            category_breakdown: Per-category counts; derived if omitted

        Returns:
            The sealed run including its defect counters

        Raises:
            RunNotOpenError: If no run is open
            ValueError: If the counts are negative or exceed ``total_tests``
            StorageError: If persisting failed; the run then stays open

        """
        return self._seal(
            total_tests=total_tests,
            passed=passed,
            failed=failed,
            skipped=skipped,
            duration_ms=duration_ms,
            category_breakdown=category_breakdown,
            aborted=False,
        )

    def abort(
        self, total_tests: int | None = None, duration_ms: int | None = None
    ) -> TestRun:
        """Seal the open run after a user stop, using the outcomes reported so far."""
        log.warning("Aborting test run #%d", self._require_open().run_number)
        return self._seal(
            total_tests=total_tests,
            passed=None,
            failed=None,
            skipped=None,
            duration_ms=duration_ms,
            category_breakdown=None,
            aborted=True,
        )

    def _seal(
        self,
        *,
        total_tests: int | None,
        passed: int | None,
        failed: int | None,
        skipped: int | None,
        duration_ms: int | None,
        category_breakdown: Sequence[CategoryResult] | None,
        aborted: bool,
    ) -> TestRun:
        open_run = self._require_open()
        outcomes = list(open_run.outcomes.values())
        reported = Counter(o.status for o in outcomes)

        passed = reported["passed"] if passed is None else passed
        failed = reported["failed"] if failed is None else failed
        skipped = reported["skipped"] if skipped is None else skipped
        counted = passed + failed + skipped
        total_tests = counted if total_tests is None else total_tests

        if min(total_tests, passed, failed, skipped) < 0:
            raise ValueError("Run counts must not be negative")
        if counted > total_tests:
            raise ValueError(
                f"passed + failed + skipped ({counted}) exceeds total_tests ({total_tests})"
            )
        skipped += total_tests - counted

        if duration_ms is None:
            duration_ms = int((time.monotonic() - open_run.started) * 1000)
        if category_breakdown is None:
            category_breakdown = derive_categories(outcomes)

        update = self._catalog.plan_run(open_run.run_number, outcomes)
        run = TestRun(
            run_number=open_run.run_number,
            timestamp=datetime.now(timezone.utc),
            duration_ms=duration_ms,
            total_tests=total_tests,
            passed=passed,
            failed=failed,
            skipped=skipped,
            pass_rate=compute_pass_rate(passed, total_tests),
            new_defects=update.deltas.new_defects,
            fixed_defects=update.deltas.fixed_defects,
            reopened_defects=update.deltas.reopened_defects,
            open_defects=update.open_defects,
            categories=category_breakdown,
            outcomes=[
                RecordedOutcome(
                    test_id=o.test_id,
                    status=o.status,
                    test_name=o.test_name,
                    error_message=o.error_message,
                )
                for o in outcomes
            ],
            aborted=aborted,
        )

        self._store.commit(run, update.defects)
        self._catalog.install(update)
        self._history.append(run)
        self._open = None

        log.info(
            "Run #%d complete: %d/%d passed (%.2f%%), %d new, %d fixed, %d reopened",
            run.run_number,
            run.passed,
            run.total_tests,
            run.pass_rate,
            run.new_defects,
            run.fixed_defects,
            run.reopened_defects,
        )
        self._notify(run)
        return run

    def discard(self) -> None:
        """Drop the open run without sealing it; nothing was persisted for it."""
        if self._open is not None:
            log.warning("Discarding unsealed test run #%d", self._open.run_number)
            self._open = None

    def _notify(self, run: TestRun) -> None:
        for listener in self._listeners:
            try:
                listener(run)
            except Exception:
                log.exception("Run listener failed for run #%d", run.run_number)
