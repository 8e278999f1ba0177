"""Canonical defect catalog and the per-run transition rules."""

import logging
from collections import Counter
from collections.abc import Collection, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from defect_tracker.identity import defect_id_for, validate_test_id
from defect_tracker.models.defect import Defect, DefectHistoryEntry, DefectStats
from defect_tracker.models.outcome import SEVERITIES, TestOutcome

log = logging.getLogger(__name__)

UNCATEGORIZED = "uncategorized"


@dataclass(frozen=True, kw_only=True)
class RunDeltas:
    """Defect counters produced by applying one run to the catalog.

    Reopened defects are counted only in ``reopened_defects``; ``new_defects``
    counts identities failing for the first time.
    """

    new_defects: int = 0
    fixed_defects: int = 0
    reopened_defects: int = 0


@dataclass(frozen=True, kw_only=True)
class CatalogUpdate:
    """The catalog state after a run, computed but not yet installed."""

    run_number: int
    by_test_id: Mapping[str, Defect]
    deltas: RunDeltas

    @property
    def defects(self) -> Mapping[str, Defect]:
        """The planned catalog keyed by defect ID, as stores persist it."""
        return {d.id: d for d in self.by_test_id.values()}

    @property
    def open_defects(self) -> int:
        """Number of open defects once this update is installed."""
        return sum(1 for d in self.by_test_id.values() if d.is_open)


def _sort_key(defect: Defect) -> tuple[int, str]:
    return defect.first_found_run, defect.id


class DefectCatalog:
    """Map from test identity to its single Defect record.

    Transitions are computed by ``plan_run`` without touching the catalog, so
    a caller can persist the result first and ``install`` it only once the
    write has succeeded.
    """

    def __init__(self, defects: Iterable[Defect] = ()) -> None:
        self._by_test_id: dict[str, Defect] = {}
        self.replace(defects)

    def __len__(self) -> int:
        return len(self._by_test_id)

    def replace(self, defects: Iterable[Defect]) -> None:
        """Swap the whole catalog for ``defects``."""
        by_test_id: dict[str, Defect] = {}
        ids: set[str] = set()
        for defect in defects:
            if defect.test_id in by_test_id:
                raise ValueError(f"Duplicate defect for test {defect.test_id!r}")
            if defect.id in ids:
                raise ValueError(f"Duplicate defect ID {defect.id!r}")
            by_test_id[defect.test_id] = defect
            ids.add(defect.id)
        self._by_test_id = by_test_id

    def snapshot(self) -> Mapping[str, Defect]:
        """Return the catalog keyed by defect ID."""
        return {d.id: d for d in self._by_test_id.values()}

    def plan_run(
        self, run_number: int, outcomes: Iterable[TestOutcome]
    ) -> CatalogUpdate:
        """Compute the catalog after applying one run's outcomes.

        Args:
            run_number: Number of the run being sealed
            outcomes: Final outcome per test identity for that run

        Returns:
            The resulting defect map and the run's defect counters

        """
        now = datetime.now(timezone.utc)
        by_test_id = dict(self._by_test_id)
        taken = {d.id for d in by_test_id.values()}
        new_defects = fixed_defects = reopened_defects = 0

        for outcome in outcomes:
            test_id = validate_test_id(outcome.test_id)
            existing = by_test_id.get(test_id)

            if outcome.status == "failed":
                if existing is None:
                    created = self._create(run_number, outcome, now, taken)
                    by_test_id[test_id] = created
                    taken.add(created.id)
                    new_defects += 1
                elif existing.is_open:
                    by_test_id[test_id] = existing.model_copy(
                        update={
                            "last_seen_run": run_number,
                            "error_message": outcome.error_message,
                            "updated_at": now,
                        }
                    )
                else:
                    by_test_id[test_id] = self._reopen(
                        existing, run_number, outcome, now
                    )
                    reopened_defects += 1
            elif outcome.status == "passed" and existing and existing.is_open:
                by_test_id[test_id] = self._fix(existing, run_number, now)
                fixed_defects += 1

        return CatalogUpdate(
            run_number=run_number,
            by_test_id=by_test_id,
            deltas=RunDeltas(
                new_defects=new_defects,
                fixed_defects=fixed_defects,
                reopened_defects=reopened_defects,
            ),
        )

    def install(self, update: CatalogUpdate) -> None:
        """Make a planned update the current catalog state."""
        self.replace(update.by_test_id.values())
        log.info(
            "Run #%d applied: %d new, %d fixed, %d reopened, %d open",
            update.run_number,
            update.deltas.new_defects,
            update.deltas.fixed_defects,
            update.deltas.reopened_defects,
            update.open_defects,
        )

    def apply_run(self, run_number: int, outcomes: Iterable[TestOutcome]) -> RunDeltas:
        """Plan and install a run in memory, returning its defect counters."""
        update = self.plan_run(run_number, outcomes)
        self.install(update)
        return update.deltas

    def _create(
        self,
        run_number: int,
        outcome: TestOutcome,
        now: datetime,
        taken: Collection[str],
    ) -> Defect:
        category = outcome.category or UNCATEGORIZED
        defect = Defect(
            id=defect_id_for(outcome.test_id, category, taken),
            test_id=outcome.test_id,
            test_name=outcome.test_name or outcome.test_id,
            category=category,
            severity=outcome.severity,
            status="open",
            first_found_run=run_number,
            last_seen_run=run_number,
            error_message=outcome.error_message,
            created_at=now,
            updated_at=now,
            history=[
                DefectHistoryEntry(
                    run_number=run_number, status="open", timestamp=now, note="created"
                )
            ],
        )
        log.info("New defect %s: %s", defect.id, defect.test_name)
        return defect

    def _fix(self, defect: Defect, run_number: int, now: datetime) -> Defect:
        log.info("Defect %s fixed in run #%d", defect.id, run_number)
        return defect.model_copy(
            update={
                "status": "fixed",
                "fixed_in_run": run_number,
                "updated_at": now,
                "history": [
                    *defect.history,
                    DefectHistoryEntry(
                        run_number=run_number, status="fixed", timestamp=now, note="fixed"
                    ),
                ],
            }
        )

    def _reopen(
        self, defect: Defect, run_number: int, outcome: TestOutcome, now: datetime
    ) -> Defect:
        log.info("Defect %s reopened in run #%d", defect.id, run_number)
        return defect.model_copy(
            update={
                "status": "open",
                "last_seen_run": run_number,
                "fixed_in_run": None,
                "reopen_count": defect.reopen_count + 1,
                "error_message": outcome.error_message,
                "updated_at": now,
                "history": [
                    *defect.history,
                    DefectHistoryEntry(
                        run_number=run_number,
                        status="open",
                        timestamp=now,
                        note="reopened",
                    ),
                ],
            }
        )

    def get_all_defects(self) -> Sequence[Defect]:
        """All defects, oldest first."""
        return sorted(self._by_test_id.values(), key=_sort_key)

    def get_open_defects(self) -> Sequence[Defect]:
        """Open defects, oldest first."""
        return [d for d in self.get_all_defects() if d.status == "open"]

    def get_fixed_defects(self) -> Sequence[Defect]:
        """Fixed defects, oldest first."""
        return [d for d in self.get_all_defects() if d.status == "fixed"]

    def get_defect(self, defect_id: str) -> Defect | None:
        """Look up a defect by its ID."""
        return next(
            (d for d in self._by_test_id.values() if d.id == defect_id), None
        )

    def find_by_test_id(self, test_id: str) -> Defect | None:
        """Look up the defect tracked for a test identity."""
        return self._by_test_id.get(validate_test_id(test_id))

    def open_count(self) -> int:
        """Number of currently open defects."""
        return sum(1 for d in self._by_test_id.values() if d.is_open)

    def get_defect_stats(self) -> DefectStats:
        """Aggregate counts, recomputed from the current catalog on each call."""
        defects = list(self._by_test_id.values())
        by_severity = dict.fromkeys(SEVERITIES, 0)
        by_severity.update(Counter(d.severity for d in defects))
        by_category = dict(sorted(Counter(d.category for d in defects).items()))

        return DefectStats(
            total=len(defects),
            open=sum(1 for d in defects if d.status == "open"),
            fixed=sum(1 for d in defects if d.status == "fixed"),
            reopened=sum(1 for d in defects if d.is_open and d.reopen_count > 0),
            by_severity=by_severity,
            by_category=by_category,
        )
