"""Ordered history of sealed runs."""

from collections.abc import Iterable, Sequence

from defect_tracker.identity import validate_test_id
from defect_tracker.models.run import TestRun


class RunHistory:
    """Sealed runs ordered by run number, the only authoritative ordering."""

    def __init__(self, runs: Iterable[TestRun] = ()) -> None:
        self._runs: list[TestRun] = []
        self.replace(runs)

    def __len__(self) -> int:
        return len(self._runs)

    def replace(self, runs: Iterable[TestRun]) -> None:
        """Swap the whole history for ``runs``."""
        self._runs = sorted(runs, key=lambda run: run.run_number)

    def append(self, run: TestRun) -> None:
        """Append a newly sealed run.

        Raises:
            ValueError: If the run does not directly follow the last one

        """
        if run.run_number != self.next_run_number:
            raise ValueError(
                f"Expected run #{self.next_run_number}, got run #{run.run_number}"
            )
        self._runs.append(run)

    def clear(self) -> None:
        """Forget every run."""
        self._runs = []

    @property
    def last_run_number(self) -> int:
        """Number of the most recent run, 0 if there is none."""
        return self._runs[-1].run_number if self._runs else 0

    @property
    def next_run_number(self) -> int:
        """Number the next run will get."""
        return self.last_run_number + 1

    def get_all_runs(self) -> Sequence[TestRun]:
        """All runs, oldest first."""
        return list(self._runs)

    def get_recent_runs(self, count: int) -> Sequence[TestRun]:
        """The last ``count`` runs, oldest first."""
        if count < 1:
            raise ValueError(f"count must be at least 1, got {count}")
        return self._runs[-count:]

    def get_failure_history(
        self, test_id: str, limit: int | None = None
    ) -> Sequence[TestRun]:
        """Runs in which ``test_id`` failed, most recent first."""
        validate_test_id(test_id)
        failures = [
            run for run in reversed(self._runs) if test_id in run.failed_test_ids()
        ]
        return failures if limit is None else failures[:limit]
