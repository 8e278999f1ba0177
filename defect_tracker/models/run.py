"""Models for sealed test runs."""

from collections.abc import Sequence
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from pydantic import Field

from defect_tracker.models.base import Model
from defect_tracker.models.outcome import OutcomeStatus

_HUNDREDTHS = Decimal("0.01")


def round_percentage(value: Decimal) -> float:
    """Round a percentage half-up to two decimals."""
    return float(value.quantize(_HUNDREDTHS, rounding=ROUND_HALF_UP))


def compute_pass_rate(passed: int, total_tests: int) -> float:
    """Return ``passed / total_tests`` as a percentage, rounded half-up.

    An empty run has a pass rate of 0.0 rather than being undefined.
    """
    if total_tests <= 0:
        return 0.0
    return round_percentage(Decimal(passed) * 100 / Decimal(total_tests))


class CategoryResult(Model):
    """Aggregate outcome counts for one test category within a run."""

    category: str = Field(..., description="Test category")
    total: int = Field(default=0, ge=0)
    passed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)


class RecordedOutcome(Model):
    """Outcome of a single test as kept in the run history."""

    test_id: str
    status: OutcomeStatus
    test_name: str | None = None
    error_message: str | None = None


class TestRun(Model):
    """Immutable record of one sealed execution of the test suite."""

    __test__ = False

    run_number: int = Field(..., ge=1, description="Monotonic run number")
    timestamp: datetime = Field(..., description="Seal time (informational only)")
    duration_ms: int = Field(default=0, ge=0)
    total_tests: int = Field(default=0, ge=0)
    passed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    pass_rate: float = Field(default=0.0, ge=0.0, le=100.0)
    new_defects: int = Field(default=0, ge=0)
    fixed_defects: int = Field(default=0, ge=0)
    reopened_defects: int = Field(default=0, ge=0)
    open_defects: int = Field(
        default=0, ge=0, description="Open defects at the end of this run"
    )
    categories: Sequence[CategoryResult] = Field(default_factory=list)
    outcomes: Sequence[RecordedOutcome] = Field(default_factory=list)
    aborted: bool = False

    @property
    def label(self) -> str:
        """Chart label for this run."""
        return f"Run #{self.run_number}"

    def failed_test_ids(self) -> set[str]:
        """Identities of the tests that failed in this run."""
        return {o.test_id for o in self.outcomes if o.status == "failed"}
