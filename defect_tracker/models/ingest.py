"""Models for result files ingested through the CLI."""

from collections.abc import Sequence

from pydantic import Field

from defect_tracker.models.base import Model
from defect_tracker.models.outcome import (
    OutcomeStatus,
    Severity,
    severity_for_priority,
)


class IngestedResult(Model):
    """One test result in an ingested results file."""

    test_id: str = Field(..., min_length=1, description="Stable test identity")
    status: OutcomeStatus
    test_name: str | None = None
    category: str | None = None
    error_message: str | None = None
    severity: Severity | None = Field(
        default=None, description="Explicit severity; wins over priority"
    )
    priority: str | None = Field(
        default=None, description="Test case priority, e.g. critical or high"
    )

    @property
    def effective_severity(self) -> Severity:
        """Severity to record if this result becomes a defect."""
        if self.severity is not None:
            return self.severity
        return severity_for_priority(self.priority)


class IngestedRun(Model):
    """A complete results file describing one run."""

    total_tests: int | None = Field(
        default=None, ge=0, description="Planned tests; unreported ones are skipped"
    )
    duration_ms: int | None = Field(default=None, ge=0)
    aborted: bool = False
    results: Sequence[IngestedResult] = Field(default_factory=list)
