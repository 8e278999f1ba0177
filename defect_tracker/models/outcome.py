"""Models for per-test outcomes reported during a run."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal, TypeAlias

OutcomeStatus: TypeAlias = Literal["passed", "failed", "skipped"]
Severity: TypeAlias = Literal["critical", "high", "medium", "low"]

SEVERITIES: tuple[Severity, ...] = ("critical", "high", "medium", "low")

PRIORITY_TO_SEVERITY: Mapping[str, Severity] = {
    "critical": "critical",
    "high": "high",
}


def severity_for_priority(priority: str | None) -> Severity:
    """Map a test case priority onto a defect severity.

    Only critical and high priorities carry over; everything else is medium.
    """
    if priority is None:
        return "medium"
    return PRIORITY_TO_SEVERITY.get(priority.lower(), "medium")


@dataclass(frozen=True, kw_only=True)
class TestOutcome:
    """Result of a single test within an open run.

    Pure accumulation data - the catalog decides what it means for defects.
    """

    __test__ = False

    test_id: str
    status: OutcomeStatus
    test_name: str | None = None
    category: str | None = None
    error_message: str | None = None
    severity: Severity = "medium"
