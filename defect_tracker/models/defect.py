"""Models for tracked defects and their aggregate statistics."""

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Literal, TypeAlias

from pydantic import Field

from defect_tracker.models.base import Model
from defect_tracker.models.outcome import Severity

DefectStatus: TypeAlias = Literal["open", "fixed"]
HistoryNote: TypeAlias = Literal["created", "fixed", "reopened"]


class DefectHistoryEntry(Model):
    """A single status transition of a defect."""

    run_number: int = Field(..., ge=1)
    status: DefectStatus
    timestamp: datetime
    note: HistoryNote


class Defect(Model):
    """A test that has failed at least once, tracked across runs."""

    id: str = Field(..., description="Defect ID derived from the test identity")
    test_id: str = Field(..., description="Stable test identity")
    test_name: str
    category: str
    severity: Severity = "medium"
    status: DefectStatus = "open"
    first_found_run: int = Field(..., ge=1)
    last_seen_run: int = Field(..., ge=1)
    fixed_in_run: int | None = None
    reopen_count: int = Field(default=0, ge=0)
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime
    history: Sequence[DefectHistoryEntry] = Field(default_factory=list)

    @property
    def is_open(self) -> bool:
        """Whether the defect is currently open."""
        return self.status == "open"


class DefectStats(Model):
    """Aggregate counts over the whole defect catalog."""

    total: int = 0
    open: int = 0
    fixed: int = 0
    reopened: int = Field(
        default=0, description="Open defects that have been fixed at least once"
    )
    by_severity: Mapping[str, int] = Field(default_factory=dict)
    by_category: Mapping[str, int] = Field(default_factory=dict)
