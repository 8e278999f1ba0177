"""Models for dashboard trend series."""

from collections.abc import Sequence

from pydantic import Field

from defect_tracker.models.base import Model


class ImprovementMetrics(Model):
    """Parallel per-run series over the trend window, oldest run first."""

    run_labels: Sequence[str] = Field(default_factory=list)
    pass_rate_trend: Sequence[float] = Field(default_factory=list)
    defect_trend: Sequence[int] = Field(
        default_factory=list, description="Open defects at the end of each run"
    )
    fixed_trend: Sequence[int] = Field(default_factory=list)
    reopened_trend: Sequence[int] = Field(default_factory=list)


class DashboardSummary(Model):
    """Headline numbers for the dashboard."""

    total_runs: int = 0
    total_defects: int = 0
    open_defects: int = 0
    fixed_defects: int = 0
    latest_pass_rate: float = 0.0
    average_pass_rate: float = 0.0
