"""Trend series derived from the run history for dashboard charts."""

from decimal import Decimal

from defect_tracker.catalog import DefectCatalog
from defect_tracker.history import RunHistory
from defect_tracker.models.metrics import DashboardSummary, ImprovementMetrics
from defect_tracker.models.run import round_percentage

DEFAULT_TREND_WINDOW = 10


class TrendAggregator:
    """Builds bounded chart series from the run history and catalog."""

    def __init__(
        self,
        *,
        history: RunHistory,
        catalog: DefectCatalog,
        default_window: int = DEFAULT_TREND_WINDOW,
    ) -> None:
        self._history = history
        self._catalog = catalog
        self._default_window = default_window

    def get_improvement_metrics(self, window_size: int | None = None) -> ImprovementMetrics:
        """Return per-run series over the most recent runs, oldest first.

        Fewer runs than ``window_size`` yield shorter series; nothing is
        padded. ``defect_trend`` holds the open-defect count as of the end of
        each run.

        Raises:
            ValueError: If ``window_size`` is less than 1

        """
        window_size = self._default_window if window_size is None else window_size
        if window_size < 1:
            raise ValueError(f"window_size must be at least 1, got {window_size}")

        if not len(self._history):
            return ImprovementMetrics()

        runs = self._history.get_recent_runs(window_size)
        return ImprovementMetrics(
            run_labels=[run.label for run in runs],
            pass_rate_trend=[run.pass_rate for run in runs],
            defect_trend=[run.open_defects for run in runs],
            fixed_trend=[run.fixed_defects for run in runs],
            reopened_trend=[run.reopened_defects for run in runs],
        )

    def get_dashboard_summary(self) -> DashboardSummary:
        """Headline figures across the whole history."""
        runs = self._history.get_all_runs()
        stats = self._catalog.get_defect_stats()

        average = 0.0
        if runs:
            total = sum((Decimal(str(run.pass_rate)) for run in runs), Decimal(0))
            average = round_percentage(total / len(runs))

        return DashboardSummary(
            total_runs=len(runs),
            total_defects=stats.total,
            open_defects=stats.open,
            fixed_defects=stats.fixed,
            latest_pass_rate=runs[-1].pass_rate if runs else 0.0,
            average_pass_rate=average,
        )
