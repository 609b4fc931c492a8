"""Application layer package."""

from .aggregation import (
    AggregationResult,
    DataQualityWarning,
    FunnelMetrics,
    FunnelResult,
    FunnelStage,
    GroupTotals,
    aggregate,
    funnel_metrics,
    group_key,
)
from .forecast import ForecastSummary, ZoneHighlight, monthly_forecast, zone_highlights
from .targets import (
    ComparisonRecord,
    TargetComparison,
    TargetStatus,
    compare,
    compare_targets,
    index_targets,
    lookup_target,
    summarize_scope_targets,
)
from .report_service import ReportResult, run_reporting_pipeline

__all__ = [
    "AggregationResult",
    "ComparisonRecord",
    "DataQualityWarning",
    "ForecastSummary",
    "FunnelMetrics",
    "FunnelResult",
    "FunnelStage",
    "GroupTotals",
    "ReportResult",
    "TargetComparison",
    "TargetStatus",
    "ZoneHighlight",
    "aggregate",
    "compare",
    "compare_targets",
    "funnel_metrics",
    "group_key",
    "index_targets",
    "lookup_target",
    "monthly_forecast",
    "run_reporting_pipeline",
    "summarize_scope_targets",
    "zone_highlights",
]
