"""Offer value attribution and pipeline aggregation engine."""

from .application import (
    AggregationResult,
    ComparisonRecord,
    FunnelResult,
    TargetStatus,
    aggregate,
    compare,
    compare_targets,
    funnel_metrics,
    lookup_target,
    monthly_forecast,
    run_reporting_pipeline,
    zone_highlights,
)
from .domain import (
    ConfigurationError,
    GroupBy,
    Offer,
    PeriodType,
    ReportingPeriod,
    ScopeKind,
    Stage,
    StageBucket,
    Target,
    TargetScope,
    ValuePurpose,
    attribute_period,
    classify,
    resolve_value,
)

__all__ = [
    "AggregationResult",
    "ComparisonRecord",
    "ConfigurationError",
    "FunnelResult",
    "GroupBy",
    "Offer",
    "PeriodType",
    "ReportingPeriod",
    "ScopeKind",
    "Stage",
    "StageBucket",
    "Target",
    "TargetScope",
    "TargetStatus",
    "ValuePurpose",
    "aggregate",
    "attribute_period",
    "classify",
    "compare",
    "compare_targets",
    "funnel_metrics",
    "lookup_target",
    "monthly_forecast",
    "resolve_value",
    "run_reporting_pipeline",
    "zone_highlights",
]
