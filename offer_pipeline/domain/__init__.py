"""Domain layer package."""

from .errors import ConfigurationError, InvalidPeriodError, InvalidRecordError
from .models import (
    Actual,
    AttributedPeriod,
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
)
from .periods import attribute_period, in_period
from .stages import classify
from .valuation import has_recorded_value, resolve_value

__all__ = [
    "Actual",
    "AttributedPeriod",
    "ConfigurationError",
    "GroupBy",
    "InvalidPeriodError",
    "InvalidRecordError",
    "Offer",
    "PeriodType",
    "ReportingPeriod",
    "ScopeKind",
    "Stage",
    "StageBucket",
    "Target",
    "TargetScope",
    "ValuePurpose",
    "attribute_period",
    "classify",
    "has_recorded_value",
    "in_period",
    "resolve_value",
]
