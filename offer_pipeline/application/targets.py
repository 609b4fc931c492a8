"""Application service comparing won actuals against configured targets."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, localcontext
from enum import Enum
from typing import Iterable, Sequence

from offer_pipeline.application.aggregation import AggregationResult, GroupTotals, aggregate
from offer_pipeline.config import ACHIEVEMENT_SENTINEL, FULL_ACHIEVEMENT, PERCENT_QUANTUM
from offer_pipeline.domain.models import (
    Actual,
    GroupBy,
    Offer,
    PeriodType,
    ReportingPeriod,
    ScopeKind,
    Target,
    TargetScope,
)
from offer_pipeline.domain.valuation import ZERO

logger = logging.getLogger(__name__)

TargetKey = tuple[TargetScope, "str | None", str, PeriodType]

SCOPE_GROUPING: dict[ScopeKind, GroupBy] = {
    ScopeKind.ZONE: GroupBy.ZONE,
    ScopeKind.USER: GroupBy.USER,
}


class TargetStatus(str, Enum):
    CONFIGURED = "CONFIGURED"
    NOT_CONFIGURED = "NOT_CONFIGURED"


@dataclass(frozen=True)
class TargetComparison:
    achievement_percent: Decimal
    value_variance: Decimal
    count_variance: int


@dataclass(frozen=True)
class ComparisonRecord:
    group_key: str
    product_type: str | None
    status: TargetStatus
    actual: Actual
    target_value: Decimal | None = None
    target_offer_count: int | None = None
    achievement_percent: Decimal | None = None
    value_variance: Decimal | None = None
    count_variance: int | None = None
    target_count: int = 0

    @property
    def has_target(self) -> bool:
        return self.status is TargetStatus.CONFIGURED


def achievement_percent(actual_value: Decimal, target_value: Decimal) -> Decimal:
    """Actual as a percentage of target, quantised to 0.01.

    A non-positive target yields 100.00 when nothing was achieved either and
    ACHIEVEMENT_SENTINEL when something was, never NaN or infinity.
    """
    if target_value > 0:
        ratio = actual_value / target_value * 100
        with localcontext() as ctx:
            # room for every integer digit plus the two decimals
            ctx.prec = max(ctx.prec, ratio.adjusted() + 3)
            return ratio.quantize(PERCENT_QUANTUM)
    if actual_value > 0:
        return ACHIEVEMENT_SENTINEL
    return FULL_ACHIEVEMENT


def compare(actual: Actual, target: Target) -> TargetComparison:
    return TargetComparison(
        achievement_percent=achievement_percent(actual.value, target.target_value),
        value_variance=actual.value - target.target_value,
        count_variance=actual.count - target.target_offer_count,
    )


def index_targets(targets: Iterable[Target]) -> dict[TargetKey, Target]:
    """Index targets by their upsert key; a later duplicate replaces an earlier one."""
    index: dict[TargetKey, Target] = {}
    for target in targets:
        key = target.upsert_key
        if key in index:
            logger.warning(
                "Duplicate target for %s/%s product=%s period=%s; keeping the later record",
                target.scope.kind.value,
                target.scope.scope_id,
                target.product_type,
                target.target_period,
            )
        index[key] = target
    return index


def lookup_target(
    index: dict[TargetKey, Target],
    scope: TargetScope,
    period: ReportingPeriod,
    product_type: str | None = None,
) -> Target | None:
    """Return the configured target, or None when no target is set."""
    return index.get((scope, product_type, period.label, period.period_type))


def _configured_record(group_key: str, target: Target, actual: Actual) -> ComparisonRecord:
    comparison = compare(actual, target)
    return ComparisonRecord(
        group_key=group_key,
        product_type=target.product_type,
        status=TargetStatus.CONFIGURED,
        actual=actual,
        target_value=target.target_value,
        target_offer_count=target.target_offer_count,
        achievement_percent=comparison.achievement_percent,
        value_variance=comparison.value_variance,
        count_variance=comparison.count_variance,
        target_count=1,
    )


def _missing_record(group_key: str, product_type: str | None, actual: Actual) -> ComparisonRecord:
    return ComparisonRecord(
        group_key=group_key,
        product_type=product_type,
        status=TargetStatus.NOT_CONFIGURED,
        actual=actual,
    )


def compare_targets(
    offers: Iterable[Offer],
    targets: Iterable[Target],
    scope_kind: ScopeKind,
    period: ReportingPeriod,
) -> list[ComparisonRecord]:
    """Compare won actuals per scope against the targets set for ``period``.

    Every target of ``scope_kind`` in the period yields a record, product-type
    targets being measured against that product type only. Scopes with won or
    pipeline activity but no overall target get an explicit NOT_CONFIGURED
    record.
    """
    snapshot = list(offers)
    group_by = SCOPE_GROUPING[scope_kind]
    index = index_targets(targets)
    relevant = [
        target
        for target in index.values()
        if target.scope.kind is scope_kind
        and target.target_period == period.label
        and target.period_type is period.period_type
    ]

    product_types = {target.product_type for target in relevant}
    product_types.add(None)
    rollups: dict[str | None, AggregationResult] = {
        product_type: aggregate(snapshot, group_by, period=period, product_type=product_type)
        for product_type in product_types
    }

    records: list[ComparisonRecord] = []
    for target in relevant:
        totals = rollups[target.product_type].groups.get(target.scope.scope_id, GroupTotals())
        records.append(_configured_record(target.scope.scope_id, target, totals.actual))

    for key, totals in rollups[None].groups.items():
        if lookup_target(index, TargetScope(scope_kind, key), period) is None:
            records.append(_missing_record(key, None, totals.actual))

    records.sort(key=lambda record: (record.group_key, record.product_type is not None, record.product_type or ""))
    configured = sum(1 for record in records if record.has_target)
    logger.info(
        "Compared %d %s scope record(s) for %s: %d with target, %d without",
        len(records),
        scope_kind.value.lower(),
        period.label,
        configured,
        len(records) - configured,
    )
    return records


def summarize_scope_targets(records: Sequence[ComparisonRecord]) -> list[ComparisonRecord]:
    """Collapse comparison records to one overall row per scope.

    The overall target is used when configured; otherwise the product-type
    targets of the scope are summed. Actuals always come from the overall row.
    """
    by_scope: dict[str, list[ComparisonRecord]] = {}
    for record in records:
        by_scope.setdefault(record.group_key, []).append(record)

    summaries: list[ComparisonRecord] = []
    for key in sorted(by_scope):
        scoped = by_scope[key]
        overall = next((record for record in scoped if record.product_type is None), None)
        actual = overall.actual if overall is not None else Actual(value=ZERO, count=0)

        if overall is not None and overall.has_target:
            summaries.append(overall)
            continue

        product_targets = [record for record in scoped if record.product_type is not None and record.has_target]
        if not product_targets:
            summaries.append(_missing_record(key, None, actual))
            continue

        target_value = sum((record.target_value or ZERO for record in product_targets), ZERO)
        target_offer_count = sum(record.target_offer_count or 0 for record in product_targets)
        summaries.append(
            ComparisonRecord(
                group_key=key,
                product_type=None,
                status=TargetStatus.CONFIGURED,
                actual=actual,
                target_value=target_value,
                target_offer_count=target_offer_count,
                achievement_percent=achievement_percent(actual.value, target_value),
                value_variance=actual.value - target_value,
                count_variance=actual.count - target_offer_count,
                target_count=len(product_targets),
            )
        )
    return summaries
