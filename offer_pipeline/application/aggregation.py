"""Application service rolling offers up into won/pipeline totals per group."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from offer_pipeline.config import PERCENT_QUANTUM, UNASSIGNED_GROUP_KEY
from offer_pipeline.domain.models import Actual, GroupBy, Offer, ReportingPeriod, Stage, StageBucket, ValuePurpose
from offer_pipeline.domain.periods import attribute_period, in_period
from offer_pipeline.domain.stages import classify
from offer_pipeline.domain.valuation import ZERO, has_recorded_value, resolve_value

logger = logging.getLogger(__name__)

MISSING_VALUE = "MISSING_VALUE"

# Stage order of the conversion funnel; LOST sits outside it.
FUNNEL_STAGES: tuple[Stage, ...] = (
    Stage.INITIAL,
    Stage.PROPOSAL_SENT,
    Stage.NEGOTIATION,
    Stage.FINAL_APPROVAL,
    Stage.PO_RECEIVED,
    Stage.ORDER_BOOKED,
    Stage.WON,
)


@dataclass(frozen=True)
class GroupTotals:
    won_count: int = 0
    won_value: Decimal = ZERO
    pipeline_count: int = 0
    pipeline_value: Decimal = ZERO

    @property
    def actual(self) -> Actual:
        return Actual(value=self.won_value, count=self.won_count)

    def __add__(self, other: "GroupTotals") -> "GroupTotals":
        return GroupTotals(
            won_count=self.won_count + other.won_count,
            won_value=self.won_value + other.won_value,
            pipeline_count=self.pipeline_count + other.pipeline_count,
            pipeline_value=self.pipeline_value + other.pipeline_value,
        )


@dataclass(frozen=True)
class DataQualityWarning:
    reference_number: str
    code: str
    message: str


@dataclass(frozen=True)
class AggregationResult:
    group_by: GroupBy
    period: ReportingPeriod | None
    groups: dict[str, GroupTotals]
    data_quality: list[DataQualityWarning] = field(default_factory=list)

    @property
    def missing_value_count(self) -> int:
        return sum(1 for warning in self.data_quality if warning.code == MISSING_VALUE)

    def totals(self) -> GroupTotals:
        total = GroupTotals()
        for totals in self.groups.values():
            total = total + totals
        return total


def group_key(offer: Offer, group_by: GroupBy) -> str:
    if group_by is GroupBy.ZONE:
        value = offer.zone_id
    elif group_by is GroupBy.USER:
        value = offer.assigned_to_id
    elif group_by is GroupBy.PRODUCT_TYPE:
        value = offer.product_type
    else:
        raise ValueError(f"Unknown grouping: {group_by!r}")
    return value if value else UNASSIGNED_GROUP_KEY


class _Accumulator:
    __slots__ = ("won_count", "won_value", "pipeline_count", "pipeline_value")

    def __init__(self) -> None:
        self.won_count = 0
        self.won_value = ZERO
        self.pipeline_count = 0
        self.pipeline_value = ZERO

    def freeze(self) -> GroupTotals:
        return GroupTotals(
            won_count=self.won_count,
            won_value=self.won_value,
            pipeline_count=self.pipeline_count,
            pipeline_value=self.pipeline_value,
        )


def aggregate(
    offers: Iterable[Offer],
    group_by: GroupBy,
    period: ReportingPeriod | None = None,
    product_type: str | None = None,
) -> AggregationResult:
    """Roll offers up into won and pipeline totals per group.

    Won totals are restricted to ``period`` when one is given; pipeline totals
    always describe the current snapshot. LOST offers contribute to neither.
    ``product_type`` narrows the input to a single product type.
    """
    accumulators: dict[str, _Accumulator] = {}
    warnings: list[DataQualityWarning] = []

    for offer in offers:
        if product_type is not None and offer.product_type != product_type:
            continue
        bucket = classify(offer.stage)

        if not has_recorded_value(offer):
            warnings.append(
                DataQualityWarning(
                    reference_number=offer.reference_number,
                    code=MISSING_VALUE,
                    message="offerValue and poValue are both missing",
                )
            )

        key = group_key(offer, group_by)
        acc = accumulators.get(key)
        if acc is None:
            acc = accumulators[key] = _Accumulator()

        if bucket is StageBucket.LOST:
            continue

        if bucket is StageBucket.WON and (period is None or in_period(attribute_period(offer), period)):
            acc.won_count += 1
            acc.won_value += resolve_value(offer, ValuePurpose.REALIZED)

        acc.pipeline_count += 1
        acc.pipeline_value += resolve_value(offer, ValuePurpose.EXPOSURE)

    warnings.sort(key=lambda warning: warning.reference_number)
    if warnings:
        logger.warning(
            "%d offer(s) have no offerValue or poValue; counted as 0 (first: %s)",
            len(warnings),
            warnings[0].reference_number,
        )

    groups = {key: accumulators[key].freeze() for key in sorted(accumulators)}
    return AggregationResult(group_by=group_by, period=period, groups=groups, data_quality=warnings)


@dataclass(frozen=True)
class FunnelStage:
    stage: Stage
    count: int
    percent_of_peak: Decimal


@dataclass(frozen=True)
class FunnelMetrics:
    total_count: int
    won_count: int
    lost_count: int
    active_count: int
    win_rate: Decimal
    conversion_rate: Decimal
    average_deal_size: Decimal
    stages: list[FunnelStage] = field(default_factory=list)


@dataclass(frozen=True)
class FunnelResult:
    group_by: GroupBy
    groups: dict[str, FunnelMetrics]
    overall: FunnelMetrics


def _rate(part: int | Decimal, whole: int | Decimal) -> Decimal:
    if whole <= 0:
        return ZERO.quantize(PERCENT_QUANTUM)
    return (Decimal(part) / Decimal(whole) * 100).quantize(PERCENT_QUANTUM)


class _FunnelAccumulator:
    __slots__ = ("stage_counts", "valued_count", "valued_sum")

    def __init__(self) -> None:
        self.stage_counts: dict[Stage, int] = {}
        self.valued_count = 0
        self.valued_sum = ZERO

    def add(self, offer: Offer) -> None:
        self.stage_counts[offer.stage] = self.stage_counts.get(offer.stage, 0) + 1
        if has_recorded_value(offer):
            self.valued_count += 1
            self.valued_sum += resolve_value(offer, ValuePurpose.EXPOSURE)

    def freeze(self) -> FunnelMetrics:
        buckets = {bucket: 0 for bucket in StageBucket}
        for stage, count in self.stage_counts.items():
            buckets[classify(stage)] += count
        won = buckets[StageBucket.WON]
        lost = buckets[StageBucket.LOST]
        total = sum(buckets.values())

        peak = max((self.stage_counts.get(stage, 0) for stage in FUNNEL_STAGES), default=0)
        stages = [
            FunnelStage(
                stage=stage,
                count=self.stage_counts.get(stage, 0),
                percent_of_peak=_rate(self.stage_counts.get(stage, 0), peak),
            )
            for stage in FUNNEL_STAGES
        ]
        average = ZERO
        if self.valued_count:
            average = (self.valued_sum / self.valued_count).quantize(PERCENT_QUANTUM)
        return FunnelMetrics(
            total_count=total,
            won_count=won,
            lost_count=lost,
            active_count=buckets[StageBucket.ACTIVE],
            win_rate=_rate(won, won + lost),
            conversion_rate=_rate(won, total),
            average_deal_size=average,
            stages=stages,
        )


def funnel_metrics(offers: Iterable[Offer], group_by: GroupBy) -> FunnelResult:
    """Win rate, conversion rate, average deal size and stage funnel per group.

    Win rate is won / (won + lost) and conversion rate is won / all offers,
    both in percent; either is 0.00 when its denominator is empty. Average
    deal size averages the exposure value of offers that carry one.
    """
    accumulators: dict[str, _FunnelAccumulator] = {}
    overall = _FunnelAccumulator()

    for offer in offers:
        key = group_key(offer, group_by)
        acc = accumulators.get(key)
        if acc is None:
            acc = accumulators[key] = _FunnelAccumulator()
        acc.add(offer)
        overall.add(offer)

    groups = {key: accumulators[key].freeze() for key in sorted(accumulators)}
    result = FunnelResult(group_by=group_by, groups=groups, overall=overall.freeze())
    logger.info(
        "Funnel over %d offer(s): win rate %s%%, conversion %s%%",
        result.overall.total_count,
        result.overall.win_rate,
        result.overall.conversion_rate,
    )
    return result
