"""Yearly forecast views: expected PO months against realized orders and targets."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Sequence

from offer_pipeline.application.aggregation import group_key
from offer_pipeline.application.targets import achievement_percent
from offer_pipeline.config import PERCENT_QUANTUM
from offer_pipeline.domain.errors import InvalidPeriodError
from offer_pipeline.domain.models import (
    GroupBy,
    Offer,
    PeriodType,
    ReportingPeriod,
    ScopeKind,
    Stage,
    StageBucket,
    Target,
    ValuePurpose,
)
from offer_pipeline.domain.periods import attribute_period
from offer_pipeline.domain.stages import classify
from offer_pipeline.domain.valuation import ZERO, resolve_value

logger = logging.getLogger(__name__)

MONTH_NAMES: tuple[str, ...] = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")
QUARTERS: tuple[tuple[str, tuple[int, ...]], ...] = (
    ("Q1", (1, 2, 3)),
    ("Q2", (4, 5, 6)),
    ("Q3", (7, 8, 9)),
    ("Q4", (10, 11, 12)),
)


@dataclass(frozen=True)
class MonthlyForecast:
    month: int
    month_name: str
    forecast_value: Decimal
    offer_count: int
    actual_value: Decimal
    variance: Decimal
    achievement_percent: Decimal
    by_zone: dict[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class QuarterForecast:
    quarter: str
    target_value: Decimal
    forecast_value: Decimal
    deviation_percent: Decimal | None


@dataclass(frozen=True)
class ForecastSummary:
    year: int
    months: list[MonthlyForecast]
    quarters: list[QuarterForecast]
    annual_forecast: Decimal
    annual_actual: Decimal

    @property
    def variance(self) -> Decimal:
        return self.annual_forecast - self.annual_actual

    @property
    def achievement_percent(self) -> Decimal:
        return achievement_percent(self.annual_actual, self.annual_forecast)


@dataclass(frozen=True)
class ZoneHighlight:
    zone_key: str
    offer_count: int
    offers_value: Decimal
    orders_received: Decimal
    open_funnel: Decimal
    order_booking: Decimal
    bu_year: Decimal
    balance_bu: Decimal
    deviation_percent: Decimal | None


def _deviation_percent(value: Decimal, target: Decimal) -> Decimal | None:
    if target <= 0:
        return None
    return ((value - target) / target * 100).quantize(PERCENT_QUANTUM)


def _expected_period(offer: Offer) -> ReportingPeriod | None:
    if not offer.po_expected_month:
        return None
    try:
        return ReportingPeriod.parse(offer.po_expected_month, PeriodType.MONTHLY)
    except InvalidPeriodError:
        logger.debug("Skipping offer %s with malformed poExpectedMonth %r", offer.reference_number, offer.po_expected_month)
        return None


def _zone_targets(targets: Iterable[Target], year: int, period_type: PeriodType) -> list[Target]:
    return [
        target
        for target in targets
        if target.scope.kind is ScopeKind.ZONE
        and target.product_type is None
        and target.period_type is period_type
        and target.period.year == year
    ]


def monthly_forecast(offers: Iterable[Offer], year: int, targets: Sequence[Target] = ()) -> ForecastSummary:
    """Forecast per month from expected PO months, next to realized orders.

    Forecast counts every non-LOST offer whose poExpectedMonth falls in
    ``year`` at its exposure value. Actuals are won-bucket offers attributed to
    the month at their realized value.
    """
    forecast: dict[int, dict[str, Decimal]] = {}
    counts: dict[int, int] = {}
    actual: dict[int, Decimal] = {}

    for offer in offers:
        bucket = classify(offer.stage)
        if bucket is StageBucket.LOST:
            continue

        expected = _expected_period(offer)
        if expected is not None and expected.year == year:
            month = int(expected.month or 0)
            by_zone = forecast.setdefault(month, {})
            zone = group_key(offer, GroupBy.ZONE)
            by_zone[zone] = by_zone.get(zone, ZERO) + resolve_value(offer, ValuePurpose.EXPOSURE)
            counts[month] = counts.get(month, 0) + 1

        if bucket is StageBucket.WON:
            attributed = attribute_period(offer)
            if attributed.year == year:
                actual[attributed.month] = actual.get(attributed.month, ZERO) + resolve_value(offer, ValuePurpose.REALIZED)

    month_targets: dict[int, Decimal] = {}
    for target in _zone_targets(targets, year, PeriodType.MONTHLY):
        month = int(target.period.month or 0)
        month_targets[month] = month_targets.get(month, ZERO) + target.target_value

    months: list[MonthlyForecast] = []
    for month in range(1, 13):
        by_zone = forecast.get(month, {})
        forecast_value = sum(by_zone.values(), ZERO)
        actual_value = actual.get(month, ZERO)
        if forecast_value <= 0 and actual_value <= 0:
            continue
        months.append(
            MonthlyForecast(
                month=month,
                month_name=MONTH_NAMES[month - 1],
                forecast_value=forecast_value,
                offer_count=counts.get(month, 0),
                actual_value=actual_value,
                variance=forecast_value - actual_value,
                achievement_percent=achievement_percent(actual_value, forecast_value),
                by_zone=dict(sorted(by_zone.items())),
            )
        )

    forecast_by_month = {row.month: row.forecast_value for row in months}
    quarters: list[QuarterForecast] = []
    for name, quarter_months in QUARTERS:
        target_value = sum((month_targets.get(month, ZERO) for month in quarter_months), ZERO)
        forecast_value = sum((forecast_by_month.get(month, ZERO) for month in quarter_months), ZERO)
        quarters.append(
            QuarterForecast(
                quarter=name,
                target_value=target_value,
                forecast_value=forecast_value,
                deviation_percent=_deviation_percent(forecast_value, target_value),
            )
        )

    return ForecastSummary(
        year=year,
        months=months,
        quarters=quarters,
        annual_forecast=sum((row.forecast_value for row in months), ZERO),
        annual_actual=sum((row.actual_value for row in months), ZERO),
    )


def zone_highlights(offers: Iterable[Offer], year: int, targets: Sequence[Target] = ()) -> list[ZoneHighlight]:
    """Per-zone yearly highlights: offers, orders, open funnel and business target."""
    offer_counts: dict[str, int] = {}
    offer_values: dict[str, Decimal] = {}
    received: dict[str, Decimal] = {}
    booked: dict[str, Decimal] = {}

    for offer in offers:
        bucket = classify(offer.stage)
        if bucket is StageBucket.LOST:
            continue
        zone = group_key(offer, GroupBy.ZONE)

        expected = _expected_period(offer)
        if expected is not None and expected.year == year:
            offer_counts[zone] = offer_counts.get(zone, 0) + 1
            offer_values[zone] = offer_values.get(zone, ZERO) + resolve_value(offer, ValuePurpose.EXPOSURE)

        if bucket is StageBucket.WON and attribute_period(offer).year == year:
            amount = resolve_value(offer, ValuePurpose.REALIZED)
            received[zone] = received.get(zone, ZERO) + amount
            if offer.stage is Stage.ORDER_BOOKED:
                booked[zone] = booked.get(zone, ZERO) + amount

    yearly_bu: dict[str, Decimal] = {}
    for target in _zone_targets(targets, year, PeriodType.YEARLY):
        zone = target.scope.scope_id
        yearly_bu[zone] = yearly_bu.get(zone, ZERO) + target.target_value
    monthly_bu: dict[str, Decimal] = {}
    for target in _zone_targets(targets, year, PeriodType.MONTHLY):
        zone = target.scope.scope_id
        monthly_bu[zone] = monthly_bu.get(zone, ZERO) + target.target_value

    zones = set(offer_counts) | set(received) | set(yearly_bu) | set(monthly_bu)
    rows: list[ZoneHighlight] = []
    for zone in sorted(zones):
        offers_value = offer_values.get(zone, ZERO)
        orders_received = received.get(zone, ZERO)
        bu_year = yearly_bu[zone] if zone in yearly_bu else monthly_bu.get(zone, ZERO)
        rows.append(
            ZoneHighlight(
                zone_key=zone,
                offer_count=offer_counts.get(zone, 0),
                offers_value=offers_value,
                orders_received=orders_received,
                open_funnel=max(ZERO, offers_value - orders_received),
                order_booking=booked.get(zone, ZERO),
                bu_year=bu_year,
                balance_bu=bu_year - orders_received,
                deviation_percent=_deviation_percent(orders_received, bu_year),
            )
        )
    return rows


def highlight_totals(rows: Sequence[ZoneHighlight]) -> ZoneHighlight:
    orders_received = sum((row.orders_received for row in rows), ZERO)
    bu_year = sum((row.bu_year for row in rows), ZERO)
    return ZoneHighlight(
        zone_key="TOTAL",
        offer_count=sum(row.offer_count for row in rows),
        offers_value=sum((row.offers_value for row in rows), ZERO),
        orders_received=orders_received,
        open_funnel=sum((row.open_funnel for row in rows), ZERO),
        order_booking=sum((row.order_booking for row in rows), ZERO),
        bu_year=bu_year,
        balance_bu=sum((row.balance_bu for row in rows), ZERO),
        deviation_percent=_deviation_percent(orders_received, bu_year),
    )
