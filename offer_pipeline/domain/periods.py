"""Reporting period attribution for offers."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from offer_pipeline.domain.models import AttributedPeriod, Offer, PeriodType, ReportingPeriod, Stage

# Ordered most specific first; the first rule whose stage matches and whose
# date is present anchors the offer.
ANCHOR_CHAIN: tuple[tuple[str, frozenset[Stage], Callable[[Offer], datetime | None]], ...] = (
    ("booking_date_in_sap", frozenset({Stage.ORDER_BOOKED}), lambda offer: offer.booking_date_in_sap),
    ("po_date", frozenset({Stage.PO_RECEIVED, Stage.ORDER_BOOKED}), lambda offer: offer.po_date),
    ("offer_closed_in_crm", frozenset({Stage.WON}), lambda offer: offer.offer_closed_in_crm),
)


def attribute_period(offer: Offer) -> AttributedPeriod:
    for anchor, stages, pick in ANCHOR_CHAIN:
        if offer.stage not in stages:
            continue
        moment = pick(offer)
        if moment is not None:
            return AttributedPeriod(year=moment.year, month=moment.month, anchor=anchor)
    created = offer.created_at
    return AttributedPeriod(year=created.year, month=created.month, anchor="created_at")


def in_period(attributed: AttributedPeriod, period: ReportingPeriod) -> bool:
    if attributed.year != period.year:
        return False
    if period.period_type is PeriodType.YEARLY:
        return True
    return attributed.month == period.month
