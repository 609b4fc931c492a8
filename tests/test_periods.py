from datetime import datetime

import pytest

from offer_pipeline.domain.errors import InvalidPeriodError
from offer_pipeline.domain.models import AttributedPeriod, PeriodType, ReportingPeriod, Stage
from offer_pipeline.domain.periods import attribute_period, in_period


def test_booking_date_beats_po_date_for_booked_orders(make_offer):
    offer = make_offer(
        stage=Stage.ORDER_BOOKED,
        po_date=datetime(2025, 3, 1),
        booking_date_in_sap=datetime(2025, 4, 15),
    )

    period = attribute_period(offer)

    assert (period.year, period.month) == (2025, 4)
    assert period.anchor == "booking_date_in_sap"


def test_stage_given_as_text_still_anchors_on_milestones(make_offer):
    offer = make_offer(
        stage="order_booked",
        created_at=datetime(2024, 1, 1),
        po_date=datetime(2025, 3, 1),
    )

    assert attribute_period(offer) == AttributedPeriod(2025, 3, "po_date")


def test_booked_order_without_booking_date_uses_po_date(make_offer):
    offer = make_offer(stage=Stage.ORDER_BOOKED, po_date=datetime(2025, 3, 1))

    assert attribute_period(offer) == AttributedPeriod(2025, 3, "po_date")


def test_po_received_ignores_booking_date(make_offer):
    offer = make_offer(
        stage=Stage.PO_RECEIVED,
        po_date=datetime(2025, 2, 20),
        booking_date_in_sap=datetime(2025, 6, 1),
    )

    assert attribute_period(offer).label == "2025-02"


def test_won_uses_crm_close_date(make_offer):
    offer = make_offer(stage=Stage.WON, offer_closed_in_crm=datetime(2024, 12, 31), po_date=datetime(2025, 1, 2))

    assert attribute_period(offer) == AttributedPeriod(2024, 12, "offer_closed_in_crm")


@pytest.mark.parametrize("stage", [Stage.WON, Stage.PO_RECEIVED, Stage.ORDER_BOOKED, Stage.NEGOTIATION, Stage.LOST])
def test_missing_milestone_dates_fall_back_to_created_at(make_offer, stage):
    offer = make_offer(stage=stage, created_at=datetime(2025, 7, 4))

    assert attribute_period(offer) == AttributedPeriod(2025, 7, "created_at")


def test_active_offer_ignores_milestone_dates(make_offer):
    offer = make_offer(
        stage=Stage.FINAL_APPROVAL,
        created_at=datetime(2025, 5, 9),
        po_date=datetime(2025, 8, 1),
        offer_closed_in_crm=datetime(2025, 9, 1),
    )

    assert attribute_period(offer).anchor == "created_at"


def test_in_period_monthly_and_yearly():
    attributed = AttributedPeriod(2025, 4, "po_date")

    assert in_period(attributed, ReportingPeriod.monthly(2025, 4))
    assert not in_period(attributed, ReportingPeriod.monthly(2025, 3))
    assert in_period(attributed, ReportingPeriod.yearly(2025))
    assert not in_period(attributed, ReportingPeriod.yearly(2024))


def test_parse_periods():
    assert ReportingPeriod.parse("2025-03", PeriodType.MONTHLY) == ReportingPeriod.monthly(2025, 3)
    assert ReportingPeriod.parse("2025", "yearly") == ReportingPeriod.yearly(2025)
    assert ReportingPeriod.monthly(2025, 3).label == "2025-03"
    assert ReportingPeriod.yearly(2025).label == "2025"


@pytest.mark.parametrize(
    "text,period_type",
    [
        ("2025", PeriodType.MONTHLY),
        ("2025-13", PeriodType.MONTHLY),
        ("2025-00", PeriodType.MONTHLY),
        ("2025-3-1", PeriodType.MONTHLY),
        ("25-aa", PeriodType.MONTHLY),
        ("2025-03", PeriodType.YEARLY),
        ("1899", PeriodType.YEARLY),
        ("2101", PeriodType.YEARLY),
        ("", PeriodType.YEARLY),
        ("2025", "QUARTERLY"),
    ],
)
def test_invalid_periods_are_rejected(text, period_type):
    with pytest.raises(InvalidPeriodError):
        ReportingPeriod.parse(text, period_type)
