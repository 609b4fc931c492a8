import random
from datetime import datetime
from decimal import Decimal

import pytest

from offer_pipeline.application.aggregation import MISSING_VALUE, GroupTotals, aggregate, group_key
from offer_pipeline.config import UNASSIGNED_GROUP_KEY
from offer_pipeline.domain.errors import ConfigurationError
from offer_pipeline.domain.models import GroupBy, ReportingPeriod, Stage


@pytest.fixture
def scenario_offers(make_offer):
    return [
        make_offer(stage=Stage.WON, zone_id="North", po_value=100000, offer_value=90000),
        make_offer(stage=Stage.LOST, zone_id="North", offer_value=50000),
        make_offer(stage=Stage.NEGOTIATION, zone_id="South", offer_value=20000),
    ]


def test_rollup_by_zone(scenario_offers):
    result = aggregate(scenario_offers, GroupBy.ZONE)

    assert result.groups["North"] == GroupTotals(
        won_count=1,
        won_value=Decimal("100000"),
        pipeline_count=1,
        pipeline_value=Decimal("90000"),
    )
    assert result.groups["South"] == GroupTotals(
        won_count=0,
        won_value=Decimal("0"),
        pipeline_count=1,
        pipeline_value=Decimal("20000"),
    )
    assert result.totals().pipeline_value == Decimal("110000")


def test_lost_offers_contribute_nothing(make_offer):
    offers = [
        make_offer(stage=Stage.LOST, zone_id="West", offer_value=70000, po_value=65000),
        make_offer(stage=Stage.LOST, zone_id="West", offer_value=1000),
    ]

    totals = aggregate(offers, GroupBy.ZONE).groups["West"]

    assert totals == GroupTotals()


def test_aggregate_is_idempotent(scenario_offers):
    assert aggregate(scenario_offers, GroupBy.ZONE) == aggregate(scenario_offers, GroupBy.ZONE)


def test_aggregate_ignores_input_order(make_offer):
    rng = random.Random(7)
    offers = [
        make_offer(
            stage=rng.choice(list(Stage)),
            zone_id=f"Z{index % 4}",
            offer_value=f"{index}.10",
            po_value=f"{index * 3}.07" if index % 3 else None,
        )
        for index in range(1, 400)
    ]
    expected = aggregate(offers, GroupBy.ZONE)

    shuffled = list(offers)
    rng.shuffle(shuffled)

    assert aggregate(shuffled, GroupBy.ZONE) == expected


def test_sums_are_exact_decimals(make_offer):
    offers = [make_offer(stage=Stage.NEGOTIATION, zone_id="North", offer_value="0.1") for _ in range(10)]

    assert aggregate(offers, GroupBy.ZONE).groups["North"].pipeline_value == Decimal("1.0")


def test_period_filter_applies_to_won_totals_only(make_offer):
    offers = [
        make_offer(stage=Stage.WON, zone_id="North", offer_value=100, offer_closed_in_crm=datetime(2025, 3, 10)),
        make_offer(stage=Stage.WON, zone_id="North", offer_value=200, offer_closed_in_crm=datetime(2025, 5, 10)),
        make_offer(stage=Stage.INITIAL, zone_id="North", offer_value=400, created_at=datetime(2023, 1, 1)),
    ]

    totals = aggregate(offers, GroupBy.ZONE, period=ReportingPeriod.monthly(2025, 3)).groups["North"]

    assert (totals.won_count, totals.won_value) == (1, Decimal("100"))
    assert (totals.pipeline_count, totals.pipeline_value) == (3, Decimal("700"))


def test_yearly_period_filter(make_offer):
    offers = [
        make_offer(stage=Stage.PO_RECEIVED, zone_id="North", po_value=10, po_date=datetime(2025, 1, 2)),
        make_offer(stage=Stage.PO_RECEIVED, zone_id="North", po_value=20, po_date=datetime(2025, 12, 30)),
        make_offer(stage=Stage.PO_RECEIVED, zone_id="North", po_value=40, po_date=datetime(2024, 12, 31)),
    ]

    totals = aggregate(offers, GroupBy.ZONE, period=ReportingPeriod.yearly(2025)).groups["North"]

    assert totals.won_value == Decimal("30")
    assert totals.pipeline_count == 3


def test_group_by_user_and_product_type(make_offer):
    offers = [
        make_offer(stage=Stage.WON, assigned_to_id="7", product_type="SPP", po_value=10),
        make_offer(stage=Stage.WON, assigned_to_id="7", product_type="CONTRACT", po_value=5),
        make_offer(stage=Stage.NEGOTIATION, assigned_to_id="9", product_type="SPP", offer_value=1),
    ]

    by_user = aggregate(offers, GroupBy.USER)
    by_product = aggregate(offers, GroupBy.PRODUCT_TYPE)

    assert by_user.groups["7"].won_value == Decimal("15")
    assert by_user.groups["9"].pipeline_count == 1
    assert by_product.groups["SPP"].pipeline_value == Decimal("11")
    assert by_product.groups["CONTRACT"].won_count == 1


def test_missing_group_attribute_goes_to_unassigned(make_offer):
    offer = make_offer(stage=Stage.NEGOTIATION, offer_value=5)

    result = aggregate([offer], GroupBy.USER)

    assert group_key(offer, GroupBy.USER) == UNASSIGNED_GROUP_KEY
    assert result.groups[UNASSIGNED_GROUP_KEY].pipeline_count == 1


def test_product_type_narrows_input(make_offer):
    offers = [
        make_offer(stage=Stage.WON, zone_id="North", product_type="SPP", po_value=10),
        make_offer(stage=Stage.WON, zone_id="North", product_type="KIT", po_value=99),
    ]

    result = aggregate(offers, GroupBy.ZONE, product_type="SPP")

    assert result.groups["North"].won_value == Decimal("10")


def test_offers_without_values_are_reported(make_offer):
    offers = [
        make_offer(stage=Stage.NEGOTIATION, zone_id="North", reference_number="B-2"),
        make_offer(stage=Stage.WON, zone_id="North", reference_number="A-1"),
        make_offer(stage=Stage.WON, zone_id="North", offer_value=10, reference_number="C-3"),
    ]

    result = aggregate(offers, GroupBy.ZONE)

    assert result.missing_value_count == 2
    assert [warning.reference_number for warning in result.data_quality] == ["A-1", "B-2"]
    assert all(warning.code == MISSING_VALUE for warning in result.data_quality)
    assert result.groups["North"].won_count == 2
    assert result.groups["North"].won_value == Decimal("10")


def test_unknown_stage_is_rejected_before_aggregation(make_offer):
    with pytest.raises(ConfigurationError):
        make_offer(stage="CLOSED_WON", zone_id="North", po_value=1)


def test_stage_text_is_normalised_for_attribution(make_offer):
    offer = make_offer(
        stage=" order_booked ",
        created_at=datetime(2024, 1, 1),
        po_date=datetime(2025, 3, 1),
        po_value=100,
        zone_id="North",
    )

    totals = aggregate([offer], GroupBy.ZONE, period=ReportingPeriod.monthly(2025, 3)).groups["North"]

    assert offer.stage is Stage.ORDER_BOOKED
    assert (totals.won_count, totals.won_value) == (1, Decimal("100"))


def test_empty_input_yields_empty_rollup():
    result = aggregate([], GroupBy.ZONE)

    assert result.groups == {}
    assert result.totals() == GroupTotals()
