from decimal import Decimal

import polars as pl
import pytest

from offer_pipeline.domain.errors import ConfigurationError, InvalidRecordError
from offer_pipeline.domain.models import ScopeKind, Stage
from offer_pipeline.infrastructure.frame_repository import (
    load_frame,
    load_offers,
    load_targets,
    offers_from_frame,
    targets_from_frame,
)

OFFERS_CSV = """referenceNumber,stage,offerValue,poValue,probabilityPercentage,poExpectedMonth,poDate,bookingDateInSap,offerClosedInCrm,createdAt,zoneId,assignedToId,productType,customerId
OFF-1,WON,90000,100000.10,100,2025-03,,,2025-03-12,2025-01-05,North,7,SPP,C1
OFF-2,LOST,50000,,10,,,,,2025-01-06,North,7,SPP,C2
OFF-3,NEGOTIATION,20000,,60,2025-05,,,,2025-02-01,South,,KIT,C3
"""


def test_load_offers_from_csv_keeps_exact_amounts(tmp_path):
    path = tmp_path / "offers.csv"
    path.write_text(OFFERS_CSV, encoding="utf-8")

    offers = load_offers(path)

    assert [offer.reference_number for offer in offers] == ["OFF-1", "OFF-2", "OFF-3"]
    assert offers[0].po_value == Decimal("100000.10")
    assert offers[0].stage is Stage.WON
    assert offers[1].po_value is None
    assert offers[2].assigned_to_id is None


def test_load_offers_from_parquet(tmp_path):
    path = tmp_path / "offers.parquet"
    pl.read_csv(OFFERS_CSV.encode("utf-8"), infer_schema_length=0).write_parquet(path)

    offers = load_offers(path)

    assert len(offers) == 3
    assert offers[2].offer_value == Decimal("20000")


def test_unsupported_file_type_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        load_frame(tmp_path / "offers.xlsx")


def test_missing_offer_columns_are_reported():
    df = pl.DataFrame({"referenceNumber": ["OFF-1"], "stage": ["WON"]})

    with pytest.raises(InvalidRecordError, match="createdAt"):
        offers_from_frame(df)


def test_unknown_stage_in_frame_is_a_configuration_error():
    df = pl.DataFrame({"referenceNumber": ["OFF-1"], "stage": ["Closed Won"], "createdAt": ["2025-01-01"]})

    with pytest.raises(ConfigurationError):
        offers_from_frame(df)


def test_targets_from_frame():
    df = pl.DataFrame(
        {
            "serviceZoneId": ["North", None],
            "userId": [None, "7"],
            "productType": [None, "SPP"],
            "targetPeriod": ["2025-03", "2025"],
            "periodType": ["MONTHLY", "YEARLY"],
            "targetValue": ["200000", "5000.50"],
            "targetOfferCount": ["5", None],
        }
    )

    zone_target, user_target = targets_from_frame(df)

    assert zone_target.scope.kind is ScopeKind.ZONE
    assert zone_target.target_offer_count == 5
    assert user_target.scope.kind is ScopeKind.USER
    assert user_target.target_value == Decimal("5000.50")


def test_targets_frame_needs_a_scope_column():
    df = pl.DataFrame({"targetPeriod": ["2025"], "periodType": ["YEARLY"], "targetValue": ["1"]})

    with pytest.raises(InvalidRecordError):
        targets_from_frame(df)


def test_missing_target_file_means_no_targets(tmp_path):
    assert load_targets(tmp_path / "targets.csv") == []
