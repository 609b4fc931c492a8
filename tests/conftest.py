from datetime import datetime
from decimal import Decimal

import pytest

from offer_pipeline.domain.models import Offer, PeriodType, ScopeKind, Stage, Target, TargetScope


@pytest.fixture
def make_offer():
    counter = iter(range(1, 10_000))

    def _make(stage=Stage.NEGOTIATION, created_at=datetime(2025, 1, 10), reference_number=None, **fields):
        for name in ("offer_value", "po_value"):
            if fields.get(name) is not None:
                fields[name] = Decimal(str(fields[name]))
        return Offer(
            reference_number=reference_number or f"OFF-{next(counter):04d}",
            stage=stage,
            created_at=created_at,
            **fields,
        )

    return _make


@pytest.fixture
def make_target():
    def _make(
        scope_id="North",
        target_value="0",
        target_offer_count=0,
        target_period="2025-03",
        period_type=PeriodType.MONTHLY,
        product_type=None,
        kind=ScopeKind.ZONE,
    ):
        return Target(
            scope=TargetScope(kind, scope_id),
            product_type=product_type,
            target_period=target_period,
            period_type=period_type,
            target_value=Decimal(str(target_value)),
            target_offer_count=target_offer_count,
        )

    return _make
