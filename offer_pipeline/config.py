"""Engine constants and environment overrides."""

from __future__ import annotations

import os
from decimal import Decimal, InvalidOperation
from pathlib import Path


UNASSIGNED_GROUP_KEY = "UNASSIGNED"
MIN_PERIOD_YEAR = 1900
MAX_PERIOD_YEAR = 2100
PERCENT_QUANTUM = Decimal("0.01")
FULL_ACHIEVEMENT = Decimal("100.00")

PROJECT_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_OFFERS_PATH = PROJECT_ROOT / "data" / "offers.csv"
DEFAULT_TARGETS_PATH = PROJECT_ROOT / "data" / "targets.csv"
DEFAULT_OUTPUT_DIR = PROJECT_ROOT / "output"


def _parse_achievement_sentinel() -> Decimal:
    raw = os.getenv("OFFER_PIPELINE_ACHIEVEMENT_SENTINEL", "999.99")
    try:
        sentinel = Decimal(raw)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid OFFER_PIPELINE_ACHIEVEMENT_SENTINEL: {raw}") from exc
    if not sentinel.is_finite() or sentinel <= FULL_ACHIEVEMENT:
        raise ValueError(f"OFFER_PIPELINE_ACHIEVEMENT_SENTINEL must be a finite value above 100, got {raw}")
    return sentinel.quantize(PERCENT_QUANTUM)


# Reported when actual business exists against a zero target.
ACHIEVEMENT_SENTINEL = _parse_achievement_sentinel()
