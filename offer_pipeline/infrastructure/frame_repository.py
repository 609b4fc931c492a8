"""Infrastructure adapter loading offer and target records through polars."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import polars as pl

from offer_pipeline.domain.errors import InvalidRecordError
from offer_pipeline.domain.models import Offer, Target

logger = logging.getLogger(__name__)

REQUIRED_OFFER_COLUMNS: tuple[str, ...] = ("referenceNumber", "stage", "createdAt")
REQUIRED_TARGET_COLUMNS: tuple[str, ...] = ("targetPeriod", "periodType", "targetValue")


def load_frame(path: Path) -> pl.DataFrame:
    """Read a CSV or Parquet export; CSV columns stay text so amounts keep their digits."""
    suffix = path.suffix.lower()
    if suffix == ".parquet":
        return pl.read_parquet(path)
    if suffix == ".csv":
        return pl.read_csv(path, infer_schema_length=0)
    raise ValueError(f"Unsupported record file type: {path.name}")


def _require_columns(df: pl.DataFrame, required: Sequence[str]) -> None:
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise InvalidRecordError(f"Missing required columns: {missing}")


def offers_from_frame(df: pl.DataFrame) -> list[Offer]:
    _require_columns(df, REQUIRED_OFFER_COLUMNS)
    return [Offer.from_row(row) for row in df.iter_rows(named=True)]


def targets_from_frame(df: pl.DataFrame) -> list[Target]:
    _require_columns(df, REQUIRED_TARGET_COLUMNS)
    if "serviceZoneId" not in df.columns and "userId" not in df.columns:
        raise InvalidRecordError("Missing required columns: one of ['serviceZoneId', 'userId']")
    return [Target.from_row(row) for row in df.iter_rows(named=True)]


def load_offers(path: Path) -> list[Offer]:
    offers = offers_from_frame(load_frame(path))
    logger.info("Loaded %d offer(s) from %s", len(offers), path)
    return offers


def load_targets(path: Path) -> list[Target]:
    if not path.exists():
        logger.info("No target file at %s; comparing without targets", path)
        return []
    targets = targets_from_frame(load_frame(path))
    logger.info("Loaded %d target(s) from %s", len(targets), path)
    return targets
