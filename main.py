"""Offer pipeline report entrypoint."""

from __future__ import annotations

import logging
import os
from datetime import date

from offer_pipeline.application.report_service import run_reporting_pipeline
from offer_pipeline.config import DEFAULT_OFFERS_PATH, DEFAULT_OUTPUT_DIR, DEFAULT_TARGETS_PATH
from offer_pipeline.domain.models import GroupBy, PeriodType, ReportingPeriod, ScopeKind


def _report_period() -> ReportingPeriod:
    today = date.today()
    period_type = os.getenv("OFFER_PIPELINE_PERIOD_TYPE", PeriodType.MONTHLY.value)
    default_label = f"{today.year:04d}-{today.month:02d}" if period_type.upper() == "MONTHLY" else f"{today.year:04d}"
    return ReportingPeriod.parse(os.getenv("OFFER_PIPELINE_PERIOD", default_label), period_type)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    group_by = GroupBy(os.getenv("OFFER_PIPELINE_GROUP_BY", GroupBy.ZONE.value).upper())
    scope_kind = ScopeKind.USER if group_by is GroupBy.USER else ScopeKind.ZONE
    run_reporting_pipeline(
        offers_path=DEFAULT_OFFERS_PATH,
        targets_path=DEFAULT_TARGETS_PATH,
        output_dir=DEFAULT_OUTPUT_DIR,
        period=_report_period(),
        group_by=group_by,
        scope_kind=scope_kind,
    )


if __name__ == "__main__":
    main()
