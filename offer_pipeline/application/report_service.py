"""Application service wiring record loading, aggregation, targets and export."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from time import perf_counter
from typing import Any

from offer_pipeline.application.aggregation import AggregationResult, FunnelResult, aggregate, funnel_metrics
from offer_pipeline.application.forecast import ForecastSummary, ZoneHighlight, highlight_totals, monthly_forecast, zone_highlights
from offer_pipeline.application.targets import ComparisonRecord, compare_targets, summarize_scope_targets
from offer_pipeline.domain.models import GroupBy, ReportingPeriod, ScopeKind
from offer_pipeline.infrastructure.frame_repository import load_offers, load_targets
from offer_pipeline.infrastructure.report_exporter import (
    comparison_frame,
    data_quality_frame,
    forecast_frame,
    funnel_frame,
    highlights_frame,
    rollup_frame,
    save_output_workbook,
    save_summary_json,
    stage_funnel_frame,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportResult:
    rollup: AggregationResult
    funnel: FunnelResult
    comparisons: list[ComparisonRecord]
    scope_summary: list[ComparisonRecord]
    forecast: ForecastSummary
    highlights: list[ZoneHighlight]
    summary_path: Path
    workbook_path: Path
    workbook_saved: bool


def _summary_payload(
    period: ReportingPeriod,
    rollup: AggregationResult,
    funnel: FunnelResult,
    comparisons: list[ComparisonRecord],
    scope_summary: list[ComparisonRecord],
    forecast: ForecastSummary,
    highlights: list[ZoneHighlight],
) -> dict[str, Any]:
    return {
        "period": {"label": period.label, "period_type": period.period_type},
        "group_by": rollup.group_by,
        "groups": rollup.groups,
        "totals": rollup.totals(),
        "data_quality": {
            "missing_value_count": rollup.missing_value_count,
            "warnings": rollup.data_quality,
        },
        "funnel": {"groups": funnel.groups, "overall": funnel.overall},
        "target_comparisons": comparisons,
        "scope_summary": scope_summary,
        "forecast": {
            "year": forecast.year,
            "months": forecast.months,
            "quarters": forecast.quarters,
            "annual_forecast": forecast.annual_forecast,
            "annual_actual": forecast.annual_actual,
            "variance": forecast.variance,
            "achievement_percent": forecast.achievement_percent,
        },
        "zone_highlights": [*highlights, highlight_totals(highlights)],
    }


def run_reporting_pipeline(
    offers_path: Path,
    targets_path: Path,
    output_dir: Path,
    period: ReportingPeriod,
    group_by: GroupBy = GroupBy.ZONE,
    scope_kind: ScopeKind = ScopeKind.ZONE,
) -> ReportResult:
    pipeline_start = perf_counter()
    stage_start = pipeline_start
    stage_timings: list[tuple[str, float]] = []

    def _mark(stage_name: str) -> None:
        nonlocal stage_start
        now = perf_counter()
        stage_timings.append((stage_name, now - stage_start))
        stage_start = now

    offers = load_offers(offers_path)
    targets = load_targets(targets_path)
    _mark("load_records")

    rollup = aggregate(offers, group_by, period=period)
    funnel = funnel_metrics(offers, group_by)
    _mark("aggregate")
    comparisons = compare_targets(offers, targets, scope_kind, period)
    scope_summary = summarize_scope_targets(comparisons)
    _mark("compare_targets")
    forecast = monthly_forecast(offers, period.year, targets)
    highlights = zone_highlights(offers, period.year, targets)
    _mark("forecast")

    summary_path = output_dir / "summary.json"
    workbook_path = output_dir / "summary.xlsx"
    summary = _summary_payload(period, rollup, funnel, comparisons, scope_summary, forecast, highlights)
    save_summary_json(summary_path, summary)
    _mark("save_json")

    workbook_saved, workbook_error = save_output_workbook(
        workbook_path,
        {
            "rollup": rollup_frame(rollup),
            "funnel": funnel_frame(funnel),
            "stage_funnel": stage_funnel_frame(funnel),
            "targets": comparison_frame(comparisons),
            "scope_summary": comparison_frame(scope_summary),
            "forecast": forecast_frame(forecast),
            "zone_highlights": highlights_frame(highlights),
            "data_quality": data_quality_frame(rollup.data_quality),
        },
    )
    _mark("save_excel")
    total_elapsed = perf_counter() - pipeline_start

    logger.info(
        "Summary prepared: period=%s, groups=%d, comparisons=%d, missing_values=%d",
        period.label,
        len(rollup.groups),
        len(comparisons),
        rollup.missing_value_count,
    )
    logger.info("Stage timing: %s", ", ".join(f"{name}={seconds:.3f}s" for name, seconds in stage_timings))
    logger.info("Total elapsed: %.3fs", total_elapsed)
    logger.info("Saved JSON: %s", summary_path)
    if workbook_saved:
        logger.info("Saved Excel: %s", workbook_path)
    else:
        logger.warning("Excel save skipped (file may be open/locked): %s", workbook_error)

    return ReportResult(
        rollup=rollup,
        funnel=funnel,
        comparisons=comparisons,
        scope_summary=scope_summary,
        forecast=forecast,
        highlights=highlights,
        summary_path=summary_path,
        workbook_path=workbook_path,
        workbook_saved=workbook_saved,
    )
