"""Infrastructure adapter for summary and workbook export targets."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, is_dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Sequence

import polars as pl
import xlsxwriter
from openpyxl import Workbook
from xlsxwriter.exceptions import FileCreateError

from offer_pipeline.application.aggregation import AggregationResult, DataQualityWarning, FunnelResult
from offer_pipeline.application.forecast import ForecastSummary, ZoneHighlight
from offer_pipeline.application.targets import ComparisonRecord

logger = logging.getLogger(__name__)


def _money(value: Decimal | None) -> float | None:
    if value is None:
        return None
    return float(value)


def to_jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(asdict(value))
    if isinstance(value, dict):
        return {str(to_jsonable(key)): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


def rollup_frame(result: AggregationResult) -> pl.DataFrame:
    rows = [
        {
            "group_by": result.group_by.value,
            "group_key": key,
            "won_count": totals.won_count,
            "won_value": _money(totals.won_value),
            "pipeline_count": totals.pipeline_count,
            "pipeline_value": _money(totals.pipeline_value),
        }
        for key, totals in result.groups.items()
    ]
    return pl.DataFrame(
        rows,
        schema={
            "group_by": pl.Utf8,
            "group_key": pl.Utf8,
            "won_count": pl.Int64,
            "won_value": pl.Float64,
            "pipeline_count": pl.Int64,
            "pipeline_value": pl.Float64,
        },
    )


def funnel_frame(result: FunnelResult) -> pl.DataFrame:
    rows = [
        {
            "group_by": result.group_by.value,
            "group_key": key,
            "total_count": metrics.total_count,
            "won_count": metrics.won_count,
            "lost_count": metrics.lost_count,
            "active_count": metrics.active_count,
            "win_rate": _money(metrics.win_rate),
            "conversion_rate": _money(metrics.conversion_rate),
            "average_deal_size": _money(metrics.average_deal_size),
        }
        for key, metrics in result.groups.items()
    ]
    return pl.DataFrame(
        rows,
        schema={
            "group_by": pl.Utf8,
            "group_key": pl.Utf8,
            "total_count": pl.Int64,
            "won_count": pl.Int64,
            "lost_count": pl.Int64,
            "active_count": pl.Int64,
            "win_rate": pl.Float64,
            "conversion_rate": pl.Float64,
            "average_deal_size": pl.Float64,
        },
    )


def stage_funnel_frame(result: FunnelResult) -> pl.DataFrame:
    rows = [
        {"stage": row.stage.value, "count": row.count, "percent_of_peak": _money(row.percent_of_peak)}
        for row in result.overall.stages
    ]
    return pl.DataFrame(rows, schema={"stage": pl.Utf8, "count": pl.Int64, "percent_of_peak": pl.Float64})


def comparison_frame(records: Sequence[ComparisonRecord]) -> pl.DataFrame:
    rows = [
        {
            "group_key": record.group_key,
            "product_type": record.product_type,
            "status": record.status.value,
            "actual_value": _money(record.actual.value),
            "actual_count": record.actual.count,
            "target_value": _money(record.target_value),
            "target_offer_count": record.target_offer_count,
            "achievement_percent": _money(record.achievement_percent),
            "value_variance": _money(record.value_variance),
            "count_variance": record.count_variance,
        }
        for record in records
    ]
    return pl.DataFrame(
        rows,
        schema={
            "group_key": pl.Utf8,
            "product_type": pl.Utf8,
            "status": pl.Utf8,
            "actual_value": pl.Float64,
            "actual_count": pl.Int64,
            "target_value": pl.Float64,
            "target_offer_count": pl.Int64,
            "achievement_percent": pl.Float64,
            "value_variance": pl.Float64,
            "count_variance": pl.Int64,
        },
    )


def forecast_frame(summary: ForecastSummary) -> pl.DataFrame:
    rows = [
        {
            "year": summary.year,
            "month": row.month,
            "month_name": row.month_name,
            "forecast_value": _money(row.forecast_value),
            "offer_count": row.offer_count,
            "actual_value": _money(row.actual_value),
            "variance": _money(row.variance),
            "achievement_percent": _money(row.achievement_percent),
        }
        for row in summary.months
    ]
    return pl.DataFrame(
        rows,
        schema={
            "year": pl.Int64,
            "month": pl.Int64,
            "month_name": pl.Utf8,
            "forecast_value": pl.Float64,
            "offer_count": pl.Int64,
            "actual_value": pl.Float64,
            "variance": pl.Float64,
            "achievement_percent": pl.Float64,
        },
    )


def highlights_frame(rows: Sequence[ZoneHighlight]) -> pl.DataFrame:
    money_cols = ["offers_value", "orders_received", "open_funnel", "order_booking", "bu_year", "balance_bu"]
    records = []
    for row in rows:
        record: dict[str, Any] = {"zone_key": row.zone_key, "offer_count": row.offer_count}
        for col in money_cols:
            record[col] = _money(getattr(row, col))
        record["deviation_percent"] = _money(row.deviation_percent)
        records.append(record)
    schema: dict[str, Any] = {"zone_key": pl.Utf8, "offer_count": pl.Int64}
    schema.update({col: pl.Float64 for col in money_cols})
    schema["deviation_percent"] = pl.Float64
    return pl.DataFrame(records, schema=schema)


def data_quality_frame(warnings: Sequence[DataQualityWarning]) -> pl.DataFrame:
    return pl.DataFrame(
        [asdict(warning) for warning in warnings],
        schema={"reference_number": pl.Utf8, "code": pl.Utf8, "message": pl.Utf8},
    )


def save_summary_json(path: Path, summary: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(to_jsonable(summary), indent=2, ensure_ascii=False), encoding="utf-8")


def _write_with_polars(path: Path, sheets: dict[str, pl.DataFrame]) -> bool:
    try:
        with xlsxwriter.Workbook(str(path)) as workbook:
            for sheet_name, frame in sheets.items():
                frame.write_excel(workbook=workbook, worksheet=str(sheet_name)[:31])
    except FileCreateError as exc:
        raise PermissionError(str(exc)) from exc
    except Exception as exc:
        logger.debug("polars workbook export failed, falling back to openpyxl: %s", exc)
        return False
    return True


def _write_with_openpyxl(path: Path, sheets: dict[str, pl.DataFrame]) -> None:
    workbook = Workbook()
    workbook.remove(workbook.active)

    for sheet_name, frame in sheets.items():
        worksheet = workbook.create_sheet(title=str(sheet_name)[:31])
        worksheet.append(frame.columns)
        for row in frame.iter_rows(named=False):
            worksheet.append(list(row))
    workbook.save(path)


def save_output_workbook(path: Path, sheets: dict[str, pl.DataFrame]) -> tuple[bool, str]:
    """Write sheets with polars first and openpyxl as fallback."""
    if not sheets:
        return False, "no sheets to write"
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        if not _write_with_polars(path, sheets):
            _write_with_openpyxl(path, sheets)
    except PermissionError as exc:
        return False, str(exc)
    return True, ""
