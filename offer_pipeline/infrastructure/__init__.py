"""Infrastructure layer package."""

from .frame_repository import load_offers, load_targets, offers_from_frame, targets_from_frame
from .report_exporter import save_output_workbook, save_summary_json

__all__ = [
    "load_offers",
    "load_targets",
    "offers_from_frame",
    "targets_from_frame",
    "save_output_workbook",
    "save_summary_json",
]
