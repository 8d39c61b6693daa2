"""Saved report views (named filter presets)."""

from jira_reports.features.reports.repository import (
    delete_report,
    is_visible_to,
    iter_reports,
    list_reports,
    report_key,
    save_report,
)

__all__ = [
    "delete_report",
    "is_visible_to",
    "iter_reports",
    "list_reports",
    "report_key",
    "save_report",
]
