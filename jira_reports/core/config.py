"""Central configuration, constants, and settings loading for Jira reports."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# =============================================================================
# Jira Connection Settings
# =============================================================================
JIRA_DEFAULT_SERVER = "https://your-domain.atlassian.net"
TIMEZONE = "UTC"

# =============================================================================
# Search Configuration
# =============================================================================
# Field projection requested for every issue search
JIRA_FETCH_BASE_FIELDS: Sequence[str] = (
    "summary",
    "status",
    "assignee",
    "timetracking",
    "worklog",
    "comment",
    "priority",
    "labels",
    "parent",
)

SEARCH_PAGE_SIZE = 100
SEARCH_MAX_RESULTS = 1000

# =============================================================================
# JQL Construction
# =============================================================================
JQL_ORDER_CLAUSE = "order by created DESC"
# Used when no filter contributes a condition; the search API rejects a bare ordering clause
JQL_TAUTOLOGY = "created is not empty"

# Multi-select filter dimensions in emission order: (FilterSet attribute, JQL field)
JQL_MULTI_SELECT_FIELDS: Sequence[tuple[str, str]] = (
    ("project", "project"),
    ("status", "status"),
    ("issue_type", "issuetype"),
    ("priority", "priority"),
    ("labels", "labels"),
    ("parent", "parent"),
    ("assignee", "assignee"),
)

# =============================================================================
# Issue Row Defaults
# =============================================================================
UNASSIGNED_NAME = "Unassigned"
DEFAULT_DURATION = "0m"
AVATAR_SIZE_KEY = "24x24"

# =============================================================================
# Export Configuration
# =============================================================================
EXPORT_FIELDS: Sequence[str] = (
    "Key",
    "Summary",
    "Assignee",
    "Status",
    "Priority",
    "Labels",
    "TimeSpent",
    "Estimate",
    "Exceeded",
    "Comments",
)

EXPORT_SHEET_NAME = "Report"
EXPORT_COLUMN_WIDTHS: dict[str, int] = {"Summary": 40, "Comments": 50}
EXPORT_DEFAULT_COLUMN_WIDTH = 15
COMMENT_MODES: frozenset[str] = frozenset({"none", "last", "full"})
# Placeholder used when a comment has no extractable text
COMMENT_FALLBACK_TEXT = "Content"

PDF_TITLE = "Project Developer Report"
# Status breakdown bar colors, cycled in order of first appearance
PDF_STATUS_COLORS: Sequence[str] = ("#36B37E", "#0052CC", "#FFAB00", "#FF5630", "#6554C0", "#091E42")
PDF_HEADER_COLOR = "#091E42"
PDF_ALT_ROW_COLOR = "#F4F5F7"
PDF_COMMENTS_COLUMN_WIDTH_MM = 80

CSV_MIME_TYPE = "text/csv"
PDF_MIME_TYPE = "application/pdf"

# =============================================================================
# Saved Reports & Schedules
# =============================================================================
REPORT_KEY_PREFIX = "report:"
SCHEDULES_KEY = "schedules"
STORE_SCAN_LIMIT = 100

REPORT_VISIBILITIES: frozenset[str] = frozenset({"private", "project", "global"})
SCHEDULE_FREQUENCIES: frozenset[str] = frozenset({"daily", "weekly", "monthly"})
SCHEDULE_DESTINATIONS: frozenset[str] = frozenset({"create-issue", "comment-on-issue", "email"})

DEFAULT_WEEK_DAY = 1  # Monday (0 = Sunday)
DEFAULT_MONTH_DATE = 1

# =============================================================================
# Delivery Texts
# =============================================================================
DELIVERY_SUMMARY_TEMPLATE = "Scheduled Jira Report - {date}"
DELIVERY_FILENAME_TEMPLATE = "jira_report_{date}.xlsx"
DELIVERY_DEFAULT_MESSAGE = "Here is your scheduled Jira report."
DELIVERY_NO_ISSUES_REASON = "No issues found matching the criteria"
XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# Issue types tried in order when creating a delivery ticket
PREFERRED_ISSUE_TYPES: Sequence[str] = ("Task", "Story")

# =============================================================================
# Settings
# =============================================================================
SETTINGS_FILENAME = "reports.yaml"

# Environment variable -> AppSettings attribute
ENV_OVERRIDES: Mapping[str, str] = {
    "JIRA_SERVER": "jira_server",
    "JIRA_EMAIL": "jira_email",
    "JIRA_API_TOKEN": "jira_api_token",
    "JIRA_SERVICE_EMAIL": "service_email",
    "JIRA_SERVICE_API_TOKEN": "service_api_token",
    "JIRA_REPORTS_STORE": "store_path",
}


@dataclass(slots=True)
class AppSettings:
    jira_server: str = JIRA_DEFAULT_SERVER
    jira_email: str = ""
    jira_api_token: str = ""
    service_email: str = ""
    service_api_token: str = ""
    store_path: str = ".jira_reports/store.json"
    max_results: int = SEARCH_MAX_RESULTS
    download_encoding: str = "utf-8"

    def service_credentials(self) -> tuple[str, str]:
        """Credentials for the non-interactive identity, falling back to the user's."""
        if self.service_email and self.service_api_token:
            return self.service_email, self.service_api_token
        return self.jira_email, self.jira_api_token


def _coerce(current: Any, raw: Any) -> Any:
    if isinstance(current, int) and not isinstance(current, bool):
        return int(raw)
    return str(raw)


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppSettings:
    """Build settings from an optional YAML file plus environment overrides.

    A missing or unreadable file falls back to defaults; environment variables
    listed in ``ENV_OVERRIDES`` always win over file values.
    """
    settings = AppSettings()
    names = {f.name for f in fields(AppSettings)}
    yaml_path = Path(path) if path else Path.cwd() / SETTINGS_FILENAME
    if yaml_path.exists():
        try:
            data = yaml.safe_load(yaml_path.read_text()) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Ignoring unreadable settings file %s: %s", yaml_path, exc)
            data = {}
        if isinstance(data, dict):
            for key, value in data.items():
                if key in names and value is not None:
                    setattr(settings, key, _coerce(getattr(settings, key), value))
    env = os.environ if environ is None else environ
    for var, attr in ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            setattr(settings, attr, value)
    return settings
