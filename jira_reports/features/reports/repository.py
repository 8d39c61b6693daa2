"""Saved report views stored individually under ``report:<id>`` keys."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator, Mapping
from datetime import datetime
from typing import Any

import pytz

from jira_reports.core.config import REPORT_KEY_PREFIX, REPORT_VISIBILITIES, STORE_SCAN_LIMIT
from jira_reports.core.errors import ReportAccessError, ReportNotFoundError, ValidationError
from jira_reports.core.models import FilterSet, Report
from jira_reports.core.store import KeyValueStore

logger = logging.getLogger(__name__)


def report_key(report_id: str) -> str:
    return f"{REPORT_KEY_PREFIX}{report_id}"


def is_visible_to(report: Report, caller_account_id: str, project_key: str | None = None) -> bool:
    """Owners always see their reports; project reports need a matching project context."""
    if report.owner_account_id == caller_account_id:
        return True
    if report.visibility == "global":
        return True
    if report.visibility == "project":
        return bool(project_key) and report.project_key == project_key
    return False


def iter_reports(store: KeyValueStore, page_size: int = STORE_SCAN_LIMIT) -> Iterator[Report]:
    cursor = None
    while True:
        page = store.scan(limit=page_size, cursor=cursor)
        for key, value in page.items:
            if not key.startswith(REPORT_KEY_PREFIX) or not isinstance(value, dict):
                continue
            yield Report.from_dict(value)
        cursor = page.cursor
        if not cursor:
            break


def save_report(store: KeyValueStore, owner_account_id: str, payload: Mapping[str, Any]) -> Report:
    name = str(payload.get("name") or "").strip()
    if not name:
        raise ValidationError("Report name is required")
    visibility = payload.get("visibility") or "private"
    if visibility not in REPORT_VISIBILITIES:
        raise ValidationError(f"Unknown visibility {visibility!r}")
    filters = FilterSet.from_dict(payload.get("filters"))

    project_key = None
    if visibility == "project":
        keys = filters.project_keys()
        project_key = payload.get("projectKey") or (keys[0] if keys else None)
        if not project_key:
            raise ValidationError("Project visibility requires a project")

    report = Report(
        id=uuid.uuid4().hex,
        name=name,
        owner_account_id=owner_account_id,
        visibility=visibility,
        project_key=project_key,
        filters=filters,
        columns=[str(c) for c in payload.get("columns") or []],
        sort=dict(payload.get("sort") or {}),
        created_at=datetime.now(pytz.UTC).isoformat(),
    )
    store.set(report_key(report.id), report.to_dict())
    logger.info("Saved report %s (%s) for %s", report.id, visibility, owner_account_id)
    return report


def list_reports(store: KeyValueStore, caller_account_id: str, project_key: str | None = None) -> list[Report]:
    visible = [r for r in iter_reports(store) if is_visible_to(r, caller_account_id, project_key)]
    return sorted(visible, key=lambda r: r.created_at or "", reverse=True)


def delete_report(store: KeyValueStore, caller_account_id: str, report_id: str) -> None:
    raw = store.get(report_key(report_id))
    if not isinstance(raw, dict):
        raise ReportNotFoundError(f"Report {report_id} not found")
    report = Report.from_dict(raw)
    if report.owner_account_id != caller_account_id:
        raise ReportAccessError("Only the owner can delete this report")
    store.delete(report_key(report_id))
    logger.info("Deleted report %s", report_id)
