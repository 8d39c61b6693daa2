"""Domain data models for report filters, issue rows, saved reports, and schedules.

Payloads exchanged with the pages and the key-value store use the camelCase
keys of the Jira REST API; the ``from_dict``/``to_dict`` helpers translate.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import pandas as pd

from .config import (
    DEFAULT_DURATION,
    REPORT_VISIBILITIES,
    SCHEDULE_DESTINATIONS,
    SCHEDULE_FREQUENCIES,
    UNASSIGNED_NAME,
)


def parse_timestamp(val: Any) -> datetime | None:
    if not val:
        return None
    if isinstance(val, datetime):
        ts = pd.Timestamp(val)
        ts = ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")
        return ts.to_pydatetime()
    ts = pd.to_datetime(val, utc=True, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    return ts.to_pydatetime()


def _optional_int(val: Any) -> int | None:
    if val is None or val == "":
        return None
    try:
        return int(val)
    except (TypeError, ValueError):
        return None


_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off", ""})


def parse_bool(val: Any, default: bool = False) -> bool:
    """Strict boolean parsing; the string "false" is False, unknown text falls back to ``default``."""
    if val is None:
        return default
    if isinstance(val, bool):
        return val
    if isinstance(val, int | float):
        return val != 0
    text = str(val).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    return default


@dataclass(slots=True, frozen=True)
class FilterOption:
    label: str
    value: str
    key: str | None = None

    @classmethod
    def from_raw(cls, raw: Any) -> FilterOption | None:
        """Parse a ``{label, value, key?}`` entry; anything malformed yields None."""
        if not isinstance(raw, Mapping):
            return None
        value = raw.get("value")
        key = raw.get("key")
        if (value is None or str(value).strip() == "") and not key:
            return None
        value_text = "" if value is None else str(value)
        label = raw.get("label")
        return cls(
            label=str(label) if label is not None else value_text,
            value=value_text,
            key=str(key) if key else None,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"label": self.label, "value": self.value}
        if self.key:
            out["key"] = self.key
        return out


def _options(raw: Any) -> list[FilterOption]:
    if not isinstance(raw, list | tuple):
        return []
    parsed = (FilterOption.from_raw(item) for item in raw)
    return [opt for opt in parsed if opt is not None]


def _sprint_values(raw: Any) -> list[str]:
    if not isinstance(raw, list | tuple | set):
        return []
    values: list[str] = []
    for item in raw:
        if isinstance(item, Mapping):
            item = item.get("value")
        if item is None or isinstance(item, bool):
            continue
        text = str(item).strip()
        if text and text not in values:
            values.append(text)
    return values


@dataclass(slots=True)
class FilterSet:
    project: list[FilterOption] = field(default_factory=list)
    assignee: list[FilterOption] = field(default_factory=list)
    status: list[FilterOption] = field(default_factory=list)
    issue_type: list[FilterOption] = field(default_factory=list)
    priority: list[FilterOption] = field(default_factory=list)
    labels: list[FilterOption] = field(default_factory=list)
    parent: list[FilterOption] = field(default_factory=list)
    sprint: list[str] = field(default_factory=list)
    start_date: str | None = None
    end_date: str | None = None
    exceeded_only: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> FilterSet:
        data = data or {}
        return cls(
            project=_options(data.get("project")),
            assignee=_options(data.get("assignee")),
            status=_options(data.get("status")),
            issue_type=_options(data.get("issueType")),
            priority=_options(data.get("priority")),
            labels=_options(data.get("labels")),
            parent=_options(data.get("parent")),
            sprint=_sprint_values(data.get("sprint")),
            start_date=data.get("startDate") or None,
            end_date=data.get("endDate") or None,
            exceeded_only=parse_bool(data.get("exceededOnly")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "project": [o.to_dict() for o in self.project],
            "assignee": [o.to_dict() for o in self.assignee],
            "status": [o.to_dict() for o in self.status],
            "issueType": [o.to_dict() for o in self.issue_type],
            "priority": [o.to_dict() for o in self.priority],
            "labels": [o.to_dict() for o in self.labels],
            "parent": [o.to_dict() for o in self.parent],
            "sprint": list(self.sprint),
            "startDate": self.start_date,
            "endDate": self.end_date,
            "exceededOnly": self.exceeded_only,
        }

    def project_keys(self) -> list[str]:
        return [o.key or o.value for o in self.project if (o.key or o.value)]


@dataclass(slots=True)
class CommentRow:
    author: str
    created: datetime | None
    text: str


@dataclass(slots=True)
class IssueRow:
    id: str | None
    key: str
    url: str
    summary: str | None
    assignee_name: str = UNASSIGNED_NAME
    assignee_avatar_url: str = ""
    status: str | None = None
    status_category: str | None = None
    time_spent: str = DEFAULT_DURATION
    estimate: str = DEFAULT_DURATION
    time_spent_seconds: int = 0
    estimate_seconds: int = 0
    exceeded: bool = False
    labels: list[str] = field(default_factory=list)
    priority: str | None = None
    parent_key: str | None = None
    last_comment: CommentRow | None = None
    comments: list[CommentRow] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """JSON shape returned to the pages."""

        def comment(c: CommentRow) -> dict[str, Any]:
            return {
                "author": c.author,
                "created": c.created.isoformat() if c.created else None,
                "text": c.text,
            }

        return {
            "id": self.id,
            "key": self.key,
            "url": self.url,
            "summary": self.summary,
            "assignee": {"name": self.assignee_name, "avatarUrl": self.assignee_avatar_url},
            "status": self.status,
            "statusCategory": self.status_category,
            "timeSpent": self.time_spent,
            "estimate": self.estimate,
            "timeSpentSeconds": self.time_spent_seconds,
            "estimateSeconds": self.estimate_seconds,
            "exceeded": self.exceeded,
            "labels": list(self.labels),
            "priority": self.priority,
            "parent": self.parent_key,
            "lastComment": comment(self.last_comment) if self.last_comment else None,
            "comments": [comment(c) for c in self.comments],
        }


@dataclass(slots=True)
class Report:
    id: str
    name: str
    owner_account_id: str
    visibility: str = "private"
    project_key: str | None = None
    filters: FilterSet = field(default_factory=FilterSet)
    columns: list[str] = field(default_factory=list)
    sort: dict[str, Any] = field(default_factory=dict)
    created_at: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Report:
        visibility = data.get("visibility") or "private"
        if visibility not in REPORT_VISIBILITIES:
            visibility = "private"
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            owner_account_id=str(data.get("ownerAccountId") or ""),
            visibility=visibility,
            project_key=data.get("projectKey") if visibility == "project" else None,
            filters=FilterSet.from_dict(data.get("filters")),
            columns=[str(c) for c in data.get("columns") or []],
            sort=dict(data.get("sort") or {}),
            created_at=data.get("createdAt"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "ownerAccountId": self.owner_account_id,
            "visibility": self.visibility,
            "projectKey": self.project_key,
            "filters": self.filters.to_dict(),
            "columns": list(self.columns),
            "sort": dict(self.sort),
            "createdAt": self.created_at,
        }


@dataclass(slots=True)
class Schedule:
    email: str
    id: str | None = None
    account_id: str | None = None
    active: bool = True
    frequency: str = "daily"
    time: str | None = None
    week_day: int | None = None
    month_date: int | None = None
    destination: str = "create-issue"
    target_issue_key: str | None = None
    message: str = ""
    filters: FilterSet = field(default_factory=FilterSet)
    selected_fields: list[str] = field(default_factory=list)
    comment_mode: str = "last"
    last_run: datetime | None = None
    created_at: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Schedule:
        frequency = data.get("frequency") or "daily"
        destination = data.get("destination") or "create-issue"
        return cls(
            email=str(data.get("email") or "").strip(),
            id=data.get("id") or None,
            account_id=data.get("accountId") or None,
            active=parse_bool(data.get("active"), default=True),
            frequency=frequency if frequency in SCHEDULE_FREQUENCIES else "daily",
            time=data.get("time") or None,
            week_day=_optional_int(data.get("weekDay")),
            month_date=_optional_int(data.get("monthDate")),
            destination=destination if destination in SCHEDULE_DESTINATIONS else "create-issue",
            target_issue_key=(data.get("targetIssueKey") or "").strip() or None,
            message=str(data.get("message") or ""),
            filters=FilterSet.from_dict(data.get("filters")),
            selected_fields=[str(f) for f in data.get("selectedFields") or []],
            comment_mode=data.get("commentMode") or "last",
            last_run=parse_timestamp(data.get("lastRun")),
            created_at=data.get("createdAt"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "accountId": self.account_id,
            "active": self.active,
            "frequency": self.frequency,
            "time": self.time,
            "weekDay": self.week_day,
            "monthDate": self.month_date,
            "destination": self.destination,
            "targetIssueKey": self.target_issue_key,
            "message": self.message,
            "filters": self.filters.to_dict(),
            "selectedFields": list(self.selected_fields),
            "commentMode": self.comment_mode,
            "lastRun": self.last_run.isoformat() if self.last_run else None,
            "createdAt": self.created_at,
        }
