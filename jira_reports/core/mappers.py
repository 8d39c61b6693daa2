"""Mapping raw Jira issue JSON into IssueRow instances and table frames."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

import pandas as pd

from .adf import first_text
from .config import AVATAR_SIZE_KEY, DEFAULT_DURATION, UNASSIGNED_NAME
from .models import CommentRow, IssueRow, parse_timestamp


def _seconds(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _name(node: Any) -> str | None:
    if isinstance(node, dict):
        return node.get("name")
    return None


def map_comment(raw: dict[str, Any]) -> CommentRow:
    author = raw.get("author") or {}
    return CommentRow(
        author=author.get("displayName") or "Unknown",
        created=parse_timestamp(raw.get("created")),
        text=first_text(raw.get("body")),
    )


def map_issue(raw: dict[str, Any], server: str = "") -> IssueRow:
    fields = raw.get("fields") or {}
    key = raw.get("key") or ""

    assignee = fields.get("assignee")
    if isinstance(assignee, dict):
        assignee_name = assignee.get("displayName") or UNASSIGNED_NAME
        avatar = (assignee.get("avatarUrls") or {}).get(AVATAR_SIZE_KEY, "")
    else:
        assignee_name, avatar = UNASSIGNED_NAME, ""

    status = fields.get("status") or {}
    tracking = fields.get("timetracking") or {}
    spent_seconds = _seconds(tracking.get("timeSpentSeconds"))
    estimate_seconds = _seconds(tracking.get("originalEstimateSeconds"))

    comments_raw = (fields.get("comment") or {}).get("comments") or []
    comments = [map_comment(c) for c in comments_raw if isinstance(c, dict)]

    parent = fields.get("parent")
    return IssueRow(
        id=raw.get("id"),
        key=key,
        url=f"{server.rstrip('/')}/browse/{key}",
        summary=fields.get("summary"),
        assignee_name=assignee_name,
        assignee_avatar_url=avatar,
        status=status.get("name"),
        status_category=_name(status.get("statusCategory")),
        time_spent=tracking.get("timeSpent") or DEFAULT_DURATION,
        estimate=tracking.get("originalEstimate") or DEFAULT_DURATION,
        time_spent_seconds=spent_seconds,
        estimate_seconds=estimate_seconds,
        exceeded=spent_seconds > estimate_seconds,
        labels=list(fields.get("labels") or []),
        priority=_name(fields.get("priority")),
        parent_key=parent.get("key") if isinstance(parent, dict) else None,
        last_comment=comments[-1] if comments else None,
        comments=comments,
    )


def map_issues(raw_issues: Iterable[dict[str, Any]], server: str = "") -> list[IssueRow]:
    return [map_issue(r, server) for r in raw_issues if isinstance(r, dict)]


def rows_to_dataframe(rows: Iterable[IssueRow]) -> pd.DataFrame:
    records = []
    for r in rows:
        last = r.last_comment
        records.append(
            {
                "key": r.key,
                "summary": r.summary,
                "assignee": r.assignee_name,
                "status": r.status,
                "status_category": r.status_category,
                "priority": r.priority or "None",
                "labels": ", ".join(sorted({lb for lb in r.labels if lb}, key=str.lower)),
                "time_spent": r.time_spent,
                "estimate": r.estimate,
                "time_spent_seconds": r.time_spent_seconds,
                "estimate_seconds": r.estimate_seconds,
                "exceeded": r.exceeded,
                "last_comment": f"[{last.author}]: {last.text}" if last else "",
                "url": r.url,
            }
        )
    return pd.DataFrame(records)


_SORT_SECONDS = {"timeSpent": "time_spent_seconds", "estimate": "estimate_seconds"}
_SORT_ATTRS = {
    "key": "key",
    "summary": "summary",
    "assignee": "assignee_name",
    "status": "status",
    "priority": "priority",
    "exceeded": "exceeded",
}


def sort_rows(rows: Sequence[IssueRow], sort_key: str | None, order: str = "ASC") -> list[IssueRow]:
    """Stable sort by a table column key; strings compare case-insensitively.

    Time columns sort by their seconds value, assignee by display name.
    Unknown keys leave the order untouched.
    """
    if not rows:
        return []
    attr = _SORT_SECONDS.get(sort_key or "") or _SORT_ATTRS.get(sort_key or "")
    if not attr:
        return list(rows)

    def value(row: IssueRow):
        val = getattr(row, attr)
        if isinstance(val, str) or val is None:
            return (str(val or "")).lower()
        return val

    return sorted(rows, key=value, reverse=str(order).upper() == "DESC")
