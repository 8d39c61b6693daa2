"""IssueService: runs searches for one identity and maps results into rows."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

import requests

from .adf import document, mentions_paragraph, paragraph, text_node
from .config import AVATAR_SIZE_KEY, JIRA_FETCH_BASE_FIELDS, SEARCH_MAX_RESULTS
from .errors import JiraRequestError
from .jira_client import JiraAPI
from .jql import build_jql
from .mappers import map_issues
from .models import FilterSet, IssueRow

logger = logging.getLogger(__name__)

DEFAULT_FIELDS: Sequence[str] = tuple(JIRA_FETCH_BASE_FIELDS)


@dataclass(slots=True)
class FetchResult:
    issues: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class IssueService:
    def __init__(self, api: JiraAPI, *, max_results: int = SEARCH_MAX_RESULTS):
        self.api = api
        self.max_results = max_results

    @property
    def server(self) -> str:
        return getattr(self.api, "server", "")

    # ------------------ Fetch Methods ------------------
    def fetch_issues(self, jql: str) -> FetchResult:
        """Search with the fixed field projection.

        Search failures never raise: they are logged and returned as an empty
        result carrying the error text.
        """
        logger.debug("Searching with JQL: %s", jql)
        try:
            raw = self.api.search_jql(jql, fields=list(DEFAULT_FIELDS), max_results=self.max_results)
        except JiraRequestError as exc:
            logger.error("Jira search failed: %s %s", exc.status_code, exc.body[:500])
            return FetchResult(error=str(exc))
        except requests.RequestException as exc:
            logger.error("Jira search failed without a response: %s", exc)
            return FetchResult(error=f"Issue search failed: {exc}")
        return FetchResult(issues=list(raw or []))

    def fetch_rows(self, filters: FilterSet) -> list[IssueRow]:
        result = self.fetch_issues(build_jql(filters))
        return map_issues(result.issues, self.server)

    # ------------------ Option Lookups ------------------
    def get_projects(self) -> list[dict[str, Any]]:
        return [
            {"label": p.get("name"), "value": p.get("id"), "key": p.get("key")}
            for p in self.api.projects()
        ]

    def get_users(self, query: str = "") -> list[dict[str, Any]]:
        return [
            {
                "label": u.get("displayName"),
                "value": u.get("accountId"),
                "avatarUrl": (u.get("avatarUrls") or {}).get(AVATAR_SIZE_KEY, ""),
            }
            for u in self.api.search_users(query)
        ]

    def get_statuses(self) -> list[dict[str, Any]]:
        return _unique_named_options(self.api.statuses())

    def get_issue_types(self) -> list[dict[str, Any]]:
        return _unique_named_options(self.api.issue_types())

    def get_priorities(self) -> list[dict[str, Any]]:
        return _unique_named_options(self.api.priorities())

    def get_labels(self) -> list[dict[str, Any]]:
        return [{"label": lb, "value": lb} for lb in self.api.labels()]

    # ------------------ Comments ------------------
    def bulk_add_comment(
        self,
        issue_keys: Iterable[str],
        comment: str,
        mentions: Iterable[dict[str, Any]] | None = None,
    ) -> list[dict[str, Any]]:
        """Post the same comment on every issue; one failure does not stop the rest."""
        content = [paragraph(text_node(comment or " "))]
        cc = mentions_paragraph((m.get("value"), m.get("label")) for m in mentions or [])
        if cc:
            content.append(cc)
        body = document(*content)
        results = []
        for key in issue_keys:
            try:
                self.api.add_comment(key, body)
                results.append({"key": key, "status": "success"})
            except JiraRequestError as exc:
                logger.warning("Bulk comment failed for %s: %s", key, exc)
                results.append({"key": key, "status": "failed", "error": str(exc)})
        return results


def _unique_named_options(items: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    seen: set[str] = set()
    out = []
    for item in items:
        name = item.get("name")
        if not name or name in seen:
            continue
        seen.add(name)
        out.append({"label": name, "value": name})
    return out
