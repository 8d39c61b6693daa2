"""Jira API client wrapper (REST v3 + token-paginated JQL search).

Each ``JiraAPI`` instance acts as exactly one identity: the interactive user's
credentials or the app-level service account used by scheduled deliveries.
Every non-success response surfaces as ``JiraRequestError``.
"""

from __future__ import annotations

import io
import json
import logging
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

import requests
from jira import JIRA, JIRAError

from .config import SEARCH_MAX_RESULTS, SEARCH_PAGE_SIZE
from .errors import JiraRequestError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class JiraAPI:
    def __init__(self, server: str, email: str, token: str):
        self.server = server.rstrip("/")
        self.client = JIRA(
            basic_auth=(email, token), options={"server": self.server, "rest_api_version": "3"}
        )

    # ------------------ Transport ------------------
    def _session(self):
        session = getattr(self.client, "_session", None)
        if session is None:
            raise RuntimeError("JIRA session unavailable")
        return session

    def _request(self, method: str, path: str, *, action: str, **kwargs) -> Any:
        url = f"{self.server}{path}"
        try:
            resp = self._session().request(method, url, **kwargs)
        except JIRAError as exc:
            raise JiraRequestError(action, exc.status_code, exc.text or str(exc)) from exc
        except requests.RequestException as exc:
            raise JiraRequestError(action, None, str(exc)) from exc
        if resp.status_code >= 400:
            raise JiraRequestError(action, resp.status_code, resp.text)
        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    def _call(self, action: str, fn: Callable[..., T], *args, **kwargs) -> T:
        try:
            return fn(*args, **kwargs)
        except JIRAError as exc:
            raise JiraRequestError(action, exc.status_code, exc.text or str(exc)) from exc
        except requests.RequestException as exc:
            raise JiraRequestError(action, None, str(exc)) from exc

    # ------------------ Search ------------------
    def search_jql(
        self,
        jql: str,
        fields: Sequence[str] | None = None,
        *,
        max_results: int = SEARCH_MAX_RESULTS,
        page_size: int = SEARCH_PAGE_SIZE,
    ) -> list[dict[str, Any]]:
        payload: dict[str, Any] = {"jql": jql, "maxResults": min(page_size, max_results)}
        if fields:
            payload["fields"] = list(fields)
        out: list[dict[str, Any]] = []
        token = None
        while len(out) < max_results:
            body = dict(payload)
            if token:
                body["nextPageToken"] = token
            data = self._request(
                "POST",
                "/rest/api/3/search/jql",
                action="Issue search",
                data=json.dumps(body),
                headers={"Accept": "application/json", "Content-Type": "application/json"},
            ) or {}
            out.extend(data.get("issues", []) or [])
            token = data.get("nextPageToken")
            if not token or data.get("isLast") is True:
                break
        return out[:max_results]

    # ------------------ Lookups ------------------
    def fetch_issue_raw(self, issue_key: str, fields: Sequence[str] | None = None) -> dict[str, Any]:
        kwargs = {"fields": ",".join(fields)} if fields else {}
        issue = self._call(f"Fetch issue {issue_key}", self.client.issue, issue_key, **kwargs)
        if hasattr(issue, "raw"):
            return issue.raw
        if isinstance(issue, dict):
            return issue
        raise RuntimeError(f"Unexpected issue payload type for {issue_key}: {type(issue)!r}")

    def search_users(self, query: str) -> list[dict[str, Any]]:
        data = self._request(
            "GET", "/rest/api/3/user/search", action="User search", params={"query": query}
        )
        return data or []

    def myself(self) -> dict[str, Any]:
        return self._request("GET", "/rest/api/3/myself", action="Current user") or {}

    def projects(self) -> list[dict[str, Any]]:
        data = self._request(
            "GET", "/rest/api/3/project/search", action="Project search", params={"maxResults": 100}
        ) or {}
        return data.get("values", []) or []

    def project_issue_types(self, project_id_or_key: str) -> list[dict[str, Any]]:
        """Issue types the identity may create in the project (create metadata, id or key)."""
        data = self._request(
            "GET",
            f"/rest/api/3/issue/createmeta/{project_id_or_key}/issuetypes",
            action=f"Create metadata for {project_id_or_key}",
        ) or {}
        return data.get("issueTypes") or data.get("values") or []

    def statuses(self) -> list[dict[str, Any]]:
        return self._request("GET", "/rest/api/3/status", action="Status list") or []

    def issue_types(self) -> list[dict[str, Any]]:
        return self._request("GET", "/rest/api/3/issuetype", action="Issue type list") or []

    def priorities(self) -> list[dict[str, Any]]:
        return self._request("GET", "/rest/api/3/priority", action="Priority list") or []

    def labels(self) -> list[str]:
        data = self._request("GET", "/rest/api/3/label", action="Label list") or {}
        return data.get("values", []) or []

    # ------------------ Mutations ------------------
    def create_issue(self, fields: dict[str, Any]) -> str:
        issue = self._call("Issue creation", self.client.create_issue, fields=fields, prefetch=False)
        return issue.key

    def add_comment(self, issue_key: str, body: dict[str, Any]) -> None:
        self._call(f"Comment on {issue_key}", self.client.add_comment, issue_key, body)

    def add_attachment(self, issue_key: str, filename: str, content: bytes) -> None:
        self._call(
            f"Attachment upload to {issue_key}",
            self.client.add_attachment,
            issue=issue_key,
            attachment=io.BytesIO(content),
            filename=filename,
        )

    def add_watcher(self, issue_key: str, account_id: str) -> None:
        self._call(f"Add watcher to {issue_key}", self.client.add_watcher, issue_key, account_id)
