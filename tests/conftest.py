"""Test configuration ensuring local package import when editable install not active.

If users invoke `pytest` outside the project's virtualenv, we still add the project
root to sys.path so `import jira_reports` works. Also provides a recording fake
of ``JiraAPI`` so no test touches the network.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from jira_reports.core.errors import JiraRequestError  # noqa: E402
from jira_reports.core.jira_client import JiraAPI  # noqa: E402
from jira_reports.core.store import MemoryStore  # noqa: E402


def raw_issue(key="OBS-1", *, spent=None, estimate=None, assignee="Alice", comments=None, **extra):
    fields = {
        "summary": f"Issue {key}",
        "status": {"name": "In Progress", "statusCategory": {"name": "In Progress"}},
        "assignee": {"displayName": assignee, "avatarUrls": {"24x24": "https://avatar/a.png"}}
        if assignee
        else None,
        "timetracking": {},
        "priority": {"name": "High"},
        "labels": ["backend"],
        "comment": {"comments": comments or []},
    }
    if spent is not None:
        fields["timetracking"]["timeSpentSeconds"] = spent
        fields["timetracking"]["timeSpent"] = f"{spent // 60}m"
    if estimate is not None:
        fields["timetracking"]["originalEstimateSeconds"] = estimate
        fields["timetracking"]["originalEstimate"] = f"{estimate // 60}m"
    fields.update(extra)
    return {"id": "10001", "key": key, "fields": fields}


def adf_comment(author, text):
    return {
        "author": {"displayName": author},
        "created": "2024-09-01T10:00:00.000+0000",
        "body": {"type": "doc", "version": 1, "content": [{"type": "paragraph", "content": [{"type": "text", "text": text}]}]},
    }


class FakeJiraAPI(JiraAPI):
    """Records every call; ``fail`` maps a method name to the error it raises."""

    def __init__(self, issues=None):
        self.server = "https://example.atlassian.net"
        self.issues = list(issues or [])
        self.users = []
        self.project_list = [{"id": "1", "key": "OBS", "name": "Observatory"}]
        self.issue_type_list = [
            {"id": "3", "name": "Task", "subtask": False},
            {"id": "5", "name": "Sub-task", "subtask": True},
        ]
        self.existing_issues = {"OBS-42": {"key": "OBS-42", "fields": {"summary": "Weekly"}}}
        self.fail: dict[str, Exception] = {}
        self.calls: list[tuple] = []
        self.created_fields: list[dict] = []
        self.comments: list[tuple] = []
        self.attachments: list[tuple] = []
        self.watchers: list[tuple] = []

    def _record(self, name, *args):
        self.calls.append((name, *args))
        if name in self.fail:
            raise self.fail[name]

    def search_jql(self, jql, fields=None, *, max_results=1000, page_size=100):
        self._record("search_jql", jql)
        return list(self.issues)

    def fetch_issue_raw(self, issue_key, fields=None):
        self._record("fetch_issue_raw", issue_key)
        if issue_key not in self.existing_issues:
            raise JiraRequestError(f"Fetch issue {issue_key}", 404, "Issue does not exist")
        return self.existing_issues[issue_key]

    def search_users(self, query):
        self._record("search_users", query)
        return list(self.users)

    def myself(self):
        self._record("myself")
        return {"accountId": "U1", "emailAddress": "me@example.com"}

    def projects(self):
        self._record("projects")
        return list(self.project_list)

    def project_issue_types(self, project_key):
        self._record("project_issue_types", project_key)
        return list(self.issue_type_list)

    def statuses(self):
        return [{"name": "To Do"}, {"name": "Done"}, {"name": "To Do"}]

    def issue_types(self):
        return [{"name": "Task"}, {"name": "Bug"}]

    def priorities(self):
        return [{"name": "High"}, {"name": "Low"}]

    def labels(self):
        return ["backend", "ui"]

    def create_issue(self, fields):
        self._record("create_issue", fields)
        self.created_fields.append(fields)
        return "OBS-100"

    def add_comment(self, issue_key, body):
        self._record("add_comment", issue_key)
        self.comments.append((issue_key, body))

    def add_attachment(self, issue_key, filename, content):
        self._record("add_attachment", issue_key, filename)
        self.attachments.append((issue_key, filename, content))

    def add_watcher(self, issue_key, account_id):
        self._record("add_watcher", issue_key, account_id)
        self.watchers.append((issue_key, account_id))

    def called(self, name):
        return [c for c in self.calls if c[0] == name]


@pytest.fixture
def fake_api():
    return FakeJiraAPI(issues=[raw_issue("OBS-1", spent=7200, estimate=3600), raw_issue("OBS-2")])


@pytest.fixture
def memory_store():
    return MemoryStore()
