from types import SimpleNamespace

import pytest
import requests
from conftest import FakeJiraAPI

from jira_reports.core.errors import JiraRequestError
from jira_reports.core.jira_client import JiraAPI
from jira_reports.core.models import FilterSet
from jira_reports.core.service import IssueService


class DownSession:
    def request(self, method, url, **kwargs):
        raise requests.ConnectionError("connection refused")


def _offline_api():
    api = JiraAPI.__new__(JiraAPI)
    api.server = "https://example.atlassian.net"
    api.client = SimpleNamespace(_session=DownSession())
    return api


def test_transport_error_becomes_jira_request_error():
    with pytest.raises(JiraRequestError) as info:
        _offline_api().search_jql("created is not empty")
    assert info.value.status_code is None
    assert "connection refused" in str(info.value)


def test_fetch_issues_degrades_on_transport_error():
    result = IssueService(_offline_api()).fetch_issues("created is not empty")
    assert result.issues == []
    assert not result.ok
    assert "connection refused" in result.error


def test_fetch_issues_degrades_on_raw_requests_error():
    api = FakeJiraAPI()
    api.fail["search_jql"] = requests.ConnectionError("down")
    result = IssueService(api).fetch_issues("x")
    assert result.issues == []
    assert "down" in result.error


def test_fetch_rows_empty_when_search_times_out():
    api = FakeJiraAPI()
    api.fail["search_jql"] = requests.Timeout("read timed out")
    assert IssueService(api).fetch_rows(FilterSet()) == []
