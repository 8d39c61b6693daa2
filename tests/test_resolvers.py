import pytest
import requests
from conftest import FakeJiraAPI, raw_issue

from jira_reports.core.errors import JiraRequestError, ValidationError
from jira_reports.core.service import IssueService
from jira_reports.resolvers import CallerContext, ReportResolvers

OBS = [{"label": "Observatory", "value": "1", "key": "OBS"}]


@pytest.fixture
def service_api():
    return FakeJiraAPI(issues=[raw_issue("OBS-7")])


@pytest.fixture
def resolvers(fake_api, service_api, memory_store):
    return ReportResolvers(
        IssueService(fake_api),
        IssueService(service_api),
        memory_store,
        CallerContext("U1"),
    )


def test_unknown_operation(resolvers):
    with pytest.raises(ValidationError):
        resolvers.invoke("dropTables")


def test_build_and_fetch_issues_sorted(resolvers, fake_api):
    rows = resolvers.invoke("buildAndFetchIssues", {"project": OBS, "sortKey": "key", "sortOrder": "DESC"})
    assert [r["key"] for r in rows] == ["OBS-2", "OBS-1"]
    assert rows[1]["exceeded"] is True
    assert fake_api.called("search_jql")[0][1] == 'project in ("OBS") order by created DESC'


def test_option_lookups(resolvers):
    assert resolvers.invoke("getProjects") == [{"label": "Observatory", "value": "1", "key": "OBS"}]
    assert resolvers.invoke("getStatuses") == [{"label": "To Do", "value": "To Do"}, {"label": "Done", "value": "Done"}]
    assert resolvers.invoke("getLabels")[0] == {"label": "backend", "value": "backend"}
    assert resolvers.invoke("getCurrentUserEmail") == "me@example.com"


def test_bulk_add_comment_reports_each_key(resolvers, fake_api):
    fake_api.fail["add_comment"] = JiraRequestError("Add comment", 403, "nope")
    results = resolvers.invoke("bulkAddComment", {"issueKeys": ["OBS-1", "OBS-2"], "comment": "hello"})
    assert [r["status"] for r in results] == ["failed", "failed"]
    with pytest.raises(ValidationError):
        resolvers.invoke("bulkAddComment", {"issueKeys": [], "comment": "hello"})


def test_save_schedule_validates(resolvers):
    with pytest.raises(ValidationError):
        resolvers.invoke("saveSchedule", {"email": "", "time": "09:00"})
    with pytest.raises(ValidationError):
        resolvers.invoke("saveSchedule", {"email": "a@example.com", "destination": "comment-on-issue"})
    with pytest.raises(ValidationError):
        resolvers.invoke("saveSchedule", {"email": "a@example.com", "time": "25:00"})

    result = resolvers.invoke("saveSchedule", {"email": "a@example.com", "time": "09:00"})
    assert result["success"] is True and result["id"]
    resolvers.invoke("saveSchedule", {"email": "a@example.com", "time": "11:00"})
    assert [s.time for s in resolvers.schedules.load()] == ["11:00"]


def test_trigger_uses_service_identity_without_stamping(resolvers, fake_api, service_api):
    resolvers.invoke("saveSchedule", {"email": "a@example.com", "time": "09:00", "filters": {"project": OBS}})
    result = resolvers.invoke("triggerScheduleNow", {"email": "a@example.com"})

    assert result == {"success": True, "message": "Report delivered to OBS-100", "ticket": "OBS-100"}
    assert service_api.called("create_issue")
    assert not fake_api.called("create_issue")
    assert resolvers.schedules.find_by_email("a@example.com").last_run is None


def test_trigger_unknown_email(resolvers):
    result = resolvers.invoke("triggerScheduleNow", {"email": "nobody@example.com"})
    assert result["success"] is False and result["ticket"] is None


def test_saved_report_operations(resolvers, memory_store, fake_api, service_api):
    saved = resolvers.invoke("saveReport", {"name": "Weekly", "visibility": "private", "filters": {"project": OBS}})
    assert [r["id"] for r in resolvers.invoke("listReports")] == [saved["id"]]

    other = ReportResolvers(IssueService(fake_api), IssueService(service_api), memory_store, CallerContext("U2"))
    assert other.invoke("listReports") == []
    with pytest.raises(ValidationError):
        resolvers.invoke("deleteReport", {})
    assert resolvers.invoke("deleteReport", {"reportId": saved["id"]}) == {"success": True}


def test_save_schedule_rejects_out_of_range_values(resolvers):
    base = {"email": "a@example.com", "time": "09:00"}
    for bad in (
        {"frequency": "weekly", "weekDay": 7},
        {"frequency": "weekly", "weekDay": "-1"},
        {"frequency": "monthly", "monthDate": 0},
        {"frequency": "monthly", "monthDate": 32},
        {"commentMode": "everything"},
        {"frequency": "hourly"},
        {"destination": "fax"},
    ):
        with pytest.raises(ValidationError):
            resolvers.invoke("saveSchedule", {**base, **bad})
    assert resolvers.schedules.load() == []

    ok = resolvers.invoke("saveSchedule", {**base, "frequency": "weekly", "weekDay": "0", "commentMode": "full"})
    assert ok["success"] is True


def test_string_false_deactivates_schedule(resolvers):
    resolvers.invoke("saveSchedule", {"email": "a@example.com", "time": "09:00", "active": "false"})
    assert resolvers.schedules.find_by_email("a@example.com").active is False


def test_build_and_fetch_issues_survives_transport_error(resolvers, fake_api):
    fake_api.fail["search_jql"] = requests.ConnectionError("down")
    assert resolvers.invoke("buildAndFetchIssues", {"project": OBS}) == []
