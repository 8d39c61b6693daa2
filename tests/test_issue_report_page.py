from datetime import date

from jira_reports.core.jql import build_jql
from jira_reports.core.models import FilterSet
from jira_reports.pages.issue_report import build_comment_payload, build_filter_payload, pick_options

PROJECTS = [
    {"label": "Observatory", "value": "1", "key": "OBS"},
    {"label": "Data", "value": "2", "key": "DM"},
]


def test_pick_options_keeps_selection_order():
    assert [o["key"] for o in pick_options(PROJECTS, ["Data", "Observatory", "Missing"])] == ["DM", "OBS"]


def test_payload_feeds_query_builder():
    payload = build_filter_payload(
        {"project": pick_options(PROJECTS, ["Observatory"]), "status": []},
        sprint_text="42, Sprint 7 ,",
        date_range=(date(2024, 1, 1), date(2024, 1, 31)),
        exceeded_only=True,
    )
    assert "status" not in payload
    assert payload["sprint"] == ["42", "Sprint 7"]
    assert build_jql(FilterSet.from_dict(payload)) == (
        'project in ("OBS") AND updated >= "2024-01-01" AND updated <= "2024-01-31" '
        'AND workRatio > 100 AND sprint in (42, "Sprint 7") order by created DESC'
    )


def test_single_date_is_ignored():
    payload = build_filter_payload({}, date_range=(date(2024, 1, 1),))
    assert "startDate" not in payload and payload["exceededOnly"] is False


def test_comment_payload_carries_selected_mentions():
    users = [{"label": "Alice", "value": "acc-1"}, {"label": "Bob", "value": "acc-2"}]
    payload = build_comment_payload(("OBS-1",), "ping", users, ["Bob"])
    assert payload == {"issueKeys": ["OBS-1"], "comment": "ping", "mentions": [{"label": "Bob", "value": "acc-2"}]}
