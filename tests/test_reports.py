import pytest

from jira_reports.core.errors import ReportAccessError, ReportNotFoundError, ValidationError
from jira_reports.features.reports import delete_report, iter_reports, list_reports, save_report

OBS = {"project": [{"label": "Observatory", "value": "1", "key": "OBS"}]}


def test_private_reports_only_visible_to_owner(memory_store):
    report = save_report(memory_store, "U1", {"name": "Mine", "visibility": "private", "filters": OBS})
    assert [r.id for r in list_reports(memory_store, "U1")] == [report.id]
    assert list_reports(memory_store, "U2") == []


def test_global_and_project_visibility(memory_store):
    g = save_report(memory_store, "U1", {"name": "Everyone", "visibility": "global"})
    p = save_report(memory_store, "U1", {"name": "Team", "visibility": "project", "filters": OBS})
    assert p.project_key == "OBS"

    assert {r.id for r in list_reports(memory_store, "U2")} == {g.id}
    assert {r.id for r in list_reports(memory_store, "U2", "OBS")} == {g.id, p.id}
    assert {r.id for r in list_reports(memory_store, "U2", "DM")} == {g.id}


def test_validation(memory_store):
    with pytest.raises(ValidationError):
        save_report(memory_store, "U1", {"name": "  "})
    with pytest.raises(ValidationError):
        save_report(memory_store, "U1", {"name": "X", "visibility": "team"})
    with pytest.raises(ValidationError):
        save_report(memory_store, "U1", {"name": "X", "visibility": "project"})


def test_delete_is_owner_only(memory_store):
    report = save_report(memory_store, "U1", {"name": "Mine", "visibility": "global"})
    with pytest.raises(ReportAccessError):
        delete_report(memory_store, "U2", report.id)
    delete_report(memory_store, "U1", report.id)
    assert list_reports(memory_store, "U1") == []
    with pytest.raises(ReportNotFoundError):
        delete_report(memory_store, "U1", report.id)


def test_scan_pages_skip_foreign_keys(memory_store):
    memory_store.set("schedules", [])
    ids = {save_report(memory_store, "U1", {"name": f"R{i}"}).id for i in range(5)}
    assert {r.id for r in iter_reports(memory_store, page_size=2)} == ids
