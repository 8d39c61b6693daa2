from datetime import datetime

import pytz

from jira_reports.core.models import Schedule
from jira_reports.core.service import IssueService
from jira_reports.features.schedules import DeliveryOrchestrator, ScheduleStore, run_due_schedules

NOW = datetime(2024, 1, 1, 9, 15, tzinfo=pytz.UTC)


class CountingStore(ScheduleStore):
    def __init__(self, store):
        super().__init__(store)
        self.writes = 0

    def save_all(self, schedules):
        self.writes += 1
        super().save_all(schedules)


def _seed(store, *payloads):
    store.save_all([Schedule.from_dict(p) for p in payloads])
    store.writes = 0


def test_successful_delivery_stamps_last_run(fake_api, memory_store):
    store = CountingStore(memory_store)
    _seed(
        store,
        {"email": "ok@example.com", "time": "09:00", "filters": {"project": [{"label": "O", "value": "1", "key": "OBS"}]}},
        {"email": "broken@example.com", "time": "09:00", "destination": "comment-on-issue"},
        {"email": "later@example.com", "time": "17:00"},
    )

    summary = run_due_schedules(store, DeliveryOrchestrator(IssueService(fake_api)), now=NOW)

    assert summary.evaluated == 3
    assert set(summary.results) == {"ok@example.com", "broken@example.com"}
    assert summary.delivered == 1 and summary.failed == 1
    assert summary.persisted and store.writes == 1

    by_email = {s.email: s for s in store.load()}
    assert by_email["ok@example.com"].last_run == NOW
    assert by_email["broken@example.com"].last_run is None
    assert by_email["later@example.com"].last_run is None


def test_second_tick_same_day_does_nothing(fake_api, memory_store):
    store = CountingStore(memory_store)
    _seed(store, {"email": "ok@example.com", "time": "09:00"})
    orchestrator = DeliveryOrchestrator(IssueService(fake_api))

    run_due_schedules(store, orchestrator, now=NOW)
    created = len(fake_api.called("create_issue"))
    summary = run_due_schedules(store, orchestrator, now=NOW.replace(minute=45))

    assert summary.results == {}
    assert len(fake_api.called("create_issue")) == created
    assert store.writes == 1


def test_no_write_when_every_delivery_fails(fake_api, memory_store):
    fake_api.issues = []
    store = CountingStore(memory_store)
    _seed(store, {"email": "ok@example.com", "time": "09:00"})

    summary = run_due_schedules(store, DeliveryOrchestrator(IssueService(fake_api)), now=NOW)

    assert summary.failed == 1
    assert not summary.persisted
    assert store.writes == 0
