from datetime import datetime

import pytz

from jira_reports.core.models import Schedule
from jira_reports.features.schedules.evaluator import due_now, scheduled_hour, week_day_index

UTC = pytz.UTC


def _at(*args):
    return datetime(*args, tzinfo=UTC)


def test_daily_fires_once_per_utc_day():
    schedule = Schedule(email="a@example.com", time="09:00")
    first = _at(2024, 1, 1, 9, 30)
    assert due_now([schedule], first) == [schedule]
    schedule.last_run = first
    assert due_now([schedule], _at(2024, 1, 1, 9, 45)) == []
    assert due_now([schedule], _at(2024, 1, 2, 9, 5)) == [schedule]


def test_hour_must_match_minutes_ignored():
    schedule = Schedule(email="a@example.com", time="09:45")
    assert due_now([schedule], _at(2024, 1, 1, 9, 0)) == [schedule]
    assert due_now([schedule], _at(2024, 1, 1, 10, 0)) == []


def test_inactive_or_timeless_schedules_skip():
    assert due_now([Schedule(email="a", time="09:00", active=False)], _at(2024, 1, 1, 9)) == []
    assert due_now([Schedule(email="a", time=None)], _at(2024, 1, 1, 9)) == []
    assert due_now([Schedule(email="a", time="bogus")], _at(2024, 1, 1, 9)) == []


def test_weekly_only_on_week_day():
    schedule = Schedule(email="a", time="08:00", frequency="weekly", week_day=1)
    monday = _at(2024, 1, 1, 8)  # 2024-01-01 is a Monday
    assert week_day_index(monday) == 1
    assert due_now([schedule], monday) == [schedule]
    for day in range(2, 8):
        assert due_now([schedule], _at(2024, 1, day, 8)) == []


def test_weekly_defaults_to_monday():
    schedule = Schedule(email="a", time="08:00", frequency="weekly")
    assert due_now([schedule], _at(2024, 1, 1, 8)) == [schedule]
    assert due_now([schedule], _at(2024, 1, 7, 8)) == []


def test_monthly_matches_day_of_month():
    schedule = Schedule(email="a", time="08:00", frequency="monthly", month_date=15)
    assert due_now([schedule], _at(2024, 3, 15, 8)) == [schedule]
    assert due_now([schedule], _at(2024, 3, 16, 8)) == []
    default = Schedule(email="a", time="08:00", frequency="monthly")
    assert due_now([default], _at(2024, 3, 1, 8)) == [default]


def test_monthly_31st_skips_short_months():
    schedule = Schedule(email="a", time="08:00", frequency="monthly", month_date=31)
    assert not any(due_now([schedule], _at(2024, 4, day, 8)) for day in range(1, 31))


def test_order_preserved_and_pure():
    a = Schedule(email="a", time="09:00")
    b = Schedule(email="b", time="10:00")
    c = Schedule(email="c", time="09:15")
    now = _at(2024, 5, 5, 9, 10)
    assert due_now([a, b, c], now) == [a, c]
    assert due_now([a, b, c], now) == due_now([a, b, c], now)


def test_non_utc_now_is_converted():
    schedule = Schedule(email="a", time="09:00")
    santiago = pytz.timezone("America/Santiago")
    local = santiago.localize(datetime(2024, 1, 1, 6, 0))  # 09:00 UTC
    assert due_now([schedule], local) == [schedule]
    assert due_now([schedule], datetime(2024, 1, 1, 9, 0)) == [schedule]


def test_scheduled_hour_parsing():
    assert scheduled_hour("07:30") == 7
    assert scheduled_hour("24:00") is None
    assert scheduled_hour("") is None
