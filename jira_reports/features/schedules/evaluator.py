"""Decide which schedules are due on a given scheduling tick.

Evaluation granularity is one hour: the minute part of a schedule's time is
stored but ignored. Each schedule fires at most once per UTC calendar day.
A monthly schedule whose day does not exist in the current month (e.g. the
31st in April) does not fire that month.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

import pytz

from jira_reports.core.config import DEFAULT_MONTH_DATE, DEFAULT_WEEK_DAY
from jira_reports.core.models import Schedule


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value.astimezone(pytz.UTC)


def scheduled_hour(time_text: str | None) -> int | None:
    """Hour component of an ``HH:MM`` string, or None when unparsable."""
    if not time_text:
        return None
    head = str(time_text).strip().split(":", 1)[0]
    try:
        hour = int(head)
    except ValueError:
        return None
    return hour if 0 <= hour <= 23 else None


def week_day_index(moment: datetime) -> int:
    """Day of week with 0 = Sunday ... 6 = Saturday."""
    return moment.isoweekday() % 7


def ran_today(schedule: Schedule, now_utc: datetime) -> bool:
    if schedule.last_run is None:
        return False
    return _as_utc(schedule.last_run).date() == now_utc.date()


def is_due(schedule: Schedule, now: datetime) -> bool:
    if not schedule.active:
        return False
    hour = scheduled_hour(schedule.time)
    if hour is None:
        return False
    now_utc = _as_utc(now)
    if now_utc.hour != hour:
        return False
    if schedule.frequency == "weekly":
        target = DEFAULT_WEEK_DAY if schedule.week_day is None else schedule.week_day
        if week_day_index(now_utc) != target:
            return False
    elif schedule.frequency == "monthly":
        target = DEFAULT_MONTH_DATE if schedule.month_date is None else schedule.month_date
        if now_utc.day != target:
            return False
    return not ran_today(schedule, now_utc)


def due_now(schedules: Iterable[Schedule], now: datetime) -> list[Schedule]:
    """Schedules that should fire at ``now``, in their stored order."""
    return [s for s in schedules if is_due(s, now)]
