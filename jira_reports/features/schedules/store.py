"""Persistence of the schedule collection under a single store key."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable

from jira_reports.core.config import SCHEDULES_KEY
from jira_reports.core.models import Schedule
from jira_reports.core.store import KeyValueStore

logger = logging.getLogger(__name__)


def _same_email(a: str, b: str) -> bool:
    return a.strip().lower() == b.strip().lower()


class ScheduleStore:
    """Ordered schedules stored as one list; the recipient email is the dedup key."""

    def __init__(self, store: KeyValueStore, key: str = SCHEDULES_KEY):
        self.store = store
        self.key = key

    def load(self) -> list[Schedule]:
        raw = self.store.get(self.key) or []
        if not isinstance(raw, list):
            logger.warning("Ignoring malformed schedule collection under %r", self.key)
            return []
        return [Schedule.from_dict(item) for item in raw if isinstance(item, dict)]

    def save_all(self, schedules: Iterable[Schedule]) -> None:
        self.store.set(self.key, [s.to_dict() for s in schedules])

    def save(self, schedule: Schedule) -> Schedule:
        """Store ``schedule``, replacing every earlier schedule for the same email."""
        if not schedule.id:
            schedule.id = uuid.uuid4().hex
        existing = self.load()
        kept = [s for s in existing if not _same_email(s.email, schedule.email)]
        replaced = len(existing) - len(kept)
        if replaced:
            logger.info("Replacing %d schedule(s) for %s", replaced, schedule.email)
        kept.append(schedule)
        self.save_all(kept)
        return schedule

    def find_by_email(self, email: str) -> Schedule | None:
        for schedule in self.load():
            if _same_email(schedule.email, email):
                return schedule
        return None
