"""One scheduling tick: evaluate, deliver sequentially, persist run stamps.

Invoked hourly by an external timer. Overlapping invocations are assumed not
to happen; nothing here enforces mutual exclusion, and the schedule
collection is written back as a whole (last write wins).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

import pytz

from .delivery import DeliveryOrchestrator, DeliveryResult
from .evaluator import due_now
from .store import ScheduleStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunSummary:
    now: datetime
    evaluated: int = 0
    results: dict[str, DeliveryResult] = field(default_factory=dict)
    persisted: bool = False

    @property
    def delivered(self) -> int:
        return sum(1 for r in self.results.values() if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results.values() if not r.ok)


def run_due_schedules(
    store: ScheduleStore,
    orchestrator: DeliveryOrchestrator,
    now: datetime | None = None,
) -> RunSummary:
    now = now or datetime.now(pytz.UTC)
    schedules = store.load()
    summary = RunSummary(now=now, evaluated=len(schedules))
    due = due_now(schedules, now)
    logger.info("Scheduler tick %s: %d of %d schedule(s) due", now.isoformat(), len(due), len(schedules))

    updated = False
    for schedule in due:
        result = orchestrator.deliver(schedule, now=now)
        summary.results[schedule.email] = result
        if result.ok:
            schedule.last_run = now
            updated = True
            logger.info("Report for %s delivered to %s", schedule.email, result.ticket)
        else:
            logger.warning("Report for %s not delivered: %s", schedule.email, result.reason)

    if updated:
        store.save_all(schedules)
        summary.persisted = True
    return summary
