"""Scheduled report exports: storage, due-time evaluation, delivery, and the timer run."""

from jira_reports.features.schedules.delivery import (
    DeliveryOrchestrator,
    DeliveryResult,
    choose_issue_type,
    validate_schedule,
)
from jira_reports.features.schedules.evaluator import due_now, is_due
from jira_reports.features.schedules.runner import RunSummary, run_due_schedules
from jira_reports.features.schedules.store import ScheduleStore

__all__ = [
    "DeliveryOrchestrator",
    "DeliveryResult",
    "RunSummary",
    "ScheduleStore",
    "choose_issue_type",
    "due_now",
    "is_due",
    "run_due_schedules",
    "validate_schedule",
]
