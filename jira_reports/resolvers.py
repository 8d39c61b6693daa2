"""Named JSON operations used by the interactive pages.

Each operation takes a JSON-like payload and runs with the caller's identity;
scheduled deliveries triggered from here use the service identity. Failures
the user should see are raised as ``ReportError`` subclasses.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from jira_reports.core.config import COMMENT_MODES, SCHEDULE_DESTINATIONS, SCHEDULE_FREQUENCIES
from jira_reports.core.errors import JiraRequestError, ValidationError
from jira_reports.core.mappers import sort_rows
from jira_reports.core.models import FilterSet, Schedule
from jira_reports.core.service import IssueService
from jira_reports.core.store import KeyValueStore
from jira_reports.features import reports
from jira_reports.features.schedules import DeliveryOrchestrator, ScheduleStore, validate_schedule
from jira_reports.features.schedules.evaluator import scheduled_hour

logger = logging.getLogger(__name__)

OPERATIONS: dict[str, Callable[..., Any]] = {}


def operation(name):
    def decorator(func):
        OPERATIONS[name] = func
        return func

    return decorator


def _check_choice(payload: Mapping[str, Any], name: str, allowed: frozenset[str]) -> None:
    value = payload.get(name)
    if value in (None, ""):
        return
    if not isinstance(value, str) or value not in allowed:
        raise ValidationError(f"Invalid {name} {value!r}, expected one of {', '.join(sorted(allowed))}")


def _check_range(payload: Mapping[str, Any], name: str, low: int, high: int) -> None:
    value = payload.get(name)
    if value in (None, ""):
        return
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = None
    if isinstance(value, bool) or number is None or not low <= number <= high:
        raise ValidationError(f"Invalid {name} {value!r}, expected {low}-{high}")


@dataclass(slots=True, frozen=True)
class CallerContext:
    account_id: str
    project_key: str | None = None


class ReportResolvers:
    def __init__(
        self,
        user_service: IssueService,
        service: IssueService,
        store: KeyValueStore,
        caller: CallerContext,
    ):
        self.user_service = user_service
        self.service = service
        self.store = store
        self.caller = caller
        self.schedules = ScheduleStore(store)

    def invoke(self, name: str, payload: Mapping[str, Any] | None = None) -> Any:
        func = OPERATIONS.get(name)
        if func is None:
            raise ValidationError(f"Unknown operation {name!r}")
        return func(self, dict(payload or {}))

    # ------------------ Issues ------------------
    @operation("buildAndFetchIssues")
    def build_and_fetch_issues(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        filters = FilterSet.from_dict(payload)
        rows = self.user_service.fetch_rows(filters)
        if payload.get("sortKey"):
            rows = sort_rows(rows, payload["sortKey"], payload.get("sortOrder") or "ASC")
        return [r.to_dict() for r in rows]

    @operation("bulkAddComment")
    def bulk_add_comment(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        keys = [k for k in payload.get("issueKeys") or [] if k]
        if not keys:
            raise ValidationError("Select at least one issue to comment on")
        return self.user_service.bulk_add_comment(keys, payload.get("comment") or "", payload.get("mentions"))

    # ------------------ Filter Options ------------------
    @operation("getProjects")
    def get_projects(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        return self.user_service.get_projects()

    @operation("getUsers")
    def get_users(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        return self.user_service.get_users(payload.get("query") or "")

    @operation("getStatuses")
    def get_statuses(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        return self.user_service.get_statuses()

    @operation("getIssueTypes")
    def get_issue_types(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        return self.user_service.get_issue_types()

    @operation("getPriorities")
    def get_priorities(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        return self.user_service.get_priorities()

    @operation("getLabels")
    def get_labels(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        return self.user_service.get_labels()

    @operation("getCurrentUserEmail")
    def get_current_user_email(self, payload: dict[str, Any]) -> str | None:
        try:
            return self.user_service.api.myself().get("emailAddress")
        except JiraRequestError as exc:
            logger.warning("Could not read current user email: %s", exc)
            return None

    # ------------------ Schedules ------------------
    @operation("saveSchedule")
    def save_schedule(self, payload: dict[str, Any]) -> dict[str, Any]:
        schedule = Schedule.from_dict(payload)
        invalid = validate_schedule(schedule)
        if invalid:
            raise ValidationError(invalid)
        if schedule.time and scheduled_hour(schedule.time) is None:
            raise ValidationError(f"Invalid schedule time {schedule.time!r}, expected HH:MM")
        _check_choice(payload, "frequency", SCHEDULE_FREQUENCIES)
        _check_choice(payload, "destination", SCHEDULE_DESTINATIONS)
        _check_choice(payload, "commentMode", COMMENT_MODES)
        _check_range(payload, "weekDay", 0, 6)
        _check_range(payload, "monthDate", 1, 31)
        saved = self.schedules.save(schedule)
        return {"success": True, "id": saved.id}

    @operation("triggerScheduleNow")
    def trigger_schedule_now(self, payload: dict[str, Any]) -> dict[str, Any]:
        email = str(payload.get("email") or "").strip()
        if not email:
            raise ValidationError("Email is required")
        schedule = self.schedules.find_by_email(email)
        if schedule is None:
            return {"success": False, "message": f"No schedule found for {email}", "ticket": None}
        result = DeliveryOrchestrator(self.service).deliver(schedule)
        if result.ok:
            return {"success": True, "message": f"Report delivered to {result.ticket}", "ticket": result.ticket}
        return {"success": False, "message": result.reason, "ticket": None}

    # ------------------ Saved Reports ------------------
    @operation("saveReport")
    def save_report(self, payload: dict[str, Any]) -> dict[str, Any]:
        return reports.save_report(self.store, self.caller.account_id, payload).to_dict()

    @operation("listReports")
    def list_reports(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        project_key = payload.get("projectKey") or self.caller.project_key
        return [r.to_dict() for r in reports.list_reports(self.store, self.caller.account_id, project_key)]

    @operation("deleteReport")
    def delete_report(self, payload: dict[str, Any]) -> dict[str, Any]:
        report_id = payload.get("reportId")
        if not report_id:
            raise ValidationError("reportId is required")
        reports.delete_report(self.store, self.caller.account_id, str(report_id))
        return {"success": True}
