"""Deliver one scheduled report: search, build the spreadsheet, file it in Jira.

Steps run in order with the service identity:

1. search the schedule's filters (an empty result ends the delivery);
2. encode the export rows as an xlsx workbook;
3. resolve the destination issue, looking up the comment target or picking a
   project and issue type for a new ticket;
4. resolve the recipient account;
5. create the ticket when needed;
6. attach the workbook, 7. post the notification comment, 8. add the
   recipient as watcher.

Failures in 1, 3 and 5 end the delivery with a reason. Failures in 6-8 are
logged and the ticket is still reported. ``deliver`` never raises.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import pytz

from jira_reports.core import adf
from jira_reports.core.config import (
    DELIVERY_DEFAULT_MESSAGE,
    DELIVERY_FILENAME_TEMPLATE,
    DELIVERY_NO_ISSUES_REASON,
    DELIVERY_SUMMARY_TEMPLATE,
    PREFERRED_ISSUE_TYPES,
)
from jira_reports.core.errors import JiraRequestError
from jira_reports.core.jql import build_jql
from jira_reports.core.mappers import map_issues
from jira_reports.core.models import Schedule
from jira_reports.core.service import IssueService
from jira_reports.visual.export import prepare_export_rows, to_excel_bytes

logger = logging.getLogger(__name__)


class DeliveryError(Exception):
    """A prerequisite step failed; the message is the reported reason."""


@dataclass(slots=True)
class DeliveryResult:
    ticket: str | None = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.ticket is not None

    def to_dict(self) -> dict[str, Any]:
        return {"ticket": self.ticket, "reason": self.reason}


@dataclass(slots=True)
class Recipient:
    account_id: str
    display_name: str | None = None


@dataclass(slots=True)
class Destination:
    issue_key: str | None
    project: dict[str, str] | None = None
    issue_type: dict[str, Any] | None = None

    @property
    def needs_creation(self) -> bool:
        return self.issue_key is None


def choose_issue_type(issue_types: Sequence[dict[str, Any]]) -> dict[str, Any] | None:
    """Prefer Task, then Story, then the first non-subtask type, then anything."""
    for preferred in PREFERRED_ISSUE_TYPES:
        for it in issue_types:
            if it.get("name") == preferred:
                return it
    for it in issue_types:
        if not it.get("subtask"):
            return it
    return issue_types[0] if issue_types else None


def validate_schedule(schedule: Schedule) -> str | None:
    """Reason the schedule cannot be delivered, checked before any Jira call."""
    if not schedule.email:
        return "Schedule has no recipient email"
    if schedule.destination == "comment-on-issue" and not schedule.target_issue_key:
        return "Target issue key is required when delivering as a comment"
    return None


class DeliveryOrchestrator:
    def __init__(self, service: IssueService):
        self.service = service

    @property
    def api(self):
        return self.service.api

    def deliver(self, schedule: Schedule, now: datetime | None = None) -> DeliveryResult:
        try:
            return self._deliver(schedule, now or datetime.now(pytz.UTC))
        except DeliveryError as exc:
            logger.warning("Delivery for %s stopped: %s", schedule.email, exc)
            return DeliveryResult(reason=str(exc))
        except Exception as exc:
            logger.exception("Unexpected failure delivering report to %s", schedule.email)
            return DeliveryResult(reason=str(exc) or exc.__class__.__name__)

    # ------------------ Pipeline ------------------
    def _deliver(self, schedule: Schedule, now: datetime) -> DeliveryResult:
        invalid = validate_schedule(schedule)
        if invalid:
            return DeliveryResult(reason=invalid)
        stamp = now.strftime("%Y-%m-%d")

        result = self.service.fetch_issues(build_jql(schedule.filters))
        if not result.issues:
            if result.error:
                return DeliveryResult(reason=f"Issue search failed: {result.error}")
            return DeliveryResult(reason=DELIVERY_NO_ISSUES_REASON)
        logger.info("Building report for %s with %d issue(s)", schedule.email, len(result.issues))

        rows = map_issues(result.issues, self.service.server)
        selected = schedule.selected_fields or None
        records = prepare_export_rows(rows, schedule.comment_mode, selected)
        workbook = to_excel_bytes(records, selected)

        destination = self._resolve_destination(schedule)
        recipient = self._resolve_recipient(schedule)

        if destination.needs_creation:
            ticket = self._create_ticket(schedule, destination, recipient, stamp)
        else:
            ticket = destination.issue_key

        self._attach(ticket, DELIVERY_FILENAME_TEMPLATE.format(date=stamp), workbook)
        self._notify(ticket, schedule.message, recipient)
        if recipient:
            self._watch(ticket, recipient)
        logger.info("Delivered report for %s to %s", schedule.email, ticket)
        return DeliveryResult(ticket=ticket)

    # ------------------ Destination ------------------
    def _resolve_destination(self, schedule: Schedule) -> Destination:
        if schedule.destination == "comment-on-issue":
            key = schedule.target_issue_key
            try:
                raw = self.api.fetch_issue_raw(key, fields=["summary"])
            except JiraRequestError as exc:
                raise DeliveryError(f"Target issue {key} not found or not accessible: {exc.body or exc}") from exc
            return Destination(issue_key=raw.get("key") or key)

        project = self._resolve_project(schedule)
        id_or_key = project.get("key") or project["id"]
        try:
            issue_types = self.api.project_issue_types(id_or_key)
        except JiraRequestError as exc:
            raise DeliveryError(f"Could not load issue types for project {id_or_key}: {exc.body or exc}") from exc
        issue_type = choose_issue_type(issue_types)
        if issue_type is None:
            raise DeliveryError(f"No usable issue type found in project {id_or_key}")
        return Destination(issue_key=None, project=project, issue_type=issue_type)

    def _resolve_project(self, schedule: Schedule) -> dict[str, str]:
        """Project reference for the new ticket; options without a key carry the numeric id."""
        for option in schedule.filters.project:
            if option.key:
                return {"key": option.key}
            if option.value:
                return {"id": str(option.value)}
        try:
            projects = self.api.projects()
        except JiraRequestError as exc:
            raise DeliveryError(f"Could not list projects: {exc.body or exc}") from exc
        for project in projects:
            if project.get("key"):
                return {"key": project["key"]}
        raise DeliveryError("No accessible project found to create the report issue")

    # ------------------ Recipient ------------------
    def _resolve_recipient(self, schedule: Schedule) -> Recipient | None:
        if schedule.account_id:
            return Recipient(schedule.account_id, schedule.email)
        try:
            users = self.api.search_users(schedule.email)
        except JiraRequestError as exc:
            logger.warning("User lookup for %s failed: %s", schedule.email, exc)
            return None
        if not users:
            logger.info("No Jira account found for %s", schedule.email)
            return None
        wanted = schedule.email.lower()
        exact = [u for u in users if (u.get("emailAddress") or "").lower() == wanted]
        # Email addresses are often hidden by privacy settings, so fall back to the first hit
        user = exact[0] if exact else users[0]
        if not user.get("accountId"):
            return None
        return Recipient(user["accountId"], user.get("displayName"))

    # ------------------ Jira Writes ------------------
    def _create_ticket(
        self,
        schedule: Schedule,
        destination: Destination,
        recipient: Recipient | None,
        stamp: str,
    ) -> str:
        fields: dict[str, Any] = {
            "project": dict(destination.project),
            "summary": DELIVERY_SUMMARY_TEMPLATE.format(date=stamp),
            "description": adf.text_document(schedule.message or DELIVERY_DEFAULT_MESSAGE),
            "issuetype": {"id": destination.issue_type.get("id")}
            if destination.issue_type.get("id")
            else {"name": destination.issue_type.get("name")},
        }
        if recipient:
            fields["assignee"] = {"id": recipient.account_id}
        try:
            return self.api.create_issue(fields)
        except JiraRequestError as exc:
            raise DeliveryError(f"Failed to create issue: {exc.body or exc}") from exc

    def _attach(self, ticket: str, filename: str, content: bytes) -> None:
        try:
            self.api.add_attachment(ticket, filename, content)
        except Exception as exc:
            logger.warning("Attachment upload to %s failed: %s", ticket, exc)

    def _notify(self, ticket: str, message: str, recipient: Recipient | None) -> None:
        paragraphs = [adf.paragraph(adf.text_node(message or DELIVERY_DEFAULT_MESSAGE))]
        if recipient:
            cc = adf.mentions_paragraph([(recipient.account_id, recipient.display_name)])
            if cc:
                paragraphs.append(cc)
        try:
            self.api.add_comment(ticket, adf.document(*paragraphs))
        except Exception as exc:
            logger.warning("Notification comment on %s failed: %s", ticket, exc)

    def _watch(self, ticket: str, recipient: Recipient) -> None:
        try:
            self.api.add_watcher(ticket, recipient.account_id)
        except Exception as exc:
            logger.warning("Adding watcher %s to %s failed: %s", recipient.account_id, ticket, exc)
