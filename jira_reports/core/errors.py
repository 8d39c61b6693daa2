"""Exception types shared by the client, repositories, and resolvers."""

from __future__ import annotations


class JiraRequestError(RuntimeError):
    """Non-success response from the Jira REST API, or no response at all (status None)."""

    def __init__(self, action: str, status_code: int | None, body: str = ""):
        self.action = action
        self.status_code = status_code
        self.body = body or ""
        status = f" {status_code}" if status_code is not None else ""
        super().__init__(f"{action} failed{status}: {self.body[:200]}")


class ReportError(Exception):
    """Base class for errors shown to the interactive user."""


class ValidationError(ReportError, ValueError):
    pass


class ReportNotFoundError(ReportError, LookupError):
    pass


class ReportAccessError(ReportError, PermissionError):
    pass
