"""Command-line entry point for the external timer and manual runs (Typer)."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import typer

from jira_reports.core.config import AppSettings, load_settings
from jira_reports.core.jira_client import JiraAPI
from jira_reports.core.service import IssueService
from jira_reports.core.store import JsonFileStore
from jira_reports.features.schedules import DeliveryOrchestrator, ScheduleStore, run_due_schedules

logger = logging.getLogger(__name__)

app = typer.Typer(add_completion=False, help="Scheduled Jira report exports.")

FAILURE_EXIT_CODE = 1


def _settings(ctx: typer.Context) -> AppSettings:
    return ctx.obj["settings"]


def _service_identity(settings: AppSettings) -> IssueService:
    email, token = settings.service_credentials()
    if not (settings.jira_server and email and token):
        typer.echo("Service credentials missing: set JIRA_SERVICE_EMAIL/JIRA_SERVICE_API_TOKEN.", err=True)
        raise typer.Exit(FAILURE_EXIT_CODE)
    return IssueService(JiraAPI(settings.jira_server, email, token), max_results=settings.max_results)


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", help="Path to reports.yaml."),
    log_level: str = typer.Option("INFO", "--log-level", help="Python logging level."),
) -> None:
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = {"settings": load_settings(config)}


@app.command("run")
def run(ctx: typer.Context) -> None:
    """Run one scheduling tick: deliver every schedule due this hour."""
    settings = _settings(ctx)
    store = ScheduleStore(JsonFileStore(settings.store_path))
    orchestrator = DeliveryOrchestrator(_service_identity(settings))
    summary = run_due_schedules(store, orchestrator)
    logger.info(
        "Run finished: %d due, %d delivered, %d failed",
        len(summary.results),
        summary.delivered,
        summary.failed,
    )


@app.command("trigger")
def trigger(ctx: typer.Context, email: str = typer.Argument(..., help="Recipient email of the schedule.")) -> None:
    """Deliver the schedule for EMAIL immediately, ignoring its timing."""
    settings = _settings(ctx)
    schedule = ScheduleStore(JsonFileStore(settings.store_path)).find_by_email(email)
    if schedule is None:
        typer.echo(f"No schedule found for {email}", err=True)
        raise typer.Exit(FAILURE_EXIT_CODE)
    result = DeliveryOrchestrator(_service_identity(settings)).deliver(schedule)
    typer.echo(json.dumps(result.to_dict()))
    if not result.ok:
        raise typer.Exit(FAILURE_EXIT_CODE)


@app.command("list-schedules")
def list_schedules(ctx: typer.Context) -> None:
    """Print stored schedules as JSON lines."""
    settings = _settings(ctx)
    for schedule in ScheduleStore(JsonFileStore(settings.store_path)).load():
        typer.echo(json.dumps(schedule.to_dict()))


if __name__ == "__main__":
    app()
