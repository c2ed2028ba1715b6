"""Command-line entrypoint."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table

from jobtrack.analytics import compute_stats
from jobtrack.applications import ApplicationService, filter_applications
from jobtrack.config import Settings, load_settings, model_chain
from jobtrack.db import Database, DocumentNotFoundError
from jobtrack.insights import InsightsService
from jobtrack.llm.base import LLMProvider
from jobtrack.llm.fallback import AllModelsExhaustedError, FallbackChain
from jobtrack.llm.gemini import GeminiProvider
from jobtrack.llm.openrouter import OpenRouterProvider
from jobtrack.models import STAGE_LABELS, ApplicationStage
from jobtrack.notes import NoteService
from jobtrack.rate_limits import RateLimitLogger
from jobtrack.summaries import SummaryService

LOGGER = logging.getLogger(__name__)

app = typer.Typer(help="Personal job-application tracker with AI insights.")
console = Console()

EXIT_CODE_FAIL = 1

UserOption = typer.Option(None, "--user", "-u", help="User id (defaults to JOBTRACK_USER_ID)")


@dataclass
class Services:
    settings: Settings
    applications: ApplicationService
    notes: NoteService
    insights: InsightsService
    summaries: SummaryService
    rate_limits: RateLimitLogger


def build_provider(settings: Settings) -> LLMProvider:
    """Return the provider selected by LLM_BACKEND."""

    if settings.llm_backend == "openrouter":
        return OpenRouterProvider(settings)
    return GeminiProvider(settings)


def build_services(settings: Settings) -> Services:
    """Initialize storage and wire the generation stack."""

    db = Database(settings.database_path)
    db.initialize()

    rate_limits = RateLimitLogger(db)
    chain = FallbackChain(build_provider(settings), model_chain(settings), on_rate_limit=rate_limits)
    refresh_after = timedelta(days=settings.insights_refresh_days)
    return Services(
        settings=settings,
        applications=ApplicationService(db),
        notes=NoteService(db),
        insights=InsightsService(
            db,
            chain,
            refresh_after=refresh_after,
            max_applications=settings.insights_max_applications,
        ),
        summaries=SummaryService(db, chain, refresh_after=refresh_after),
        rate_limits=rate_limits,
    )


def _services() -> Services:
    settings = load_settings()
    logging.basicConfig(level=settings.log_level.upper())
    LOGGER.debug("Using database %s with backend %s", settings.database_path, settings.llm_backend)
    return build_services(settings)


def _fail(message: str) -> NoReturn:
    console.print(message, style="red", markup=False)
    raise typer.Exit(code=EXIT_CODE_FAIL)


@app.command("add")
def add_application(
    company: str = typer.Argument(..., help="Company name"),
    role: str = typer.Argument(..., help="Role title"),
    stage: str = typer.Option(ApplicationStage.APPLIED.value, "--stage", "-s"),
    applied_on: Optional[datetime] = typer.Option(None, "--date", "-d", formats=["%Y-%m-%d"]),
    job_link: str = typer.Option("", "--link", "-l"),
    user: Optional[str] = UserOption,
):
    """Record a new application."""
    services = _services()
    if applied_on is not None and applied_on.tzinfo is None:
        applied_on = applied_on.replace(tzinfo=timezone.utc)
    try:
        app_id = services.applications.add(
            user or services.settings.user_id,
            company,
            role,
            stage=stage,
            application_date=applied_on,
            job_link=job_link,
        )
    except ValueError as exc:
        _fail(str(exc))
    console.print(f"[green]✓[/] Added application {app_id}")


@app.command("list")
def list_applications(
    search: str = typer.Option("", "--search", "-q"),
    stage: str = typer.Option("all", "--stage", "-s"),
    user: Optional[str] = UserOption,
):
    """List applications, optionally filtered."""
    services = _services()
    try:
        apps = filter_applications(
            services.applications.list(user or services.settings.user_id), search=search, stage=stage
        )
    except ValueError as exc:
        _fail(str(exc))

    if not apps:
        console.print("[dim]No applications found.[/]")
        return
    table = Table(title=f"Applications ({len(apps)})")
    for column in ("ID", "Company", "Role", "Stage", "Applied"):
        table.add_column(column)
    for application in apps:
        table.add_row(
            application.id,
            application.company_name,
            application.role,
            STAGE_LABELS[application.stage],
            application.application_date.date().isoformat(),
        )
    console.print(table)


@app.command("stage")
def move_stage(
    application_id: str,
    stage: str,
    user: Optional[str] = UserOption,
):
    """Move an application to another stage."""
    services = _services()
    try:
        services.applications.update_stage(user or services.settings.user_id, application_id, stage)
    except (ValueError, DocumentNotFoundError) as exc:
        _fail(f"Could not update {application_id}: {exc}")
    console.print(f"[green]✓[/] {application_id} moved to {stage}")


@app.command("delete")
def delete_application(application_id: str, user: Optional[str] = UserOption):
    """Delete an application and its notes."""
    services = _services()
    user_id = user or services.settings.user_id
    if services.applications.get(user_id, application_id) is None:
        _fail(f"Unknown application {application_id}")
    services.applications.delete(user_id, application_id)
    console.print(f"[green]✓[/] Deleted {application_id}")


@app.command("note-add")
def add_note(application_id: str, content: str, user: Optional[str] = UserOption):
    """Attach a note to an application."""
    services = _services()
    user_id = user or services.settings.user_id
    if services.applications.get(user_id, application_id) is None:
        _fail(f"Unknown application {application_id}")
    try:
        note_id = services.notes.add(user_id, application_id, content)
    except ValueError as exc:
        _fail(str(exc))
    console.print(f"[green]✓[/] Added note {note_id}")


@app.command("notes")
def list_notes(application_id: str, user: Optional[str] = UserOption):
    """Show an application's notes, newest first."""
    services = _services()
    notes = services.notes.list(user or services.settings.user_id, application_id)
    if not notes:
        console.print("[dim]No notes yet.[/]")
        return
    for note in notes:
        console.print(f"[bold]{note.created_at.astimezone():%Y-%m-%d %H:%M}[/] ({note.id})")
        console.print(note.content, markup=False)
        console.print()


@app.command("stats")
def show_stats(user: Optional[str] = UserOption):
    """Show aggregate application statistics."""
    services = _services()
    stats = compute_stats(services.applications.list(user or services.settings.user_id))

    console.print(f"\n[bold]Total applications:[/] {stats.total}")
    for stage, count in stats.stage_counts.items():
        console.print(f"{STAGE_LABELS[stage]}: {count}")
    if stats.total:
        console.print(f"\nResponse rate: {stats.response_rate}%")
        console.print(f"Interview rate: {stats.interview_rate}%")
        console.print(f"Success rate: {stats.success_rate}%")
    if stats.monthly:
        table = Table(title="Applications per month")
        table.add_column("Month")
        table.add_column("Applications", justify="right")
        for label, count in stats.monthly:
            table.add_row(label, str(count))
        console.print(table)


@app.command("insights")
def show_insights(
    refresh: bool = typer.Option(False, "--refresh", "-r", help="Regenerate even if cached insights are fresh"),
    user: Optional[str] = UserOption,
):
    """Show AI insights across your applications."""
    services = _services()
    user_id = user or services.settings.user_id
    applications = services.applications.list(user_id)
    try:
        result = asyncio.run(services.insights.get_insights(user_id, applications, force_refresh=refresh))
    except AllModelsExhaustedError as exc:
        _fail(str(exc))

    console.print(f"\n[bold]AI Insights[/] [dim](generated {result.generated_at.astimezone():%Y-%m-%d})[/]")
    for insight in result.insights:
        console.print(f"• {insight}", markup=False)


@app.command("summary")
def show_summary(
    application_id: str,
    refresh: bool = typer.Option(False, "--refresh", "-r", help="Regenerate even if the cached summary is fresh"),
    user: Optional[str] = UserOption,
):
    """Summarize an application's notes."""
    services = _services()
    user_id = user or services.settings.user_id
    application = services.applications.get(user_id, application_id)
    if application is None:
        _fail(f"Unknown application {application_id}")

    notes = services.notes.list(user_id, application_id)
    try:
        result = asyncio.run(
            services.summaries.get_summary(
                user_id,
                application_id,
                notes,
                application.company_name,
                application.role,
                force_refresh=refresh,
            )
        )
    except AllModelsExhaustedError as exc:
        _fail(str(exc))

    console.print(f"\n[bold]{application.company_name} - {application.role}[/]")
    console.print(result.summary, markup=False)
    if result.takeaways:
        console.print("\n[bold]Key Takeaways:[/]")
        for takeaway in result.takeaways:
            console.print(f"• {takeaway}", markup=False)


@app.command("rate-limits")
def show_rate_limits(
    day: Optional[datetime] = typer.Option(None, "--day", formats=["%Y-%m-%d"]),
):
    """Show which models were rate limited on a day (today by default)."""
    services = _services()
    record = services.rate_limits.get_record(day.date() if day else None)
    if record is None:
        console.print("[dim]No rate-limited models recorded.[/]")
        return
    console.print(f"[bold]{record.date}[/] (last updated {record.last_updated.astimezone():%H:%M})")
    for model in record.failed_models:
        console.print(f"- {model}", markup=False)


def main() -> None:
    """Console-script wrapper."""

    app()


if __name__ == "__main__":
    main()
