"""jelease CLI — serve the webhook, validate configuration, show settings."""

import logging
from typing import Annotated

import typer
import uvicorn
from rich import print as rprint
from rich.table import Table

from jelease.app import create_app
from jelease.errors import ConfigValidationError, TrackerError
from jelease.logs import configure_logging
from jelease.settings import JeleaseSettings, get_settings
from jelease.trackers.base import IssueTracker
from jelease.trackers.jira import JiraTracker

app = typer.Typer(help="jelease: open and update Jira issues from newreleases.io webhooks", no_args_is_help=True)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Startup validation
# ---------------------------------------------------------------------------


def check_tracker_config(tracker: IssueTracker, settings: JeleaseSettings) -> None:
    """Fail fast if the configured project or default status does not exist on the tracker."""
    try:
        projects = tracker.list_projects()
    except TrackerError as exc:
        raise ConfigValidationError(
            f"error response from Jira when retrieving project list: {exc}. Response body: {exc.response_body}"
        ) from exc
    if not any(p.key == settings.project for p in projects):
        raise ConfigValidationError(f"project {settings.project} does not exist on your Jira server")

    try:
        statuses = tracker.list_statuses()
    except TrackerError as exc:
        raise ConfigValidationError(
            f"error response from Jira when retrieving status list: {exc}. Response body: {exc.response_body}"
        ) from exc
    if not any(s.name == settings.default_status for s in statuses):
        raise ConfigValidationError(f"status {settings.default_status} does not exist on your Jira server")


def get_tracker(settings: JeleaseSettings) -> IssueTracker:
    return JiraTracker(settings)


def _validated_tracker(settings: JeleaseSettings) -> IssueTracker:
    tracker = get_tracker(settings)
    try:
        check_tracker_config(tracker, settings)
    except ConfigValidationError as exc:
        rprint(f"[red]Configuration check failed:[/red] {exc}")
        raise typer.Exit(1) from exc
    return tracker


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("serve")
def serve(
    host: Annotated[str | None, typer.Option("--host", help="Interface to bind (default: HOST or 0.0.0.0)")] = None,
    port: Annotated[int | None, typer.Option("--port", "-p", help="Port to listen on (default: PORT or 8080)")] = None,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Log intended changes without touching Jira")] = False,
) -> None:
    """Validate configuration against Jira, then serve the webhook."""
    settings = get_settings(host=host, port=port, dry_run=dry_run or None)
    configure_logging(settings.log_level)
    logger.info("Jira URL: %s", settings.jira_url)

    tracker = _validated_tracker(settings)
    if settings.dry_run:
        logger.warning("Dry run enabled: no issues will be created or updated")

    logger.info("Listening on %s:%s", settings.host, settings.port)
    uvicorn.run(
        create_app(settings, tracker),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


@app.command("check")
def check() -> None:
    """Check that the configured project and default status exist on Jira."""
    settings = get_settings()
    configure_logging(settings.log_level)
    _validated_tracker(settings)
    rprint(
        f"[green]✓[/green] Project [bold]{settings.project}[/bold] "
        f"and status [bold]{settings.default_status}[/bold] found on {settings.jira_url}"
    )


@app.command("config-show")
def config_show() -> None:
    """Show resolved configuration (masks credentials)."""
    settings = get_settings()

    def mask(val: str) -> str:
        if len(val) <= 5:
            return "***"
        return f"...{val[-5:]}"

    def or_unset(val: object) -> str:
        return "[dim](not set)[/dim]" if val in (None, "", []) else str(val)

    table = Table(title="jelease Configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("jira_url", settings.jira_url)
    table.add_row("jira_user", settings.jira_user)
    table.add_row("jira_token", mask(settings.jira_token.get_secret_value()))
    table.add_row("jira_skip_cert_verify", str(settings.jira_skip_cert_verify))
    table.add_row("project", settings.project)
    table.add_row("default_status", settings.default_status)
    table.add_row("add_labels", or_unset(", ".join(settings.add_labels)))
    table.add_row("issue_type", settings.issue_type)
    table.add_row("project_custom_field", or_unset(settings.project_custom_field))
    table.add_row("description_template", repr(str(settings.description_template)))
    table.add_row("dry_run", str(settings.dry_run))
    table.add_row("listen", f"{settings.host}:{settings.port}")
    table.add_row("log_level", settings.log_level)

    rprint(table)
