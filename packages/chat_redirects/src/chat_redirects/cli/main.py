"""
Redirects CLI

Command-line interface for chat redirect administration.

Commands:
- init-db: Create the scheduled_redirects table (and app-chat tables for local dev)
- redirect-now: Redirect a user's chats immediately
- schedule: Schedule a redirect for a time window
- list: List overrides and pending/active scheduled redirects
- cancel: Cancel a scheduled redirect
- remove-override: Remove an ad-hoc sector override
- set-end-date: Change the end date of a scheduled redirect
- run-cycle: Run one reconciliation cycle now
- sectors: Show the sectors a user belongs to
"""

from datetime import datetime
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from chat_redirects.directory.base import DirectoryError
from chat_redirects.errors import RedirectError

app = typer.Typer(
    name="chat-redirects",
    help="Chat Redirects CLI",
)

console = Console()

DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M"]


def get_db():
    """Get backoffice database session."""
    from basecore.db import get_db as _get_db
    return next(_get_db())


def get_appchat_db():
    """Get app-chat database session."""
    from basecore.db import get_appchat_db as _get_appchat_db
    return next(_get_appchat_db())


def get_directory():
    """Get the configured directory gateway."""
    from chat_redirects.directory import build_directory_gateway
    return build_directory_gateway()


def get_redis():
    """Get Redis client (None when REDIS_URL is unset)."""
    from basecore.redis import get_redis_client
    return get_redis_client()


def _orchestrator(db, appchat_db, directory):
    from chat_redirects.service.orchestrator import RedirectOrchestrator
    return RedirectOrchestrator(db, appchat_db, directory)


def _fail(error: Exception) -> None:
    code = getattr(error, "code", None)
    rprint(f"[red]Error{f' ({code})' if code else ''}: {error}[/red]")
    raise typer.Exit(1)


def _format_date(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


@app.command()
def init_db(
    with_appchat: bool = typer.Option(
        False, "--with-appchat", help="Also create accounts/chats/chats_tags (local development only)"
    ),
):
    """
    Create database tables.

    Production databases are migrated with alembic; this is for local setups.
    """
    from basecore.db import APPCHAT, BACKOFFICE, get_engine
    from chat_redirects.persistence.appchat import AppChatBase
    from chat_redirects.persistence.models import BackofficeBase

    BackofficeBase.metadata.create_all(bind=get_engine(BACKOFFICE))
    rprint("[green]Created backoffice tables[/green]")

    if with_appchat:
        AppChatBase.metadata.create_all(bind=get_engine(APPCHAT))
        rprint("[green]Created app-chat tables[/green]")


@app.command()
def redirect_now(
    source_user_id: str = typer.Argument(..., help="User whose chats are moved"),
    destination_user_id: str = typer.Argument(..., help="User receiving the chats"),
):
    """
    Redirect a user's chats immediately.

    Moves existing chats and installs an override for the source's primary sector.
    """
    db, appchat_db, directory = get_db(), get_appchat_db(), get_directory()

    try:
        result = _orchestrator(db, appchat_db, directory).redirect_immediately(
            source_user_id, destination_user_id
        )
        rprint(f"[green]{result['message']}[/green]")
    except (RedirectError, DirectoryError) as e:
        _fail(e)
    finally:
        directory.close()
        appchat_db.close()
        db.close()


@app.command()
def schedule(
    source_user_id: str = typer.Argument(..., help="User whose chats are moved"),
    destination_user_id: str = typer.Argument(..., help="User receiving the chats"),
    sector_code: str = typer.Argument(..., help="Sector code"),
    start: datetime = typer.Option(..., formats=DATE_FORMATS, help="Start (UTC)"),
    end: Optional[datetime] = typer.Option(None, formats=DATE_FORMATS, help="End (UTC); omit for open-ended"),
):
    """
    Schedule a redirect for a time window.
    """
    db, appchat_db, directory = get_db(), get_appchat_db(), get_directory()

    try:
        record = _orchestrator(db, appchat_db, directory).create_scheduled_redirect(
            source_user_id=source_user_id,
            destination_user_id=destination_user_id,
            sector_code=sector_code,
            start_date=start,
            end_date=end,
        )
        rprint(f"[green]Scheduled redirect created:[/green]")
        rprint(f"  ID: {record.id}")
        rprint(f"  Sector: {record.sector_code}")
        rprint(f"  {record.source_user_id} -> {record.destination_user_id}")
        rprint(f"  Window: {_format_date(record.start_date)} .. {_format_date(record.end_date)}")
    except (RedirectError, DirectoryError) as e:
        _fail(e)
    finally:
        directory.close()
        appchat_db.close()
        db.close()


@app.command("list")
def list_redirects():
    """
    List active overrides and pending/active scheduled redirects.
    """
    db, appchat_db, directory = get_db(), get_appchat_db(), get_directory()

    try:
        summaries = _orchestrator(db, appchat_db, directory).list_all()

        if not summaries:
            rprint("[yellow]No redirects found[/yellow]")
            raise typer.Exit(0)

        table = Table(title="Redirects")
        table.add_column("ID", style="dim")
        table.add_column("Kind")
        table.add_column("Status")
        table.add_column("Sector")
        table.add_column("From")
        table.add_column("To")
        table.add_column("Start")
        table.add_column("End")

        for summary in summaries:
            table.add_row(
                summary.id,
                summary.status,
                summary.record_status or "-",
                summary.sector_name,
                summary.source_user_name or "-",
                summary.destination_user_name,
                _format_date(summary.start_date),
                _format_date(summary.end_date),
            )

        console.print(table)

    finally:
        directory.close()
        appchat_db.close()
        db.close()


@app.command()
def cancel(
    redirect_id: str = typer.Argument(..., help="Scheduled redirect ID"),
):
    """
    Cancel a scheduled redirect.

    An active redirect is ended early and its chats are handed back.
    """
    db, appchat_db, directory = get_db(), get_appchat_db(), get_directory()

    try:
        record = _orchestrator(db, appchat_db, directory).cancel_scheduled_redirect(redirect_id)
        rprint(f"[green]Redirect {record.id} is now {record.status}[/green]")
    except (RedirectError, DirectoryError) as e:
        _fail(e)
    finally:
        directory.close()
        appchat_db.close()
        db.close()


@app.command()
def remove_override(
    sector_code: str = typer.Argument(..., help="Sector code"),
    destination_user_id: str = typer.Argument(..., help="Destination the override points to"),
):
    """
    Remove an ad-hoc sector override.
    """
    db, appchat_db, directory = get_db(), get_appchat_db(), get_directory()

    try:
        entry = _orchestrator(db, appchat_db, directory).remove_override(
            sector_code, destination_user_id
        )
        rprint(f"[green]Override {entry.key} removed from account {entry.account_id}[/green]")
    except (RedirectError, DirectoryError) as e:
        _fail(e)
    finally:
        directory.close()
        appchat_db.close()
        db.close()


@app.command()
def set_end_date(
    redirect_id: str = typer.Argument(..., help="Scheduled redirect ID"),
    end: datetime = typer.Argument(..., formats=DATE_FORMATS, help="New end (UTC)"),
):
    """
    Change the end date of a scheduled or active redirect.
    """
    db, appchat_db, directory = get_db(), get_appchat_db(), get_directory()

    try:
        record = _orchestrator(db, appchat_db, directory).update_end_date(redirect_id, end)
        rprint(f"[green]Redirect {record.id} now ends {_format_date(record.end_date)}[/green]")
    except (RedirectError, DirectoryError) as e:
        _fail(e)
    finally:
        directory.close()
        appchat_db.close()
        db.close()


@app.command()
def run_cycle():
    """
    Run one reconciliation cycle now.
    """
    from chat_redirects.service.reconciler import RedirectReconciler

    db, appchat_db, directory = get_db(), get_appchat_db(), get_directory()

    try:
        reconciler = RedirectReconciler(db, appchat_db, directory, redis_client=get_redis())
        result = reconciler.run_cycle()

        if result.skipped:
            rprint("[yellow]Another cycle is running, skipped[/yellow]")
            raise typer.Exit(0)

        rprint(f"[cyan]Activated: {result.activated}[/cyan]")
        rprint(f"[cyan]Completed: {result.completed}[/cyan]")
        if result.failed:
            rprint(f"[red]Failed: {result.failed}[/red]")
            for redirect_id, error in result.errors.items():
                rprint(f"  {redirect_id}: {error}")
            raise typer.Exit(1)

    finally:
        directory.close()
        appchat_db.close()
        db.close()


@app.command()
def sectors(
    user_id: str = typer.Argument(..., help="Directory user ID"),
):
    """
    Show the sectors a user belongs to.
    """
    db, appchat_db, directory = get_db(), get_appchat_db(), get_directory()

    try:
        user_sectors = _orchestrator(db, appchat_db, directory).list_user_sectors(user_id)

        if not user_sectors:
            rprint(f"[yellow]User {user_id} has no sectors[/yellow]")
            raise typer.Exit(0)

        table = Table(title=f"Sectors of {user_id}")
        table.add_column("Code")
        table.add_column("Name")
        for sector in user_sectors:
            table.add_row(sector["code"], sector["name"] or "-")

        console.print(table)

    except (RedirectError, DirectoryError) as e:
        _fail(e)
    finally:
        directory.close()
        appchat_db.close()
        db.close()


if __name__ == "__main__":
    app()
