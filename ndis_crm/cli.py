"""NDIS back-office CLI - Main entry point."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import settings
from .pending import PENDING_TYPES, collection_counts, parse_pending

app = typer.Typer(
    name="ndis",
    help="NDIS back office - database, activity log and pending-changes tools",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(
    log_level: str = typer.Option(settings.log_level, "--log-level", help="Logging level"),
):
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_pending(entity_type: str, file: Path):
    if entity_type not in PENDING_TYPES:
        console.print(f"[red]Unknown entity type:[/red] {entity_type}")
        raise typer.Exit(2)
    try:
        data = json.loads(file.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        console.print(f"[red]Could not read {file}:[/red] {exc}")
        raise typer.Exit(1)
    return parse_pending(entity_type, data)


# ============================================================================
# Database
# ============================================================================


@app.command("init-db")
def init_db():
    """Create all tables in the configured database."""
    from .database import create_all, engine

    async def _run():
        await create_all()
        await engine.dispose()

    asyncio.run(_run())
    settings.storage_root.mkdir(parents=True, exist_ok=True)
    console.print(f"[green]Database ready:[/green] {settings.database_url}")


@app.command("serve")
def serve(
    port: int = typer.Option(8030, "--port", "-p", help="Port to run on"),
    host: str = typer.Option("127.0.0.1", "--host", help="Host to bind to"),
):
    """Run the back-office API."""
    import uvicorn

    console.print(f"[bold cyan]Starting NDIS back office at http://{host}:{port}[/bold cyan]")
    uvicorn.run("ndis_crm.app:app", host=host, port=port)


# ============================================================================
# Activity log
# ============================================================================


@app.command("activity")
def activity(
    entity_type: str = typer.Option(None, "--entity-type", "-t", help="participant, staff or house"),
    entity_id: str = typer.Option(None, "--entity-id", "-i", help="Only this entity"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum entries"),
):
    """Show recent activity log entries, newest first."""
    from .database import async_session_factory, engine
    from .services import activity_svc

    async def _run():
        async with async_session_factory() as db:
            rows = await activity_svc.list_activities(
                db, entity_type=entity_type, entity_id=entity_id, limit=limit
            )
        await engine.dispose()
        return rows

    rows = asyncio.run(_run())
    if not rows:
        console.print("[yellow]No activity recorded.[/yellow]")
        return

    table = Table(title="Activity Log")
    table.add_column("When", style="dim")
    table.add_column("Type", style="cyan")
    table.add_column("Entity")
    table.add_column("Description")
    table.add_column("User", style="green")
    for row in rows:
        when = row.created_at.strftime("%Y-%m-%d %H:%M") if row.created_at else ""
        entity = f"{row.entity_type} {row.entity_name or row.entity_id}"
        table.add_row(when, row.activity_type, entity, row.description, row.user_name or "")
    console.print(table)


# ============================================================================
# Pending changes documents
# ============================================================================


@app.command("pending-count")
def pending_count(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Pending changes JSON"),
    entity_type: str = typer.Option("participant", "--entity-type", "-t"),
):
    """Count the unsaved changes in a pending-changes document."""
    try:
        pending = _load_pending(entity_type, file)
    except ValidationError as exc:
        console.print(f"[red]Invalid pending changes:[/red]\n{exc}")
        raise typer.Exit(1)

    table = Table(title=f"Pending changes ({entity_type})")
    table.add_column("Collection", style="cyan")
    table.add_column("Changes", justify="right")
    for name, count in collection_counts(pending).items():
        table.add_row(name, str(count))
    console.print(table)
    console.print(f"[bold]{pending.count()}[/bold] unsaved change(s)")


@app.command("validate-pending")
def validate_pending(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Pending changes JSON"),
    entity_type: str = typer.Option("participant", "--entity-type", "-t"),
):
    """Check that a pending-changes document is well formed."""
    try:
        pending = _load_pending(entity_type, file)
    except ValidationError as exc:
        console.print(f"[red]Invalid:[/red] {exc.error_count()} error(s)")
        for err in exc.errors():
            loc = ".".join(str(p) for p in err["loc"])
            console.print(f"  {loc}: {err['msg']}")
        raise typer.Exit(1)
    console.print(f"[green]Valid[/green] - {pending.count()} unsaved change(s)")


if __name__ == "__main__":
    app()
