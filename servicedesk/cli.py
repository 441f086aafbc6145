"""Service desk CLI - database setup and audit trail inspection."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from .config import settings
from .logging_config import configure_logging

app = typer.Typer(
    name="desk",
    help="Service desk audit trail tools",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(
    log_level: str = typer.Option(settings.log_level, "--log-level", help="Logging level"),
):
    configure_logging(log_level)


async def _with_session(database_url: str, fn):
    engine = create_async_engine(database_url)
    try:
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with factory() as db:
            return await fn(db)
    finally:
        await engine.dispose()


def upgrade_database(database_url: str, revision: str = "head") -> None:
    """Run Alembic migrations against ``database_url``."""
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(settings.alembic_ini))
    cfg.set_main_option("script_location", str(settings.base_dir / "migrations"))
    cfg.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(cfg, revision)


@app.command("init-db")
def init_db(
    database_url: str = typer.Option(settings.database_url, "--database-url", help="Database to migrate"),
):
    """Create or upgrade the schema with Alembic."""
    upgrade_database(database_url)
    console.print("[green]Database is at the latest revision.[/green]")


@app.command("audit-columns")
def audit_columns(
    database_url: str = typer.Option(settings.database_url, "--database-url", help="Database to inspect"),
):
    """Compare each table's audit columns with the override table."""
    from .services.schema_svc import audit_column_report

    reports = asyncio.run(_with_session(database_url, audit_column_report))

    table = Table(title="Audit Columns")
    table.add_column("Table", style="cyan")
    table.add_column("Present")
    table.add_column("Missing", style="dim")
    table.add_column("Override mismatch", style="red")
    for report in reports:
        mismatch = ", ".join(
            f"{col} (override={'yes' if expected else 'no'}, schema={'yes' if actual else 'no'})"
            for col, (expected, actual) in sorted(report.mismatches.items())
        )
        table.add_row(report.table, ", ".join(report.present), ", ".join(report.missing), mismatch)
    console.print(table)

    if not all(r.ok for r in reports):
        console.print("[red]Audit column overrides disagree with the schema.[/red]")
        raise typer.Exit(1)


@app.command("activity")
def activity(
    team: int = typer.Option(..., "--team", "-t", help="Team ID"),
    limit: int = typer.Option(20, "--limit", "-l", help="Max entries"),
    database_url: str = typer.Option(settings.database_url, "--database-url", help="Database to read"),
):
    """Show a team's recent activity."""
    from .services.activity_display import build_feed_item
    from .services.activity_svc import list_activities

    async def _load(db: AsyncSession):
        rows, total = await list_activities(db, team_id=team, limit=limit)
        return [build_feed_item(entry, user_name) for entry, user_name in rows], total

    items, total = asyncio.run(_with_session(database_url, _load))
    if not items:
        console.print(f"[yellow]No activity for team {team}.[/yellow]")
        return

    table = Table(title=f"Activity ({len(items)} of {total})")
    table.add_column("When", style="dim")
    table.add_column("User", style="cyan")
    table.add_column("Action")
    for item in items:
        table.add_row(item.relative_time, item.user_name or "-", item.message)
    console.print(table)


@app.command("serve")
def serve(
    port: int = typer.Option(8030, "--port", "-p", help="Port to run on"),
    host: str = typer.Option("127.0.0.1", "--host", help="Host to bind to"),
):
    """Launch the service desk API."""
    import uvicorn

    console.print(f"[bold cyan]Starting service desk at http://{host}:{port}[/bold cyan]")
    uvicorn.run("servicedesk.app:app", host=host, port=port)


if __name__ == "__main__":
    app()
