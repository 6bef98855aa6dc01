"""
Command-line interface for backup and restore operations.

This module provides the ``psql-backuper`` CLI using Typer. Running it
without a subcommand starts the scheduler in backup mode (or restore mode
when ``--restore`` or ``RESTORE=true`` is set); ``restore`` forces restore
mode.
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..backup.database_catalog import DatabaseCatalog
from ..config import AppConfig, get_app_config
from ..exceptions import BackuperError
from ..models import PassSummary
from ..scheduler import RunMode, create_scheduler, select_mode
from ..utils.logger import setup_logger
from ..utils.pg_commands import PostgresCommands
from ..utils.process_runner import AsyncProcessRunner

app = typer.Typer(
    name="psql-backuper",
    help="Back up every PostgreSQL database to per-database dump files, or restore them.",
    add_completion=False
)

# Rich console for pretty output
console = Console()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    restore: bool = typer.Option(
        False,
        "--restore", "-r",
        help="Restore databases from dump files instead of backing up"
    ),
    interval: Optional[int] = typer.Option(
        None,
        "--interval", "-i",
        help="Repeat the backup every N seconds (default: from .env INTERVAL, else run once)"
    ),
    save_path: Optional[Path] = typer.Option(
        None,
        "--save-path", "-o",
        help="Directory for dump files (default: from .env SAVE_PATH, else ./dumps)"
    ),
    restore_path: Optional[Path] = typer.Option(
        None,
        "--restore-path",
        help="Directory holding dump files to restore (default: from .env RESTORE_PATH, else ./dumps)"
    ),
    webhook_url: Optional[str] = typer.Option(
        None,
        "--webhook-url",
        help="Webhook for progress notifications (default: from .env WEBHOOK_URL)"
    ),
    strict_catalog: bool = typer.Option(
        False,
        "--strict-catalog",
        help="Also skip every database whose name starts with 'template'"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable verbose logging"
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug logging"
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file", "-l",
        help="Log file path (default: no file logging)"
    )
):
    """
    Back up all databases, repeating on an interval if one is configured.
    """
    # Flags that were not given must not mask the environment
    ctx.obj = {
        "interval": interval,
        "save_path": save_path,
        "restore_path": restore_path,
        "webhook_url": webhook_url,
        "strict_catalog": True if strict_catalog else None,
        "verbose": True if verbose else None,
        "debug": True if debug else None,
        "log_file": str(log_file) if log_file else None,
    }

    if ctx.invoked_subcommand is None:
        _run(ctx.obj, restore_requested=restore)


@app.command("restore")
def restore_command(ctx: typer.Context):
    """Restore every <database>.sql file in the restore directory once."""
    _run(ctx.obj or {}, restore_requested=True)


@app.command("list-databases")
def list_databases(ctx: typer.Context):
    """List the databases a backup pass would dump."""
    config = _load_config(ctx.obj or {})
    logger = _setup_logging(config)

    runner = AsyncProcessRunner(timeout=config.tool_timeout, logger=logger)
    commands = PostgresCommands(config.db, psql_bin=config.psql_bin, pg_dump_bin=config.pg_dump_bin)
    catalog = DatabaseCatalog(runner, commands, strict=config.strict_catalog, logger=logger)

    try:
        databases = asyncio.run(catalog.list_databases())
    except BackuperError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title=f"Databases on {config.db.host}:{config.db.port}", show_header=True,
                  header_style="bold magenta")
    table.add_column("Database", style="cyan")
    table.add_column("Dump file", style="green")

    for database in databases:
        table.add_row(database, str(config.save_path / f"{database}.sql"))

    console.print(table)
    console.print(f"\n[dim]Total databases:[/dim] {len(databases)}")


@app.command("validate-config")
def validate_config(ctx: typer.Context):
    """Validate configuration and database server access."""
    console.print(Panel.fit(
        "[bold blue]Configuration Validation[/bold blue]",
        border_style="blue"
    ))

    config = _load_config(ctx.obj or {})
    logger = _setup_logging(config)

    console.print("[green]✓[/green] Configuration loaded successfully")
    _display_config(config)

    console.print("\n[dim]Testing database server access...[/dim]")

    runner = AsyncProcessRunner(timeout=config.tool_timeout, logger=logger)
    commands = PostgresCommands(config.db, psql_bin=config.psql_bin, pg_dump_bin=config.pg_dump_bin)
    catalog = DatabaseCatalog(runner, commands, strict=config.strict_catalog, logger=logger)

    try:
        databases = asyncio.run(catalog.list_databases())
    except BackuperError as e:
        console.print(f"\n[red]Server access failed:[/red] {e}")
        raise typer.Exit(1)

    console.print("[green]✓[/green] Database server access successful")
    console.print(f"[dim]Found {len(databases)} databases to back up[/dim]")
    console.print("\n[green]All checks passed![/green] Ready to back up.")


def _load_config(overrides: dict) -> AppConfig:
    try:
        return get_app_config(**overrides)
    except ValueError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)


def _setup_logging(config: AppConfig):
    return setup_logger(
        name="psql_backuper",
        log_level=config.log_level,
        log_file=config.log_file,
        log_max_size=config.log_max_size,
        log_backup_count=config.log_backup_count,
        verbose=config.verbose,
        debug=config.debug
    )


def _run(overrides: dict, restore_requested: bool) -> None:
    """Load configuration, select the mode and run the scheduler."""
    config = _load_config(overrides)
    logger = _setup_logging(config)
    mode = select_mode(config, restore_requested)

    if mode is RunMode.RESTORE:
        subtitle = f"Restoring from {config.restore_path}..."
    elif config.interval is None:
        subtitle = f"Backing up to {config.save_path}..."
    else:
        subtitle = f"Backing up to {config.save_path} every {config.interval}s..."

    console.print(Panel.fit(
        "[bold blue]PostgreSQL Backup & Restore[/bold blue]\n"
        f"[dim]{subtitle}[/dim]",
        border_style="blue"
    ))

    scheduler = create_scheduler(config, pass_callback=_display_pass_summary, logger=logger)

    try:
        asyncio.run(scheduler.run(mode))

    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled by user[/yellow]")
        raise typer.Exit(130)

    except BackuperError as e:
        console.print(f"\n[red]Error:[/red] {e}")
        if config.debug:
            console.print_exception()
        raise typer.Exit(1)


def _display_config(config: AppConfig) -> None:
    """Display the effective configuration in a formatted table."""
    table = Table(title="Effective Configuration", show_header=True, header_style="bold magenta")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in config.describe().items():
        table.add_row(key, str(value))

    console.print(table)


def _display_pass_summary(summary: PassSummary) -> None:
    """Display the outcomes of a pass in a formatted table."""
    if summary.aborted:
        console.print(f"[red]✗[/red] {summary.format_report()}")
        return

    title = "Backup Pass" if summary.mode == RunMode.BACKUP.value else "Restore Pass"
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Database", style="cyan")
    table.add_column("Status")
    table.add_column("File", style="dim")
    table.add_column("Duration", justify="right")

    for outcome in summary.outcomes:
        status = "[green]✓[/green]" if outcome.success else f"[red]✗ {outcome.error}[/red]"
        table.add_row(outcome.database, status, str(outcome.path), f"{outcome.duration_seconds:.1f}s")

    console.print()
    console.print(table)

    if summary.failed:
        console.print(f"[yellow]{summary.succeeded}/{summary.total} succeeded, {summary.failed} failed[/yellow]")
    else:
        console.print(f"[green]✓[/green] {summary.succeeded}/{summary.total} succeeded")
