"""
Database management commands.
"""

from __future__ import annotations

import typer
from rich.console import Console

from promowatch.cli.commands.config import load_config_or_exit
from promowatch.persistence.db import drop_db, init_db

console = Console()

app = typer.Typer(
    help="Database operations",
    no_args_is_help=True,
)


@app.command("init")
def init_database(
    drop_existing: bool = typer.Option(
        False,
        "--drop",
        help="Drop existing tables before creating",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Don't ask for confirmation",
    ),
) -> None:
    """Initialize the database schema.

    Creates all tables. Use --drop to reset the database.
    """
    config = load_config_or_exit()

    if drop_existing:
        if not yes and not typer.confirm("This will DELETE ALL DATA. Continue?", default=False):
            raise typer.Abort()

        console.print("[yellow]Dropping existing tables...[/yellow]")
        drop_db(config.storage.url)

    console.print("Creating database schema...")
    init_db(config.storage.url, echo=config.storage.echo)

    console.print("[green]OK[/green] Database initialized")
