"""
History command - show stored snapshots for a target.
"""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from promowatch.cli.commands.config import load_config_or_exit
from promowatch.persistence.db import get_session, init_db
from promowatch.persistence.repo import StateRepository

console = Console()


def show_history(
    url: str = typer.Argument(..., help="Target URL"),
    limit: int = typer.Option(
        5,
        "--limit",
        "-n",
        min=1,
        help="Number of snapshots to show",
    ),
) -> None:
    """Show the current state and recent change history of a target."""
    config = load_config_or_exit()
    init_db(config.storage.url)

    with get_session() as session:
        repo = StateRepository(session)
        state = repo.read_state(url)
        snapshots = repo.get_snapshots(url, limit=limit)

    if state is None:
        console.print(f"[dim]No state recorded for {url}[/dim]")
    else:
        console.print(
            f"[bold]Current state:[/bold] {len(state.promotions)} promotions, "
            f"last seen {state.last_seen_at:%Y-%m-%d %H:%M}"
        )

    if not snapshots:
        console.print("[dim]No change history[/dim]")
        return

    table = Table(title="Change History", show_header=True, header_style="bold magenta")
    table.add_column("When", style="cyan")
    table.add_column("Promotions", justify="right")
    table.add_column("Summary")
    table.add_column("Hash", style="dim")

    for snapshot in snapshots:
        table.add_row(
            f"{snapshot.taken_at:%Y-%m-%d %H:%M}",
            str(len(snapshot.promotions)),
            snapshot.summary or "",
            snapshot.content_hash,
        )

    console.print(table)
