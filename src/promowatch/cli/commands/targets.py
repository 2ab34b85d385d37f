"""
Target management commands.
"""

from __future__ import annotations

from typing import Optional

import orjson
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from promowatch.cli.commands.config import load_config_or_exit
from promowatch.core.config.models import TargetConfig, is_safe_target_url
from promowatch.persistence.db import get_session, init_db
from promowatch.persistence.repo import StateRepository

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Manage monitored targets",
    no_args_is_help=True,
)


@app.command("list")
def list_targets(
    enabled_only: bool = typer.Option(
        False,
        "--enabled",
        help="Only show enabled targets",
    ),
    format: str = typer.Option(
        "table",
        "--format",
        "-f",
        help="Output format (table, json)",
    ),
) -> None:
    """List stored targets."""
    config = load_config_or_exit()
    init_db(config.storage.url)

    with get_session() as session:
        targets = StateRepository(session).list_targets(enabled_only=enabled_only)

        if format == "json":
            data = [
                {
                    "url": t.url,
                    "selector": t.selector,
                    "name": t.name,
                    "notes": t.notes,
                    "enabled": t.enabled,
                }
                for t in targets
            ]
            console.print_json(orjson.dumps(data).decode("utf-8"))
            return

        if not targets:
            console.print("[dim]No targets configured. Add one with:[/dim] promowatch targets add")
            return

        table = Table(title="Targets", show_header=True, header_style="bold magenta")
        table.add_column("Name", style="cyan")
        table.add_column("URL")
        table.add_column("Selector", style="dim")
        table.add_column("Enabled", justify="center")

        for t in targets:
            enabled = "[green]yes[/green]" if t.enabled else "[red]no[/red]"
            table.add_row(t.name or "-", t.url, t.selector, enabled)

        console.print(table)


@app.command("add")
def add_target(
    url: str = typer.Argument(..., help="Page to monitor (https)"),
    selector: str = typer.Argument(..., help="CSS selector for promotion containers"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Display name"),
    notes: Optional[str] = typer.Option(None, "--notes", help="Free-form notes"),
    disabled: bool = typer.Option(False, "--disabled", help="Store without processing"),
) -> None:
    """Add or update a target."""
    config = load_config_or_exit()

    try:
        target = TargetConfig(
            url=url,
            selector=selector,
            name=name,
            notes=notes,
            enabled=not disabled,
        )
    except ValidationError as e:
        err_console.print("[red]Invalid target:[/red]")
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            err_console.print(f"  - {loc}: {error['msg']}")
        raise typer.Exit(1)

    if not is_safe_target_url(target.url, config.allowed_domains):
        err_console.print(f"[red]Target {target.url} is outside allowed_domains[/red]")
        raise typer.Exit(1)

    init_db(config.storage.url)
    with get_session() as session:
        _, created = StateRepository(session).upsert_target(target)

    verb = "Added" if created else "Updated"
    console.print(f"[green]OK[/green] {verb} target {target.display_name}")


@app.command("remove")
def remove_target(
    url: str = typer.Argument(..., help="Target URL"),
    purge: bool = typer.Option(
        False,
        "--purge",
        help="Also delete stored state and history",
    ),
) -> None:
    """Remove a target."""
    config = load_config_or_exit()
    init_db(config.storage.url)

    with get_session() as session:
        repo = StateRepository(session)
        removed = repo.remove_target(url)
        if purge:
            repo.delete_state(url)
            repo.delete_history(url)

    if not removed:
        err_console.print(f"[red]Target not found:[/red] {url}")
        raise typer.Exit(1)

    console.print(f"[green]OK[/green] Removed target {url}")


@app.command("sync")
def sync_targets() -> None:
    """Store the targets listed in the configuration file."""
    config = load_config_or_exit()
    if not config.targets:
        console.print("[dim]No targets in configuration[/dim]")
        return

    init_db(config.storage.url)
    created = 0
    with get_session() as session:
        repo = StateRepository(session)
        for target in config.targets:
            _, is_new = repo.upsert_target(target)
            created += int(is_new)

    console.print(
        f"[green]OK[/green] Synced {len(config.targets)} targets ({created} new)"
    )
