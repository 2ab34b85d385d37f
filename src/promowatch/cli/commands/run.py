"""
Run commands for processing monitored targets.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import orjson
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from promowatch.cli.commands.config import load_config_or_exit
from promowatch.core.config.models import TargetConfig, is_safe_target_url
from promowatch.core.logging import setup_logging
from promowatch.core.orchestrator.runner import BatchResult, TargetRunner
from promowatch.persistence.db import get_session, init_db
from promowatch.persistence.repo import StateRepository

console = Console()
err_console = Console(stderr=True)


def _print_batch(batch: BatchResult) -> None:
    table = Table(title="Run Results", show_header=True, header_style="bold magenta")
    table.add_column("Target", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("Promotions", justify="right")
    table.add_column("Result")

    for result in batch.results:
        if result.success:
            status = "[green]OK[/green]"
            outcome = result.changes.summary if result.changes else ""
            if result.notification_sent:
                outcome += " (notified)"
        else:
            status = "[red]FAILED[/red]"
            outcome = f"[red]{result.error}[/red]"
        table.add_row(result.target.display_name, status, str(len(result.promotions)), outcome)

    if batch.results:
        console.print(table)
    console.print(f"[bold]{batch.summary}[/bold]")


def run_targets_command(
    target: Optional[str] = typer.Option(
        None,
        "--target",
        "-t",
        help="URL of a single target to process",
    ),
    selector: Optional[str] = typer.Option(
        None,
        "--selector",
        "-s",
        help="Selector for an ad-hoc target that is not stored",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Don't send notifications or save state",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print results as JSON",
    ),
) -> None:
    """Fetch targets, detect material changes, notify, and save state.

    Examples:
        promowatch run
        promowatch run --target https://example.com/deals
        promowatch run -t https://example.com/deals -s ".promo-card" --dry-run
    """
    config = load_config_or_exit()
    setup_logging(
        level=config.logging.level,
        log_file=config.logging.file,
        json_format=config.logging.json_format,
    )
    init_db(config.storage.url, echo=config.storage.echo)

    targets: list[TargetConfig] | None = None
    if target:
        try:
            targets = [_resolve_target(target, selector, config.allowed_domains)]
        except ValueError as e:
            err_console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)
    elif selector:
        err_console.print("[red]--selector requires --target[/red]")
        raise typer.Exit(1)

    runner = TargetRunner(config, dry_run=dry_run)
    batch = asyncio.run(runner.process_batch(targets))

    if as_json:
        payload = {
            "summary": batch.summary,
            "duration_ms": round(batch.duration_ms, 1),
            "results": [r.to_dict() for r in batch.results],
        }
        console.print_json(orjson.dumps(payload).decode("utf-8"))
    else:
        _print_batch(batch)

    if batch.failed_targets:
        raise typer.Exit(1)


def _resolve_target(url: str, selector: str | None, allowed_domains: list[str]) -> TargetConfig:
    """A stored target by URL, or an ad-hoc one when a selector is given."""
    if selector is None:
        with get_session() as session:
            stored = StateRepository(session).get_target(url)
            if stored is None:
                raise ValueError(f"Target not found: {url} (pass --selector for an ad-hoc run)")
            data = {
                "url": stored.url,
                "selector": stored.selector,
                "name": stored.name,
                "notes": stored.notes,
                "enabled": True,
            }
    else:
        data = {"url": url, "selector": selector}

    try:
        resolved = TargetConfig.model_validate(data)
    except ValidationError as e:
        raise ValueError(str(e)) from e

    if not is_safe_target_url(resolved.url, allowed_domains):
        raise ValueError(f"Target {resolved.url} is outside allowed_domains")
    return resolved
