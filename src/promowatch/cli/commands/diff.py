"""
Offline diff of two promotion snapshot files.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson
import typer
from rich.console import Console
from rich.table import Table

from promowatch.cli.commands.config import load_config_or_exit
from promowatch.core.detect import detect_changes, filter_material_changes
from promowatch.core.detect.materiality import MaterialityFilter
from promowatch.core.detect.models import ChangeResult, Promotion, to_promotions

console = Console()
err_console = Console(stderr=True)


def load_snapshot(path: Path) -> tuple[Promotion, ...]:
    """Read promotions from a JSON file.

    Accepts a bare list of promotion objects or a stored state object
    with a ``promos`` or ``promotions`` list.
    """
    try:
        data: Any = orjson.loads(path.read_bytes())
    except OSError as e:
        raise ValueError(f"Cannot read {path}: {e}") from e
    except orjson.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("promos", data.get("promotions"))
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise ValueError(f"{path} does not contain a list of promotions")
    return to_promotions(data)


def _print_result(result: ChangeResult) -> None:
    style = "yellow" if result.has_changes else "green"
    console.print(f"[bold {style}]{result.summary}[/bold {style}]")
    if not result.has_changes:
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Change", style="cyan")
    table.add_column("ID", style="dim")
    table.add_column("Title")
    table.add_column("Details")

    for promo in result.added:
        table.add_row("[green]added[/green]", promo.id, promo.title, promo.price or promo.perk)
    for change in result.changed:
        details = ", ".join(
            f"{name}: {getattr(change.previous, name)!r} -> {getattr(change.current, name)!r}"
            for name in change.changed_fields()
        )
        table.add_row("[yellow]updated[/yellow]", change.id, change.current.title, details)
    for promo in result.removed:
        table.add_row("[red]removed[/red]", promo.id, promo.title, promo.price or promo.perk)

    console.print(table)


def diff_snapshots(
    current: Path = typer.Argument(..., help="Current snapshot (JSON)"),
    previous: Path = typer.Argument(..., help="Previous snapshot (JSON)"),
    raw: bool = typer.Option(
        False,
        "--raw",
        help="Skip the materiality filter and show every difference",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the result as JSON",
    ),
) -> None:
    """Compare two promotion snapshots and report material changes.

    Examples:
        promowatch diff today.json yesterday.json
        promowatch diff today.json yesterday.json --raw --json
    """
    try:
        current_promos = load_snapshot(current)
        previous_promos = load_snapshot(previous)
    except ValueError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    config = load_config_or_exit()
    materiality = MaterialityFilter(config.detection)

    result = detect_changes(current_promos, previous_promos, normalizer=materiality.normalizer)
    if not raw:
        result = filter_material_changes(result, materiality=materiality)

    if as_json:
        console.print_json(orjson.dumps(result.to_dict()).decode("utf-8"))
    else:
        _print_result(result)
