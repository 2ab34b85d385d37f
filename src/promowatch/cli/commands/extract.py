"""
Extract promotions from a saved page or a plain text dump.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import orjson
import typer
from rich.console import Console
from rich.markup import escape

from promowatch.cli.commands.config import load_config_or_exit
from promowatch.core.extract import ExtractionError
from promowatch.core.extract.html import PromotionExtractor

console = Console()
err_console = Console(stderr=True)


def extract_promotions(
    source: Path = typer.Argument(..., help="Saved HTML page, or plain text with one offer per block"),
    selector: Optional[str] = typer.Option(
        None,
        "--selector",
        "-s",
        help="CSS selector for promotion containers (omit for plain text input)",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the snapshot JSON here instead of printing it",
    ),
) -> None:
    """Turn a page into a promotion snapshot that `promowatch diff` can read.

    Without --selector the file is read as plain text: blank lines separate
    offers and the first line of each block is its title.

    Examples:
        promowatch extract page.html --selector ".promo-card" -o today.json
        promowatch extract offers.txt
    """
    try:
        content = source.read_text(encoding="utf-8")
    except OSError as e:
        err_console.print(f"[red]Error:[/red] Cannot read {escape(str(source))}: {escape(str(e))}")
        raise typer.Exit(1)

    config = load_config_or_exit()
    extractor = PromotionExtractor(config.detection)

    try:
        if selector:
            promotions = extractor.extract(content, selector)
        else:
            promotions = extractor.extract_text(content)
    except ExtractionError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    payload = orjson.dumps([p.to_dict() for p in promotions], option=orjson.OPT_INDENT_2)
    if output is None:
        console.print_json(payload.decode("utf-8"))
        return

    output.write_bytes(payload)
    console.print(f"[green]OK[/green] Wrote {len(promotions)} promotions to {output}")
