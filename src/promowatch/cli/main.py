"""
Top-level `promowatch` command.

Global options live here; each subcommand sits in its own module under
`commands/`.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.traceback import install as install_rich_traceback

from promowatch import __app_name__, __version__
from promowatch.core.config.loader import CONFIG_ENV_VAR

load_dotenv()

install_rich_traceback(show_locals=False, width=120)

console = Console()

app = typer.Typer(
    name=__app_name__,
    help="Promotion page watcher with noise-tolerant change detection",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def _print_version(value: bool) -> None:
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=_print_version,
        is_eager=True,
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (default: $PROMOWATCH_CONFIG or configs/promowatch.yaml)",
    ),
) -> None:
    """PromoWatch - Promotion change detection."""
    if config is not None:
        os.environ[CONFIG_ENV_VAR] = str(config)


from .commands import config as config_cmd, db, diff, extract, history, run, targets  # noqa: E402

app.command("diff")(diff.diff_snapshots)
app.command("extract")(extract.extract_promotions)
app.command("run")(run.run_targets_command)
app.command("history")(history.show_history)
app.add_typer(targets.app, name="targets", help="Manage monitored targets")
app.add_typer(db.app, name="db", help="Database operations")
app.add_typer(config_cmd.app, name="config", help="Configuration helpers")


def run_cli() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    run_cli()
