"""
Configuration commands.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from promowatch.core.config.loader import ConfigError, load_app_config, validate_config_file
from promowatch.core.config.models import AppConfig

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Configuration helpers",
    no_args_is_help=True,
)


def load_config_or_exit() -> AppConfig:
    """Load the app config, printing the error and exiting on failure."""
    try:
        return load_app_config()
    except ConfigError as e:
        err_console.print(f"[red]Error loading config:[/red] {e}")
        if e.details:
            err_console.print(f"[dim]{e.details}[/dim]")
        raise typer.Exit(1)


@app.command("validate")
def validate(
    path: Path = typer.Argument(..., help="Configuration file to validate"),
) -> None:
    """Validate a configuration file."""
    errors = validate_config_file(path)

    if errors:
        err_console.print(f"[red]x[/red] {path} is invalid:")
        for error in errors:
            err_console.print(f"  - {error}")
        raise typer.Exit(1)

    console.print(f"[green]OK[/green] {path} is valid")


@app.command("show")
def show() -> None:
    """Print the effective configuration as JSON."""
    config = load_config_or_exit()
    console.print_json(config.model_dump_json())
