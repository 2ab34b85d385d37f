"""
Logging for PromoWatch runs.

Terminal output goes through rich with the target name as a prefix; the
optional log file receives one JSON object per record so runs can be
grepped and replayed later.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import orjson
from rich.console import Console
from rich.markup import escape


ROOT_LOGGER_NAME = "promowatch"

# Record attributes lifted into JSON lines when a caller passes them via extra=
CONTEXT_FIELDS = ("target", "run_id", "url", "added", "removed", "changed")

PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per line, UTC timestamps."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, Any] = {
            "timestamp": stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (field, getattr(record, field))
            for field in CONTEXT_FIELDS
            if hasattr(record, field)
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return orjson.dumps(payload, default=str).decode("utf-8")


class RichConsoleHandler(logging.Handler):
    """Print records to stderr through rich, colored by level."""

    STYLES = {
        logging.DEBUG: "dim",
        logging.WARNING: "yellow",
        logging.ERROR: "red",
        logging.CRITICAL: "bold red",
    }

    def __init__(self, console: Console | None = None, level: int = logging.NOTSET):
        super().__init__(level)
        self.console = console or Console(stderr=True)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            text = escape(self.format(record))
            style = self.STYLES.get(record.levelno)
            if style:
                text = f"[{style}]{text}[/{style}]"
            target = getattr(record, "target", None)
            if target:
                text = f"[cyan]{escape(f'[{target}]')}[/cyan] {text}"

            self.console.print(text, markup=True, highlight=False)
            if record.exc_info:
                self.console.print_exception()
        except Exception:
            self.handleError(record)


def setup_logging(
    level: str = "INFO",
    log_file: Path | str | None = None,
    json_format: bool = True,
    rich_console: bool = True,
) -> logging.Logger:
    """Configure the ``promowatch`` logger tree and return its root.

    Calling it again replaces the handlers installed by a previous call.
    The file handler, when a path is given, records every level.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(numeric_level)
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()

    console: logging.Handler
    if rich_console:
        console = RichConsoleHandler()
        console.setFormatter(logging.Formatter("%(message)s"))
    else:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(logging.Formatter(PLAIN_FORMAT))
    console.setLevel(numeric_level)
    root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            JSONFormatter() if json_format else logging.Formatter(PLAIN_FORMAT, "%Y-%m-%d %H:%M:%S")
        )
        root.addHandler(file_handler)

    return root


class ContextualLogger(logging.LoggerAdapter):
    """Stamps every record with the target being processed and the run id."""

    def __init__(
        self,
        logger: logging.Logger,
        target: str | None = None,
        run_id: str | None = None,
    ):
        context = {key: value for key, value in (("target", target), ("run_id", run_id)) if value}
        super().__init__(logger, context)

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**(kwargs.get("extra") or {}), **self.extra}
        return msg, kwargs


def get_contextual_logger(
    name: str | None = None,
    target: str | None = None,
    run_id: str | None = None,
) -> ContextualLogger:
    """Logger under ``promowatch.<name>`` carrying target/run context."""
    logger_name = f"{ROOT_LOGGER_NAME}.{name}" if name else ROOT_LOGGER_NAME
    return ContextualLogger(logging.getLogger(logger_name), target=target, run_id=run_id)
