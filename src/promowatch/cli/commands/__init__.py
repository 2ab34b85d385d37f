"""CLI command modules."""

from . import config, db, diff, extract, history, run, targets

__all__ = [
    "config",
    "db",
    "diff",
    "extract",
    "history",
    "run",
    "targets",
]
