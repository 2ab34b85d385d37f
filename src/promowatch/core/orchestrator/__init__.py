"""Orchestrator module - coordinates target monitoring runs."""

from .runner import (
    BatchResult,
    TargetResult,
    TargetRunner,
    generate_batch_summary,
    run_targets,
)

__all__ = [
    "BatchResult",
    "TargetResult",
    "TargetRunner",
    "generate_batch_summary",
    "run_targets",
]
