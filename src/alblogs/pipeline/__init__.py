"""Run orchestration for alblogs."""

from .runner import RunOptions, RunResult, create_clients, run, setup_logging

__all__ = [
    "RunOptions",
    "RunResult",
    "create_clients",
    "run",
    "setup_logging",
]
