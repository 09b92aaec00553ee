"""Utility functions for alblogs."""

from .time_utils import parse_reference_time

__all__ = [
    "parse_reference_time",
]
