"""CLI utilities for running async operations and formatting output."""

from nested_hierarchy.cli.utils.async_runner import coro
from nested_hierarchy.cli.utils.formatters import error, header, info, success

__all__ = [
    "coro",
    "error",
    "header",
    "info",
    "success",
]
