"""Logging infrastructure.

Basic usage:
    import logging

    from nested_hierarchy.infra.logging import configure_logging, get_lazy_logger

    configure_logging(log_level="DEBUG", json_logs=True)

    logger = logging.getLogger(__name__)
    logger.info("Tree rebuilt", extra={"root_id": 1})

    lazy_logger = get_lazy_logger(__name__)
    lazy_logger.debug(lambda: f"Intervals: {dump_intervals()}")  # Only runs if DEBUG enabled
"""

from nested_hierarchy.infra.logging.config import configure_logging, setup_logging
from nested_hierarchy.infra.logging.formatters import JSONFormatter
from nested_hierarchy.infra.logging.lazy import LazyLoggerAdapter, get_lazy_logger

__all__ = [
    "JSONFormatter",
    "LazyLoggerAdapter",
    "configure_logging",
    "get_lazy_logger",
    "setup_logging",
]
