"""Logging configuration setup.

Builds a dictConfig with a single console handler on the root logger.
Library loggers (``hierarchy.*``, ``repository.*``) propagate up to it.
"""

from __future__ import annotations

import logging
import logging.config
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from nested_hierarchy.core.settings.logs import LoggingSettings

logger = logging.getLogger(__name__)
_LOGGING_INITIALIZED = False

_TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
) -> None:
    """Ensure logging is configured once across entrypoints.

    Args:
        log_settings: Optional logging settings instance. If omitted, settings
            are loaded via get_logging_settings().
        force: Reconfigure logging even if it was already initialized.
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    settings_obj = log_settings
    if settings_obj is None:
        from nested_hierarchy.core.settings import get_logging_settings

        settings_obj = get_logging_settings()

    configure_logging(log_level=settings_obj.level, json_logs=settings_obj.json_logs)
    _LOGGING_INITIALIZED = True


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    capture_warnings: bool = True,
) -> None:
    """Configure the root logger with dictConfig.

    Args:
        log_level: Root logger level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_logs: Emit JSONL records instead of plain text lines.
        capture_warnings: Forward Python warnings to logging system.

    Example:
        configure_logging(log_level="DEBUG")  # show every bulk statement
    """
    if capture_warnings:
        logging.captureWarnings(True)

    formatter: dict[str, Any]
    if json_logs:
        formatter = {"()": "nested_hierarchy.infra.logging.formatters.JSONFormatter"}
    else:
        formatter = {"format": _TEXT_FORMAT}

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": formatter},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "level": log_level,
                    "stream": "ext://sys.stderr",
                },
            },
            "root": {"level": log_level, "handlers": ["console"]},
        }
    )
    logger.debug("Logging configured", extra={"level": log_level, "json": json_logs})
