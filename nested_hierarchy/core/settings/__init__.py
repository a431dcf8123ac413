"""Pydantic Settings v2 configuration.

Settings are split by concern and read from environment variables
(optionally a .env file):

    HIERARCHY_*  nested set attribute names and locking
    DB_*         database URL and session behaviour
    LOG_*        log level and format

Import settings via cached loaders:
    from nested_hierarchy.core.settings import get_hierarchy_settings
"""

from __future__ import annotations

from .database import DatabaseSettings
from .hierarchy import HierarchySettings
from .loader import (
    clear_all_caches,
    get_db_settings,
    get_hierarchy_settings,
    get_logging_settings,
)
from .logs import LoggingSettings

__all__ = [
    "DatabaseSettings",
    "HierarchySettings",
    "LoggingSettings",
    "clear_all_caches",
    "get_db_settings",
    "get_hierarchy_settings",
    "get_logging_settings",
]
