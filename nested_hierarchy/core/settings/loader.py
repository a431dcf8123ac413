"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the
process.

Testing:
    In tests, clear the cache to force reload:
    get_hierarchy_settings.cache_clear()

    Or construct settings directly:
    settings = HierarchySettings(scope_column="tenant_id")
"""

from __future__ import annotations

from functools import lru_cache

from .database import DatabaseSettings
from .hierarchy import HierarchySettings
from .logs import LoggingSettings


@lru_cache(maxsize=1)
def get_db_settings() -> DatabaseSettings:
    """Get cached database settings.

    Returns:
        Validated and frozen DatabaseSettings instance.
    """
    return DatabaseSettings()


@lru_cache(maxsize=1)
def get_hierarchy_settings() -> HierarchySettings:
    """Get cached nested set settings.

    Returns:
        Validated and frozen HierarchySettings instance.
    """
    return HierarchySettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings.

    Returns:
        Validated and frozen LoggingSettings instance.
    """
    return LoggingSettings()


def clear_all_caches() -> None:
    """Clear every cached settings instance (tests and CLI overrides)."""
    get_db_settings.cache_clear()
    get_hierarchy_settings.cache_clear()
    get_logging_settings.cache_clear()
