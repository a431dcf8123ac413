"""Async engine and session factory wiring."""

from nested_hierarchy.infra.database.session import (
    close_engine,
    create_engine_from_settings,
    get_session_factory,
    init_models,
)

__all__ = [
    "close_engine",
    "create_engine_from_settings",
    "get_session_factory",
    "init_models",
]
