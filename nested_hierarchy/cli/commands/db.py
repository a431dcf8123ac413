"""Database management commands.

Example:bash
    # Create missing tables in the database named by DB_URL
    nested-hierarchy db init
"""

import sys

import click
from sqlalchemy.exc import SQLAlchemyError

from nested_hierarchy.cli.utils import coro, error, info, success


@click.group(name="db")
def db() -> None:
    """Database management commands."""


@db.command()
@coro
async def init() -> None:
    """Create the category table if it does not exist yet."""
    # Registers the model on Base.metadata
    import nested_hierarchy.core.models  # noqa: F401
    from nested_hierarchy.core.settings import get_db_settings
    from nested_hierarchy.infra.database import (
        close_engine,
        create_engine_from_settings,
        init_models,
    )

    settings = get_db_settings()
    info(f"Connecting to: {settings.url}")

    engine = create_engine_from_settings(settings)
    try:
        await init_models(engine)
    except SQLAlchemyError as e:
        error(f"Failed to initialize database: {e}")
        sys.exit(1)
    finally:
        await close_engine(engine)

    success("Database initialized")
