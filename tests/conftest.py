"""Pytest configuration and shared fixtures.

Organization:
    - Settings Fixtures: isolated settings caches
    - Database Fixtures: aiosqlite engine, session factory, store, hierarchy engine
    - Tree Fixtures: helpers building and checking category trees
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from nested_hierarchy.core.database import HierarchyEngine, NodeStore
from nested_hierarchy.core.models import Category
from nested_hierarchy.core.settings import clear_all_caches
from nested_hierarchy.infra.database import init_models

if TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine

# Ensure tests never pick up a developer's environment
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_LEVEL", "WARNING")


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _isolated_settings():
    """Drop cached settings before and after every test."""
    clear_all_caches()
    yield
    clear_all_caches()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """Create a test database engine with all tables.

    Uses a file-backed SQLite database in the test's tmp dir, so every
    session gets its own connection (as it would against a server).
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    await init_models(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Session for direct reads in assertions; rolled back after test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession]) -> NodeStore[Category]:
    return NodeStore(Category, session_factory)


@pytest.fixture
def hierarchy(store: NodeStore[Category]) -> HierarchyEngine[Category]:
    """Hierarchy engine over Category with tree locking on."""
    return HierarchyEngine(store, lock_trees=True)


# ============================================================================
# Tree Fixtures
# ============================================================================


@pytest.fixture
def make_node(
    hierarchy: HierarchyEngine[Category],
) -> Callable[..., Awaitable[Category]]:
    """Factory creating a persisted category, optionally under a parent."""

    async def _make(
        name: str,
        parent: Category | None = None,
        tenant_id: str | None = None,
    ) -> Category:
        if parent is not None and tenant_id is None:
            tenant_id = parent.tenant_id
        return await hierarchy.create(Category(name=name, tenant_id=tenant_id), parent=parent)

    return _make


@pytest.fixture
def assert_tree_invariants(
    hierarchy: HierarchyEngine[Category],
) -> Callable[[Category], Awaitable[list[Category]]]:
    """Check every nested set invariant for the tree containing a node.

    Returns the tree's rows in preorder so tests can make further assertions.
    """

    async def _check(node: Category) -> list[Category]:
        root = await hierarchy.root_of(node)
        assert root is not None
        rows = await hierarchy.subtree_of(root)
        by_id = {row.id: row for row in rows}

        assert root.parent_id is None
        assert root.lft == 1
        assert root.depth == 0
        assert root.rgt == 2 * len(rows)

        marks = sorted([row.lft for row in rows] + [row.rgt for row in rows])
        assert marks == list(range(1, 2 * len(rows) + 1))

        for row in rows:
            assert row.lft < row.rgt
            assert row.root_id == root.id
            assert row.tenant_id == root.tenant_id
            contained = [other for other in rows if row.lft <= other.lft and other.rgt <= row.rgt]
            assert hierarchy.size(row) == len(contained)

            if row.parent_id is None:
                assert row.id == root.id
                continue
            parent = by_id[row.parent_id]
            assert row.depth == parent.depth + 1
            assert parent.lft < row.lft and row.rgt < parent.rgt

        for row in rows:
            children = [c for c in rows if c.parent_id == row.id]
            expected = row.lft + 1
            for child in children:
                assert child.lft == expected
                expected = child.rgt + 1
            assert expected == row.rgt

        return rows

    return _check
