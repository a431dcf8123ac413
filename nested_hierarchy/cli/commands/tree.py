"""Category tree commands.

Example:bash
    nested-hierarchy tree add Books
    nested-hierarchy tree add Fiction --parent 1
    nested-hierarchy tree show 1
    nested-hierarchy tree detach 2
    nested-hierarchy tree attach 1 2
    nested-hierarchy tree check 1
    nested-hierarchy tree prune 2
"""

from __future__ import annotations

import json
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import NoReturn

import click

from nested_hierarchy.cli.utils import coro, error, header, info, success
from nested_hierarchy.core.database import (
    HierarchyEngine,
    HierarchyError,
    NodeStore,
    NotFoundError,
)
from nested_hierarchy.core.models import Category


@asynccontextmanager
async def open_engine() -> AsyncIterator[HierarchyEngine[Category]]:
    """Hierarchy engine for Category on the database named by DB_URL."""
    from nested_hierarchy.infra.database import (
        close_engine,
        create_engine_from_settings,
        get_session_factory,
    )

    db_engine = create_engine_from_settings()
    try:
        yield HierarchyEngine(NodeStore(Category, get_session_factory(db_engine)))
    finally:
        await close_engine(db_engine)


async def load(engine: HierarchyEngine[Category], category_id: int) -> Category:
    async with engine.store.session() as session:
        return await engine.store.get_or_raise(session, category_id)


def fail(exc: Exception) -> NoReturn:
    error(str(exc))
    sys.exit(1)


@click.group(name="tree")
def tree() -> None:
    """Category tree management commands."""


@tree.command()
@click.argument("name")
@click.option("--parent", "parent_id", type=int, default=None, help="Attach under this category")
@click.option("--tenant", default=None, help="Tenant (scope) of the new category")
@coro
async def add(name: str, parent_id: int | None, tenant: str | None) -> None:
    """Create a category, optionally as the last child of PARENT."""
    async with open_engine() as engine:
        try:
            parent = await load(engine, parent_id) if parent_id is not None else None
            if parent is not None and tenant is None:
                tenant = parent.tenant_id
            node = await engine.create(Category(name=name, tenant_id=tenant), parent=parent)
        except (HierarchyError, NotFoundError) as e:
            fail(e)

    success(f"Created category {node.id} ({engine.classify(node)})")


@tree.command()
@click.argument("category_id", type=int)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["ascii", "json"]),
    default="ascii",
    help="Output format",
)
@click.option("--sort-by-name", is_flag=True, help="Sort siblings by name")
@coro
async def show(category_id: int, output_format: str, sort_by_name: bool) -> None:
    """Print the subtree rooted at CATEGORY_ID."""
    sort_key = (lambda c: c.name) if sort_by_name else None
    async with open_engine() as engine:
        try:
            node = await load(engine, category_id)
            rows = await engine.subtree_of(node, sort_key=sort_key)
        except (HierarchyError, NotFoundError) as e:
            fail(e)

    if output_format == "json":
        click.echo(json.dumps([row.to_dict() for row in rows], indent=2))
        return

    header(f"Subtree of {category_id} ({len(rows)} nodes)")
    for row in rows:
        click.echo(f"{'  ' * (row.depth - node.depth)}{row.name} [id={row.id}, {row.lft}..{row.rgt}]")


@tree.command()
@click.argument("category_id", type=int)
@coro
async def check(category_id: int) -> None:
    """Verify interval marks and depths of the subtree at CATEGORY_ID."""
    async with open_engine() as engine:
        try:
            node = await load(engine, category_id)
            envelope = await engine.envelope(node)
        except (HierarchyError, NotFoundError) as e:
            fail(e)

    depths_ok = all(
        wrapper.parent is None or wrapper.content.depth == wrapper.parent.content.depth + 1
        for wrapper in envelope
    )
    if envelope.has_proper_marks() and depths_ok:
        success(f"Subtree of {category_id} is consistent ({len(envelope)} nodes)")
        return
    error(f"Subtree of {category_id} has inconsistent marks")
    sys.exit(1)


@tree.command()
@click.argument("parent_id", type=int)
@click.argument("child_id", type=int)
@coro
async def attach(parent_id: int, child_id: int) -> None:
    """Move the tree rooted at CHILD_ID under PARENT_ID."""
    async with open_engine() as engine:
        try:
            parent = await load(engine, parent_id)
            child = await load(engine, child_id)
            await engine.attach(parent, child)
        except (HierarchyError, NotFoundError) as e:
            fail(e)

    success(f"Attached {child_id} under {parent_id} (depth {child.depth})")


@tree.command()
@click.argument("category_id", type=int)
@coro
async def detach(category_id: int) -> None:
    """Make CATEGORY_ID the root of a tree of its own."""
    async with open_engine() as engine:
        try:
            node = await load(engine, category_id)
            await engine.detach(node)
        except (HierarchyError, NotFoundError) as e:
            fail(e)

    success(f"Detached {category_id} ({engine.size(node)} nodes)")


@tree.command()
@click.argument("category_id", type=int)
@click.confirmation_option(prompt="Delete this category and all its descendants?")
@coro
async def prune(category_id: int) -> None:
    """Delete CATEGORY_ID and its whole subtree."""
    async with open_engine() as engine:
        try:
            node = await load(engine, category_id)
            deleted = await engine.prune(node)
        except (HierarchyError, NotFoundError) as e:
            fail(e)

    info(f"Deleted {deleted} categories")
