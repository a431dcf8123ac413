"""Tests for NestedSetMixin columns and in-memory shape properties."""

from __future__ import annotations

from sqlalchemy import inspect as sa_inspect

from nested_hierarchy.core.database import NodeKind
from nested_hierarchy.core.models import Category


def test_mixin_declares_structural_columns():
    columns = sa_inspect(Category).columns

    for name in ("root_id", "parent_id", "lft", "rgt", "depth", "tenant_id"):
        assert name in columns
    assert columns["parent_id"].nullable
    assert not columns["lft"].nullable
    assert columns["lft"].default.arg == 1
    assert columns["rgt"].default.arg == 2
    assert columns["depth"].default.arg == 0


def test_shape_properties_read_memory_only():
    node = Category(id=5, root_id=1, parent_id=1, lft=2, rgt=3, depth=1, name="x")

    assert node.hierarchy_kind is NodeKind.LEAF
    assert node.is_child
    assert node.is_leaf
    assert not node.is_root
    assert not node.is_unknown
    assert node.hierarchy_position.scope is None


def test_root_shapes():
    singleton = Category(id=1, root_id=1, parent_id=None, lft=1, rgt=2, depth=0, tenant_id="t1")
    root = Category(id=1, root_id=1, parent_id=None, lft=1, rgt=6, depth=0)

    assert singleton.is_singleton
    assert singleton.hierarchy_kind is NodeKind.SINGLETON
    assert singleton.hierarchy_position.scope == "t1"
    assert root.hierarchy_kind is NodeKind.ROOT
    assert not root.is_singleton


def test_unset_bounds_are_unknown():
    node = Category(name="new")

    assert node.is_unknown
    assert node.hierarchy_kind is NodeKind.UNKNOWN


async def test_created_category_round_trips(make_node):
    node = await make_node("A", tenant_id="t1")

    assert node.to_dict() == {
        "id": node.id,
        "name": "A",
        "tenant_id": "t1",
        "root_id": node.id,
        "parent_id": None,
        "lft": 1,
        "rgt": 2,
        "depth": 0,
    }
    assert repr(node) == f"<Category(id={node.id}, name='A', lft=1, rgt=2, depth=0)>"
