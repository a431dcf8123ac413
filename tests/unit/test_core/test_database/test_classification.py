"""Tests for pure node shape classification."""

from __future__ import annotations

import pytest

from nested_hierarchy.core.database.hierarchy import NodeKind, NodePosition, classify_position


def pos(parent_id=None, lft=1, rgt=2, depth=0, **kwargs) -> NodePosition:
    return NodePosition(id=1, root_id=1, parent_id=parent_id, lft=lft, rgt=rgt, depth=depth, **kwargs)


@pytest.mark.parametrize(
    ("position", "expected"),
    [
        (pos(), NodeKind.SINGLETON),
        (pos(rgt=8), NodeKind.ROOT),
        (pos(parent_id=1, lft=2, rgt=3, depth=1), NodeKind.LEAF),
        (pos(parent_id=1, lft=2, rgt=7, depth=1), NodeKind.CHILD),
        (pos(lft=3, rgt=4), NodeKind.UNKNOWN),
        (pos(parent_id=1, lft=1, rgt=2), NodeKind.UNKNOWN),
        (pos(lft=5, rgt=3), NodeKind.UNKNOWN),
        (pos(lft=None, rgt=None), NodeKind.UNKNOWN),
    ],
)
def test_classify_position(position, expected):
    assert classify_position(position) is expected
    assert position.kind is expected


def test_broad_shapes():
    assert NodeKind.SINGLETON.is_root_shaped
    assert NodeKind.ROOT.is_root_shaped
    assert NodeKind.LEAF.is_child_shaped
    assert NodeKind.CHILD.is_child_shaped
    assert not NodeKind.UNKNOWN.is_root_shaped
    assert not NodeKind.UNKNOWN.is_child_shaped


def test_size_counts_subtree_nodes():
    assert pos().size == 1
    assert pos(rgt=10).size == 5
    assert pos(parent_id=1, lft=2, rgt=7).size == 3
    assert pos(lft=5, rgt=3).size == 1


def test_contains_requires_same_tree_and_scope():
    outer = pos(rgt=10, scope="t1")
    inner = NodePosition(id=2, root_id=1, parent_id=1, lft=2, rgt=5, depth=1, scope="t1")
    other_scope = NodePosition(id=3, root_id=1, parent_id=1, lft=2, rgt=5, depth=1, scope="t2")

    assert outer.contains(inner)
    assert outer.contains(outer)
    assert not inner.contains(outer)
    assert not outer.contains(other_scope)
