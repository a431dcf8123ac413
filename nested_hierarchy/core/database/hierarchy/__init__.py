"""Hierarchical data stored as nested sets.

Every node of a tree carries an interval ``[lft, rgt]`` that encloses the
intervals of all its descendants, plus ``root_id``, ``parent_id`` and
``depth``. Subtree reads become a single range query; moving a subtree is a
handful of bulk updates.

Components:
    - NodeKind / NodePosition: Pure shape classification of one record
    - HierarchySchema: Which attributes hold the structural fields
    - NodeConditions: SQL predicates over intervals
    - NestedSetMixin: Columns plus in-memory shape checks for models
    - HierarchyEngine: attach, detach, prune and subtree queries
    - TreeEnvelope: In-memory tree over a subtree query result
    - TreeLockRegistry: Per-tree serialization of mutations

Example:
    >>> from nested_hierarchy.core.database import NodeStore
    >>> from nested_hierarchy.core.database.hierarchy import HierarchyEngine
    >>>
    >>> engine = HierarchyEngine(NodeStore(Category, session_factory))
    >>> root = await engine.create(Category(name="root"))
    >>> child = await engine.create(Category(name="child"), parent=root)
    >>> [c.name for c in await engine.subtree_of(root)]
    ['root', 'child']
"""

from nested_hierarchy.core.database.hierarchy.classification import (
    NodeKind,
    NodePosition,
    classify_position,
)
from nested_hierarchy.core.database.hierarchy.conditions import NodeConditions
from nested_hierarchy.core.database.hierarchy.engine import HierarchyEngine
from nested_hierarchy.core.database.hierarchy.envelope import (
    EnvelopeNode,
    StructureSpec,
    TreeEnvelope,
)
from nested_hierarchy.core.database.hierarchy.locks import TreeKey, TreeLockRegistry
from nested_hierarchy.core.database.hierarchy.mixins import NestedSetMixin
from nested_hierarchy.core.database.hierarchy.schema import (
    DEFAULT_SCHEMA,
    HierarchySchema,
    ScopeFilter,
)

__all__ = [
    "DEFAULT_SCHEMA",
    "EnvelopeNode",
    "HierarchyEngine",
    "HierarchySchema",
    "NestedSetMixin",
    "NodeConditions",
    "NodeKind",
    "NodePosition",
    "ScopeFilter",
    "StructureSpec",
    "TreeEnvelope",
    "TreeKey",
    "TreeLockRegistry",
    "classify_position",
]
