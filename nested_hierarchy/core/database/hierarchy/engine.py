"""Nested set maintenance: attach, detach and prune whole subtrees.

Every node carries an interval ``[lft, rgt]``; a node's descendants are
exactly the nodes whose intervals lie inside its own. Moving a subtree is
therefore a handful of bulk ``UPDATE`` statements that shift intervals,
depths and root ids of an unbounded number of rows at once.

Each mutation:
    1. re-reads the nodes it was handed (the caller's copies may be stale),
    2. takes the per-tree lock(s) from a TreeLockRegistry,
    3. runs all bulk statements inside one transaction,
    4. refreshes the caller's instances in place after commit.

Example:
    engine = HierarchyEngine(NodeStore(Category, session_factory))

    root = await engine.create(Category(name="root"))
    books = await engine.create(Category(name="books"), parent=root)
    await engine.detach(books)          # books is now a root of its own
    await engine.attach(root, books)    # and back again, as the last child
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy import inspect as sa_inspect

from nested_hierarchy.core.database.exceptions import HierarchyError, HierarchyErrorKind
from nested_hierarchy.core.database.hierarchy.classification import (
    NodeKind,
    NodePosition,
    classify_position,
)
from nested_hierarchy.core.database.hierarchy.conditions import NodeConditions
from nested_hierarchy.core.database.hierarchy.envelope import TreeEnvelope
from nested_hierarchy.core.database.hierarchy.locks import TreeKey, TreeLockRegistry
from nested_hierarchy.core.database.hierarchy.schema import HierarchySchema
from nested_hierarchy.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from sqlalchemy.ext.asyncio import AsyncSession

    from nested_hierarchy.core.database.store import NodeStore


T = TypeVar("T")


class HierarchyEngine(Generic[T]):
    """Invariant-preserving operations on one nested set model.

    Args:
        store: Storage for the model
        schema: Attribute names; resolved from the model or settings if omitted
        locks: Shared lock registry; engines for the same table in one process
            should share it
        lock_trees: Serialize mutations per tree; defaults to
            ``HIERARCHY_LOCK_TREES``
    """

    __slots__ = ("conditions", "locks", "model", "schema", "store", "_lazy", "_logger", "_table")

    def __init__(
        self,
        store: NodeStore[T],
        schema: HierarchySchema | None = None,
        locks: TreeLockRegistry | None = None,
        *,
        lock_trees: bool | None = None,
    ) -> None:
        self.store = store
        self.model = store.model
        self.schema = schema if schema is not None else HierarchySchema.for_model(self.model)
        self.conditions = NodeConditions(self.model, self.schema)

        if lock_trees is None:
            from nested_hierarchy.core.settings import get_hierarchy_settings

            lock_trees = get_hierarchy_settings().lock_trees
        self.locks = (locks if locks is not None else TreeLockRegistry()) if lock_trees else None

        self._table = str(getattr(self.model, "__tablename__", self.model.__name__))
        self._logger = logging.getLogger(f"hierarchy.{self.model.__name__}")
        self._lazy = get_lazy_logger(f"hierarchy.{self.model.__name__}")

    # ------------------------------------------------------------------
    # Pure helpers
    # ------------------------------------------------------------------

    def position(self, node: T) -> NodePosition:
        """Structural fields of ``node`` as currently held in memory."""
        return self.schema.position_of(node)

    def classify(self, node: T) -> NodeKind:
        """ROOT, CHILD, SINGLETON, LEAF or UNKNOWN, from in-memory fields."""
        return classify_position(self.position(node))

    def size(self, node: T) -> int:
        """Number of nodes in the subtree (self included); 1 for UNKNOWN."""
        return self.position(node).size

    def children_count(self, node: T) -> int:
        """Number of descendants."""
        return self.size(node) - 1

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, node: T, parent: T | None = None) -> T:
        """Insert ``node`` as a singleton, optionally attaching it under ``parent``.

        Without a parent the node becomes the root of a new tree. With one it
        is attached as the parent's last child within the same transaction,
        so a failed attach leaves no orphan row behind.

        Returns:
            ``node``, refreshed
        """
        state = sa_inspect(node)
        if state.has_identity:
            raise ValueError(f"{self.model.__name__} is already persisted")

        schema = self.schema
        setattr(node, schema.parent, None)
        setattr(node, schema.left, 1)
        setattr(node, schema.right, 2)
        setattr(node, schema.depth, 0)

        if parent is None:
            async with self.store.transaction() as session:
                await self._insert_singleton(session, node)
        else:
            parent_id = self._persisted_id(parent, "parent")
            async with self._serialized(parent_id) as expected:
                async with self.store.transaction() as session:
                    await self._insert_singleton(session, node)
                    await self._attach(
                        session, parent_id, self.store.identity_of(node), expected
                    )

        await self.store.reload(node)
        if parent is not None:
            await self.store.reload(parent)

        self._logger.info(
            "Node created",
            extra={
                "operation": "hierarchy.create",
                "node_id": self.store.identity_of(node),
                "parent_id": None if parent is None else self.store.identity_of(parent),
            },
        )
        return node

    async def attach(self, parent: T, child: T) -> T:
        """Merge ``child``'s whole tree below ``parent`` as its last child.

        Raises:
            HierarchyError: A node is unpersisted or UNKNOWN, ``child`` is
                not a root, both are already in the same tree, or they live in
                different scopes

        Returns:
            ``child``, refreshed
        """
        parent_id = self._persisted_id(parent, "parent")
        child_id = self._persisted_id(child, "child")

        async with self._serialized(parent_id, child_id) as expected:
            async with self.store.transaction() as session:
                moved = await self._attach(session, parent_id, child_id, expected)
                size = self.position(moved).size

        await self.store.reload(parent)
        await self.store.reload(child)

        self._logger.info(
            "Subtree attached",
            extra={
                "operation": "hierarchy.attach",
                "parent_id": parent_id,
                "child_id": child_id,
                "nodes": size,
            },
        )
        return child

    async def detach(self, node: T) -> T:
        """Cut ``node``'s subtree out of its tree and make it a tree of its own.

        Nothing is deleted: the residual tree closes the gap, the subtree is
        renumbered from 1 and its depths are rebased to 0. Detaching a node
        that already is a root only renumbers it.

        Returns:
            ``node``, refreshed
        """
        node_id = self._persisted_id(node, "node")

        async with self._serialized(node_id) as expected:
            async with self.store.transaction() as session:
                detached = await self._detach(session, node_id, expected)
                size = self.position(detached).size

        await self.store.reload(node)

        self._logger.info(
            "Subtree detached",
            extra={"operation": "hierarchy.detach", "node_id": node_id, "nodes": size},
        )
        return node

    async def prune(self, node: T) -> int:
        """Delete ``node`` and its entire subtree, closing the gap they leave.

        Returns:
            Number of rows deleted
        """
        node_id = self._persisted_id(node, "node")

        async with self._serialized(node_id) as expected:
            async with self.store.transaction() as session:
                deleted = await self._prune(session, node_id, expected)

        self._logger.info(
            "Subtree pruned",
            extra={"operation": "hierarchy.prune", "node_id": node_id, "deleted": deleted},
        )
        return deleted

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def subtree_of(
        self,
        node: T,
        *,
        sort_key: Callable[[T], Any] | None = None,
    ) -> list[T]:
        """``node`` and all its descendants in preorder.

        Args:
            node: Subtree root
            sort_key: Optional key to re-sort siblings at every level; the
                result stays in preorder
        """
        async with self.store.session() as session:
            pos = await self._fresh_position(session, self._persisted_id(node, "node"))
            rows = await self.store.query(
                session, self.conditions.subtree(pos), [self.conditions.order()]
            )
        if sort_key is None:
            return list(rows)
        return TreeEnvelope.build(rows, self.schema).sort_children(sort_key).to_flat_list()

    async def descendants_of(
        self,
        node: T,
        *,
        sort_key: Callable[[T], Any] | None = None,
    ) -> list[T]:
        """All descendants of ``node`` in preorder, excluding ``node``."""
        if sort_key is not None:
            return (await self.subtree_of(node, sort_key=sort_key))[1:]

        async with self.store.session() as session:
            pos = await self._fresh_position(session, self._persisted_id(node, "node"))
            rows = await self.store.query(
                session, self.conditions.descendants(pos), [self.conditions.order()]
            )
        return list(rows)

    async def children_of(
        self,
        node: T,
        *,
        sort_key: Callable[[T], Any] | None = None,
    ) -> list[T]:
        """Direct children of ``node``, left to right."""
        async with self.store.session() as session:
            pos = await self._fresh_position(session, self._persisted_id(node, "node"))
            rows = await self.store.query(
                session, self.conditions.children(pos.id, pos.scope), [self.conditions.order()]
            )
        if sort_key is None:
            return list(rows)
        return sorted(rows, key=sort_key)

    async def parent_of(self, node: T) -> T | None:
        """The direct parent, or None for a root."""
        async with self.store.session() as session:
            pos = await self._fresh_position(session, self._persisted_id(node, "node"))
            if pos.parent_id is None:
                return None
            return await self.store.get(session, pos.parent_id)

    async def root_of(self, node: T) -> T | None:
        """The root of the tree ``node`` belongs to."""
        async with self.store.session() as session:
            pos = await self._fresh_position(session, self._persisted_id(node, "node"))
            return await self.store.get(session, pos.root_id)

    async def envelope(
        self,
        node: T,
        *,
        sort_key: Callable[[T], Any] | None = None,
    ) -> TreeEnvelope:
        """In-memory tree of ``node``'s subtree."""
        envelope = TreeEnvelope.build(await self.subtree_of(node), self.schema)
        if sort_key is not None:
            envelope.sort_children(sort_key)
        return envelope

    async def to_ascii(self, node: T) -> str:
        """Indented dump of the subtree's structural fields, for debugging."""
        lines = []
        for row in await self.subtree_of(node):
            pos = self.position(row)
            lines.append(
                f"{'__' * pos.depth}: id={pos.id}, rt={pos.root_id}, pr={pos.parent_id}, "
                f"lft={pos.lft}, rgt={pos.rgt}"
            )
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Transaction bodies
    # ------------------------------------------------------------------

    async def _insert_singleton(self, session: AsyncSession, node: T) -> None:
        await self.store.create(session, node)
        setattr(node, self.schema.root, self.store.identity_of(node))
        await self.store.save(session, node)

    async def _attach(
        self,
        session: AsyncSession,
        parent_id: Any,
        child_id: Any,
        expected: dict[Any, TreeKey],
    ) -> T:
        lft_col = self.schema.column(self.model, "left")
        rgt_col = self.schema.column(self.model, "right")
        depth_col = self.schema.column(self.model, "depth")

        parent = await self._fresh_position(session, parent_id, expected)
        child = await self._fresh_position(session, child_id, expected)
        self._check_attachable(parent, child)

        width = child.width

        # Open a gap of `width` marks right before the parent's right mark.
        await self.store.bulk_update(
            session,
            {self.schema.left: lft_col + width},
            self.conditions.left_at_or_after(parent.root_id, parent.scope, parent.rgt),
        )
        await self.store.bulk_update(
            session,
            {self.schema.right: rgt_col + width},
            self.conditions.right_at_or_after(parent.root_id, parent.scope, parent.rgt),
        )

        widened = await self._fresh_position(session, parent_id)
        gap_start = widened.rgt - width
        if gap_start != parent.rgt:
            raise HierarchyError(
                HierarchyErrorKind.INVARIANT_VIOLATION,
                "Parent did not widen by the subtree width",
                details={"parent_id": parent_id, "rgt_before": parent.rgt, "rgt_after": widened.rgt},
            )

        offset = gap_start - child.lft
        depth_increment = widened.depth + 1
        self._lazy.debug(
            lambda: f"attach {child_id} -> {parent_id}: width={width}, offset={offset}, "
            f"depth+={depth_increment}"
        )
        # One statement moves, re-depths and re-roots the child's tree.
        await self.store.bulk_update(
            session,
            {
                self.schema.left: lft_col + offset,
                self.schema.right: rgt_col + offset,
                self.schema.depth: depth_col + depth_increment,
                self.schema.root: widened.root_id,
            },
            self.conditions.subtree(child),
        )

        moved = await self._fresh(session, child_id)
        if getattr(moved, self.schema.root) != widened.root_id:
            raise HierarchyError(
                HierarchyErrorKind.INVARIANT_VIOLATION,
                "Attached subtree was not re-rooted",
                details={"child_id": child_id, "root_id": widened.root_id},
            )
        setattr(moved, self.schema.parent, widened.id)
        await self.store.save(session, moved)
        return moved

    def _check_attachable(self, parent: NodePosition, child: NodePosition) -> None:
        details = {"parent_id": parent.id, "child_id": child.id}
        if parent.is_unknown:
            raise HierarchyError(
                HierarchyErrorKind.UNKNOWN_NODE, "Can't add to unknown nodes", details=details
            )
        if child.is_unknown:
            raise HierarchyError(
                HierarchyErrorKind.UNKNOWN_NODE, "Can't add unknown nodes", details=details
            )
        if not child.is_root:
            raise HierarchyError(
                HierarchyErrorKind.NOT_A_ROOT, "Can't add a non-root node", details=details
            )
        if parent.scope != child.scope:
            raise HierarchyError(
                HierarchyErrorKind.SCOPE_MISMATCH,
                "Can't add a node from another scope",
                details={**details, "parent_scope": parent.scope, "child_scope": child.scope},
            )
        if parent.root_id == child.root_id:
            raise HierarchyError(
                HierarchyErrorKind.SAME_TREE,
                "Can't add a tree to itself",
                details={**details, "root_id": parent.root_id},
            )

    async def _detach(
        self,
        session: AsyncSession,
        node_id: Any,
        expected: dict[Any, TreeKey],
    ) -> T:
        lft_col = self.schema.column(self.model, "left")
        rgt_col = self.schema.column(self.model, "right")
        depth_col = self.schema.column(self.model, "depth")

        before = await self._fresh_position(session, node_id, expected)
        if not before.has_bounds or before.depth is None:
            raise HierarchyError(
                HierarchyErrorKind.UNKNOWN_NODE,
                "Can't detach a node without interval marks",
                details={"node_id": node_id},
            )

        width = before.width
        prior_depth = before.depth
        new_root_id = before.id

        if before.root_id != new_root_id:
            await self.store.bulk_update(
                session, {self.schema.root: new_root_id}, self.conditions.subtree(before)
            )
            # The subtree now has its own root id, so these only hit the residual tree.
            await self.store.bulk_update(
                session,
                {self.schema.left: lft_col - width},
                self.conditions.left_at_or_after(before.root_id, before.scope, before.rgt),
            )
            await self.store.bulk_update(
                session,
                {self.schema.right: rgt_col - width},
                self.conditions.right_at_or_after(before.root_id, before.scope, before.rgt),
            )

        node = await self._fresh(session, node_id)
        if getattr(node, self.schema.root) != new_root_id:
            raise HierarchyError(
                HierarchyErrorKind.INVARIANT_VIOLATION,
                "Detached subtree was not re-rooted",
                details={"node_id": node_id},
            )
        setattr(node, self.schema.parent, None)
        await self.store.save(session, node)

        current = self.position(node)
        shift = current.lft - 1
        if shift or prior_depth:
            self._lazy.debug(
                lambda: f"detach {node_id}: width={width}, shift={shift}, depth-={prior_depth}"
            )
            await self.store.bulk_update(
                session,
                {
                    self.schema.left: lft_col - shift,
                    self.schema.right: rgt_col - shift,
                    self.schema.depth: depth_col - prior_depth,
                },
                self.conditions.subtree(current),
            )
            node = await self._fresh(session, node_id)
        return node

    async def _prune(
        self,
        session: AsyncSession,
        node_id: Any,
        expected: dict[Any, TreeKey],
    ) -> int:
        lft_col = self.schema.column(self.model, "left")
        rgt_col = self.schema.column(self.model, "right")

        node = await self._fresh(session, node_id)
        pos = self.position(node)
        self._check_unchanged(pos, expected)
        session.expunge(node)

        if not pos.has_bounds:
            # Nothing to renumber; just drop the row.
            return await self.store.bulk_delete(session, self.conditions.identity(node_id))

        deleted = await self.store.bulk_delete(session, self.conditions.subtree(pos))
        width = pos.width
        await self.store.bulk_update(
            session,
            {self.schema.left: lft_col - width},
            self.conditions.left_at_or_after(pos.root_id, pos.scope, pos.rgt),
        )
        await self.store.bulk_update(
            session,
            {self.schema.right: rgt_col - width},
            self.conditions.right_at_or_after(pos.root_id, pos.scope, pos.rgt),
        )
        return deleted

    # ------------------------------------------------------------------
    # Reading and locking
    # ------------------------------------------------------------------

    def _persisted_id(self, node: T, role: str) -> Any:
        state = sa_inspect(node, raiseerr=False)
        if state is None or not state.has_identity:
            raise HierarchyError(
                HierarchyErrorKind.NOT_PERSISTED,
                f"The {role} node is not persisted",
                details={"role": role},
            )
        return state.identity[0]

    async def _fresh(self, session: AsyncSession, node_id: Any) -> T:
        node = await self.store.get(session, node_id)
        if node is None:
            raise HierarchyError(
                HierarchyErrorKind.NODE_NOT_FOUND,
                f"{self.model.__name__} no longer exists",
                details={"id": node_id},
            )
        return node

    async def _fresh_position(
        self,
        session: AsyncSession,
        node_id: Any,
        expected: dict[Any, TreeKey] | None = None,
    ) -> NodePosition:
        pos = self.position(await self._fresh(session, node_id))
        if expected:
            self._check_unchanged(pos, expected)
        return pos

    def _tree_key(self, pos: NodePosition) -> TreeKey:
        return (self._table, pos.root_id, pos.scope)

    def _check_unchanged(self, pos: NodePosition, expected: dict[Any, TreeKey]) -> None:
        key = expected.get(pos.id)
        if key is not None and key != self._tree_key(pos):
            raise HierarchyError(
                HierarchyErrorKind.CONCURRENT_MODIFICATION,
                "Node moved to another tree while waiting for its lock",
                details={"node_id": pos.id, "locked": key, "current": self._tree_key(pos)},
            )

    @asynccontextmanager
    async def _serialized(self, *node_ids: Any) -> AsyncIterator[dict[Any, TreeKey]]:
        """Hold the locks of the trees the given nodes belong to.

        Yields the tree key each node was locked under, so the transaction
        body can verify nothing moved between the lookup and the lock.
        """
        if self.locks is None:
            yield {}
            return

        async with self.store.session() as session:
            expected = {
                node_id: self._tree_key(await self._fresh_position(session, node_id))
                for node_id in node_ids
            }
        async with self.locks.hold(*expected.values()):
            yield expected


__all__ = [
    "HierarchyEngine",
]
