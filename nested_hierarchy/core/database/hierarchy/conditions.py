"""SQL predicates over nested set intervals.

Each method returns a SQLAlchemy boolean expression for a ``WHERE`` clause.
All predicates are built from explicit position values rather than from live
ORM instances, so a caller decides exactly which (re-read) boundaries a bulk
statement is computed from.

Example:
    conds = NodeConditions(Category, schema)
    pos = schema.position_of(node)
    stmt = select(Category).where(conds.subtree(pos)).order_by(conds.order())
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, true

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement

    from nested_hierarchy.core.database.hierarchy.classification import NodePosition
    from nested_hierarchy.core.database.hierarchy.schema import HierarchySchema


class NodeConditions:
    """Predicate factory bound to one model and its schema."""

    __slots__ = ("model", "schema")

    def __init__(self, model: type[Any], schema: HierarchySchema) -> None:
        self.model = model
        self.schema = schema

    def _col(self, field: str) -> Any:
        return self.schema.column(self.model, field)

    def scope(self, scope_value: Any = None) -> ColumnElement[bool]:
        """Restrict to one partition of the table.

        Args:
            scope_value: Value of the scope attribute; None matches IS NULL

        Returns:
            Equality (or IS NULL) on the scope column, the fixed scope filter,
            or ``true()`` for unscoped models
        """
        if self.schema.scope is not None:
            col = self._col("scope")
            if scope_value is None:
                return col.is_(None)
            return col == scope_value
        if self.schema.scope_filter is not None:
            return self.schema.scope_filter(self.model)
        return true()

    def tree(self, root_id: Any, scope_value: Any = None) -> ColumnElement[bool]:
        """Every node of the tree rooted at ``root_id``."""
        return and_(self.scope(scope_value), self._col("root") == root_id)

    def subtree(self, pos: NodePosition) -> ColumnElement[bool]:
        """The node at ``pos`` and all of its descendants."""
        return and_(
            self.tree(pos.root_id, pos.scope),
            self._col("left").between(pos.lft, pos.rgt),
        )

    def descendants(self, pos: NodePosition) -> ColumnElement[bool]:
        """Descendants of the node at ``pos``, excluding the node itself."""
        return and_(
            self.tree(pos.root_id, pos.scope),
            self._col("left") > pos.lft,
            self._col("right") < pos.rgt,
        )

    def children(self, node_id: Any, scope_value: Any = None) -> ColumnElement[bool]:
        """Direct children, found by parent link."""
        return and_(self.scope(scope_value), self._col("parent") == node_id)

    def identity(self, node_id: Any) -> ColumnElement[bool]:
        return self._col("id") == node_id

    def left_at_or_after(
        self, root_id: Any, scope_value: Any, boundary: int
    ) -> ColumnElement[bool]:
        """Nodes of a tree whose left mark is at or right of ``boundary``.

        These are the right siblings (and their subtrees) of the node whose
        right mark is ``boundary``, plus those of its ancestors.
        """
        return and_(self.tree(root_id, scope_value), self._col("left") >= boundary)

    def right_at_or_after(
        self, root_id: Any, scope_value: Any, boundary: int
    ) -> ColumnElement[bool]:
        """Nodes of a tree whose right mark is at or right of ``boundary``.

        Adds the ancestors (and the node itself) to ``left_at_or_after``.
        """
        return and_(self.tree(root_id, scope_value), self._col("right") >= boundary)

    def order(self) -> Any:
        """Interval (preorder) ordering."""
        return self._col("left").asc()


__all__ = [
    "NodeConditions",
]
