"""Mixin adding nested set columns to a declarative model.

The mixin only declares storage and pure, in-memory shape checks. Anything
that moves nodes or reads other rows goes through ``HierarchyEngine`` so the
interval invariants are maintained in one place.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, mapped_column

from nested_hierarchy.core.database.hierarchy.schema import HierarchySchema

if TYPE_CHECKING:
    from nested_hierarchy.core.database.hierarchy.classification import (
        NodeKind,
        NodePosition,
    )


class NestedSetMixin:
    """Mixin for models stored as nested sets.

    Provides:
        root_id: Id of the tree's root (the row's own id for roots)
        parent_id: Direct parent id, None for roots
        lft / rgt: Interval boundaries, 1-based
        depth: Distance from the root

    Columns follow the default attribute names. Models using other names
    should declare their own columns and pin a matching ``__hierarchy__``
    schema instead of using this mixin.

    Example:
        >>> class Category(Base, IntegerPKMixin, NestedSetMixin):
        ...     __tablename__ = "categories"
        ...     name: Mapped[str] = mapped_column(String(255))
        >>>
        >>> cat = Category(name="books")
        >>> await engine.create(cat)
        >>> cat.hierarchy_kind
        <NodeKind.SINGLETON: 'singleton'>
    """

    __allow_unmapped__ = True

    root_id: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        index=True,
        comment="Id of the root of the tree this node belongs to",
    )
    parent_id: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        index=True,
        comment="Direct parent id, NULL for roots",
    )
    lft: Mapped[int] = mapped_column(Integer, default=1, nullable=False, index=True)
    rgt: Mapped[int] = mapped_column(Integer, default=2, nullable=False)
    depth: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    @property
    def hierarchy_position(self) -> NodePosition:
        """Structural fields as a NodePosition.

        This property does NOT query the database.
        """
        return HierarchySchema.for_model(type(self)).position_of(self)

    @property
    def hierarchy_kind(self) -> NodeKind:
        return self.hierarchy_position.kind

    @property
    def is_root(self) -> bool:
        return self.hierarchy_position.is_root

    @property
    def is_child(self) -> bool:
        return self.hierarchy_position.is_child

    @property
    def is_singleton(self) -> bool:
        return self.hierarchy_position.is_singleton

    @property
    def is_leaf(self) -> bool:
        return self.hierarchy_position.is_leaf

    @property
    def is_unknown(self) -> bool:
        return self.hierarchy_position.is_unknown


__all__ = [
    "NestedSetMixin",
]
