"""Immutable description of where a model keeps its nested set fields."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from nested_hierarchy.core.database.hierarchy.classification import NodePosition
from nested_hierarchy.core.database.validation import validate_identifier

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement

    from nested_hierarchy.core.settings.hierarchy import HierarchySettings

ScopeFilter = Callable[[type[Any]], "ColumnElement[bool]"]


@dataclass(slots=True, frozen=True)
class HierarchySchema:
    """Attribute names of the structural fields plus the scope rule.

    The scope is either an attribute name (``scope``), compared for equality
    against the node's own value, or a fixed condition (``scope_filter``)
    built from the model class. With neither, the whole table is one forest.

    Attributes:
        id: Primary identifier attribute
        root: Tree root id attribute
        parent: Direct parent id attribute
        left: Left boundary attribute
        right: Right boundary attribute
        depth: Depth attribute
        scope: Optional partition attribute
        scope_filter: Optional fixed condition, e.g. ``lambda m: m.archived.is_(False)``

    Example:
        schema = HierarchySchema(left="lft_mark", right="rgt_mark", scope="tenant_id")
        pos = schema.position_of(category)
    """

    id: str = "id"
    root: str = "root_id"
    parent: str = "parent_id"
    left: str = "lft"
    right: str = "rgt"
    depth: str = "depth"
    scope: str | None = None
    scope_filter: ScopeFilter | None = None

    def __post_init__(self) -> None:
        for name in (self.id, self.root, self.parent, self.left, self.right, self.depth):
            validate_identifier(name)
        if self.scope is not None:
            validate_identifier(self.scope, identifier_type="scope attribute")
        if self.scope is not None and self.scope_filter is not None:
            raise ValueError("scope and scope_filter are mutually exclusive")

    @classmethod
    def from_settings(cls, settings: HierarchySettings | None = None) -> HierarchySchema:
        """Build a schema from HIERARCHY_* settings.

        Args:
            settings: Settings instance; loaded from the cache when omitted

        Returns:
            Schema using the configured attribute names
        """
        if settings is None:
            from nested_hierarchy.core.settings import get_hierarchy_settings

            settings = get_hierarchy_settings()

        return cls(
            id=settings.id_column,
            root=settings.root_column,
            parent=settings.parent_column,
            left=settings.left_column,
            right=settings.right_column,
            depth=settings.depth_column,
            scope=settings.scope_column,
        )

    @classmethod
    def for_model(cls, model: type[Any]) -> HierarchySchema:
        """Resolve the schema pinned on ``model`` or fall back to settings."""
        pinned = getattr(model, "__hierarchy__", None)
        if isinstance(pinned, HierarchySchema):
            return pinned
        return cls.from_settings()

    def identity_of(self, record: Any) -> Any:
        return getattr(record, self.id)

    def parent_of(self, record: Any) -> Any:
        return getattr(record, self.parent)

    def scope_of(self, record: Any) -> Any:
        """Partition value of ``record`` (None when unscoped)."""
        if self.scope is None:
            return None
        return getattr(record, self.scope)

    def position_of(self, record: Any) -> NodePosition:
        """Snapshot the structural fields of ``record``."""
        return NodePosition(
            id=getattr(record, self.id),
            root_id=getattr(record, self.root),
            parent_id=getattr(record, self.parent),
            lft=getattr(record, self.left),
            rgt=getattr(record, self.right),
            depth=getattr(record, self.depth),
            scope=self.scope_of(record),
        )

    def column(self, model: type[Any], field: str) -> Any:
        """Mapped attribute for a logical field name ("left", "root", ...)."""
        return getattr(model, getattr(self, field))


DEFAULT_SCHEMA = HierarchySchema()


__all__ = [
    "DEFAULT_SCHEMA",
    "HierarchySchema",
    "ScopeFilter",
]
