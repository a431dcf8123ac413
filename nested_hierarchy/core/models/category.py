"""Category model: a tenant-scoped nested set."""

from __future__ import annotations

from typing import Any

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from nested_hierarchy.core.database.base import Base, IntegerPKMixin, TenantMixin
from nested_hierarchy.core.database.hierarchy import HierarchySchema, NestedSetMixin


class Category(Base, IntegerPKMixin, TenantMixin, NestedSetMixin):
    """Category tree node.

    Each tenant owns an independent forest; ``tenant_id=None`` is a forest
    of its own.
    """

    __tablename__ = "categories"
    __hierarchy__ = HierarchySchema(scope="tenant_id")

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Category(id={self.id}, name={self.name!r}, "
            f"lft={self.lft}, rgt={self.rgt}, depth={self.depth})>"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "tenant_id": self.tenant_id,
            "root_id": self.root_id,
            "parent_id": self.parent_id,
            "lft": self.lft,
            "rgt": self.rgt,
            "depth": self.depth,
        }
