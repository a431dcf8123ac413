"""Declarative base and composable column mixins.

Examples:
    Unscoped tree with integer ids:
    class Folder(Base, IntegerPKMixin, NestedSetMixin):
        __tablename__ = "folders"
        name: Mapped[str] = mapped_column(String(255))

    One forest per tenant:
    class Category(Base, IntegerPKMixin, TenantMixin, NestedSetMixin):
        __tablename__ = "categories"
        __hierarchy__ = HierarchySchema(scope="tenant_id")
"""

from __future__ import annotations

from sqlalchemy import MetaData, String
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

# Consistent naming convention for database constraints
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base with constraint naming and automatic table names.

    The automatic table naming can be overridden by setting __tablename__
    explicitly on the model class.
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    @declared_attr.directive
    def __tablename__(cls) -> str:
        """Auto-derive table name from class name (lowercase)."""
        return cls.__name__.lower()


class IntegerPKMixin:
    """Integer auto-increment primary key.

    Provides:
        id: Auto-incrementing integer primary key
    """

    __allow_unmapped__ = True

    id: Mapped[int] = mapped_column(
        primary_key=True,
        autoincrement=True,
        comment="Auto-incrementing integer primary key",
    )


class TenantMixin:
    """Tenant column usable as a nested set scope.

    Provides:
        tenant_id: String column (indexed). None is its own partition and
            is matched with IS NULL.
    """

    __allow_unmapped__ = True

    tenant_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
        comment="Tenant ID; partitions the table into independent forests",
    )


__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "IntegerPKMixin",
    "TenantMixin",
]
