"""Core database package: declarative base, storage and nested set trees.

Base Classes and Mixins:
    - Base: Declarative base with auto table naming
    - IntegerPKMixin: Integer primary key
    - TenantMixin: tenant_id column, usable as a tree scope
    - NestedSetMixin: root_id, parent_id, lft, rgt, depth columns

Storage:
    - NodeStore[T]: Sessions, point reads and bulk statements for one model

Hierarchy:
    - HierarchyEngine[T]: attach / detach / prune and subtree queries
    - TreeEnvelope: In-memory tree over query results

Exceptions:
    - RepositoryError, NotFoundError, HierarchyError (+ HierarchyErrorKind)

Validation:
    - validate_identifier: Check attribute/column names
"""

from nested_hierarchy.core.database.base import (
    NAMING_CONVENTION,
    Base,
    IntegerPKMixin,
    TenantMixin,
)
from nested_hierarchy.core.database.exceptions import (
    HierarchyError,
    HierarchyErrorKind,
    NotFoundError,
    RepositoryError,
)
from nested_hierarchy.core.database.hierarchy import (
    HierarchyEngine,
    HierarchySchema,
    NestedSetMixin,
    NodeKind,
    TreeEnvelope,
)
from nested_hierarchy.core.database.store import NodeStore
from nested_hierarchy.core.database.validation import (
    IdentifierValidationError,
    validate_identifier,
)

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "HierarchyEngine",
    "HierarchyError",
    "HierarchyErrorKind",
    "HierarchySchema",
    "IdentifierValidationError",
    "IntegerPKMixin",
    "NestedSetMixin",
    "NodeKind",
    "NodeStore",
    "NotFoundError",
    "RepositoryError",
    "TenantMixin",
    "TreeEnvelope",
    "validate_identifier",
]
