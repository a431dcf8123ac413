"""Database repository and hierarchy exceptions.

Custom exceptions for store and tree operations that provide better
error messages and typing than raw SQLAlchemy exceptions.
"""
from __future__ import annotations

from enum import StrEnum
from typing import Any


class RepositoryError(Exception):
    """Base exception for repository operations.

    Raised when a repository operation fails due to programming
    errors, configuration issues, or unexpected states.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize repository error.

        Args:
            message: Error description
            details: Additional context about the error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Format error message with details."""
        if self.details:
            details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class NotFoundError(RepositoryError):
    """Entity not found in database.

    Attributes:
        model_name: Name of the model class that wasn't found
        identifier: The key/value that was searched for
    """

    def __init__(self, model_name: str, identifier: dict[str, Any]):
        """Initialize not found error.

        Args:
            model_name: Name of the model (e.g., "Category")
            identifier: Key-value pairs used in the search (e.g., {"id": 123})
        """
        self.model_name = model_name
        self.identifier = identifier

        id_str = ", ".join(f"{k}={v!r}" for k, v in identifier.items())
        message = f"{model_name} not found with {id_str}"

        super().__init__(message, details={"model": model_name, **identifier})

    def __repr__(self) -> str:
        """Repr for debugging."""
        return f"NotFoundError(model={self.model_name!r}, identifier={self.identifier!r})"


class HierarchyErrorKind(StrEnum):
    """Every way a tree operation can refuse or fail."""

    NOT_PERSISTED = "not_persisted"
    UNKNOWN_NODE = "unknown_node"
    NOT_A_ROOT = "not_a_root"
    SAME_TREE = "same_tree"
    SCOPE_MISMATCH = "scope_mismatch"
    INVARIANT_VIOLATION = "invariant_violation"
    CONCURRENT_MODIFICATION = "concurrent_modification"
    NODE_NOT_FOUND = "node_not_found"
    MALFORMED_SEQUENCE = "malformed_sequence"
    UNLINK_ROOT = "unlink_root"
    ALREADY_PARENTED = "already_parented"
    WOULD_CYCLE = "would_cycle"


class HierarchyError(RepositoryError):
    """Nested set operation failed.

    A single error type for the engine and the envelope. The ``kind``
    attribute tells callers which precondition or invariant was violated,
    so handlers can branch on it exhaustively:

        try:
            await engine.attach(parent, child)
        except HierarchyError as exc:
            if exc.kind is HierarchyErrorKind.SAME_TREE:
                ...

    Attributes:
        kind: Which failure occurred
    """

    def __init__(
        self,
        kind: HierarchyErrorKind,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        """Initialize hierarchy error.

        Args:
            kind: Failure category
            message: Error description
            details: Node ids and boundary values involved
        """
        self.kind = kind
        super().__init__(message, details=details)

    def __repr__(self) -> str:
        """Repr for debugging."""
        return f"HierarchyError(kind={self.kind.value!r}, message={self.message!r})"


__all__ = [
    "HierarchyError",
    "HierarchyErrorKind",
    "NotFoundError",
    "RepositoryError",
]
