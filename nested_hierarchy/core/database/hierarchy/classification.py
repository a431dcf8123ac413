"""Shape classification of nested set records.

Everything here is pure: it looks at the structural fields of one record and
never touches storage.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class NodeKind(StrEnum):
    """What a record's ``parent``/``lft``/``rgt`` fields say it is.

    SINGLETON and LEAF are the narrow forms of ROOT and CHILD respectively;
    use ``is_root_shaped`` / ``is_child_shaped`` for the broad checks.
    UNKNOWN means the fields fit neither shape (half-written or corrupted).
    """

    ROOT = "root"
    CHILD = "child"
    SINGLETON = "singleton"
    LEAF = "leaf"
    UNKNOWN = "unknown"

    @property
    def is_root_shaped(self) -> bool:
        return self in (NodeKind.ROOT, NodeKind.SINGLETON)

    @property
    def is_child_shaped(self) -> bool:
        return self in (NodeKind.CHILD, NodeKind.LEAF)


@dataclass(slots=True, frozen=True)
class NodePosition:
    """Snapshot of a record's structural fields.

    Attributes:
        id: Node identifier
        root_id: Identifier of the tree's root
        parent_id: Direct parent, None for roots
        lft: Left boundary
        rgt: Right boundary
        depth: Distance from the root
        scope: Partition value, None when unscoped
    """

    id: Any
    root_id: Any
    parent_id: Any
    lft: int | None
    rgt: int | None
    depth: int | None
    scope: Any = None

    @property
    def has_bounds(self) -> bool:
        return self.lft is not None and self.rgt is not None

    @property
    def is_root(self) -> bool:
        """Root: no parent, numbering starts at 1."""
        return (
            self.parent_id is None
            and self.has_bounds
            and self.lft == 1
            and self.rgt > self.lft
        )

    @property
    def is_child(self) -> bool:
        """Child: has a parent and sits strictly inside the numbering."""
        return (
            self.parent_id is not None
            and self.has_bounds
            and self.lft > 1
            and self.rgt > self.lft
        )

    @property
    def is_singleton(self) -> bool:
        """One-element set: ``lft == 1`` and ``rgt == 2``."""
        return self.lft == 1 and self.rgt == 2

    @property
    def is_leaf(self) -> bool:
        return self.has_bounds and self.lft == self.rgt - 1

    @property
    def is_unknown(self) -> bool:
        return not self.is_root and not self.is_child

    @property
    def width(self) -> int:
        """Number of interval marks covered, ``rgt - lft + 1``."""
        return self.rgt - self.lft + 1

    @property
    def kind(self) -> NodeKind:
        return classify_position(self)

    @property
    def size(self) -> int:
        """Nodes in the subtree including this one; 1 when UNKNOWN."""
        if self.is_unknown:
            return 1
        return self.width // 2

    def contains(self, other: NodePosition) -> bool:
        """Whether ``other`` lies inside this node's interval in the same tree."""
        return (
            self.root_id == other.root_id
            and self.scope == other.scope
            and self.lft <= other.lft
            and other.rgt <= self.rgt
        )


def classify_position(position: NodePosition) -> NodeKind:
    """Classify a position snapshot.

    Args:
        position: Structural fields of one record

    Returns:
        The narrowest matching kind
    """
    if position.is_root:
        return NodeKind.SINGLETON if position.is_singleton else NodeKind.ROOT
    if position.is_child:
        return NodeKind.LEAF if position.is_leaf else NodeKind.CHILD
    return NodeKind.UNKNOWN


__all__ = [
    "NodeKind",
    "NodePosition",
    "classify_position",
]
