"""In-memory trees built from interval-ordered query results.

A ``TreeEnvelope`` wraps a preorder list of records (typically the result of
``HierarchyEngine.subtree_of``) into a navigable tree, so siblings can be
re-sorted, reversed or moved around without touching storage, and then
flattened back into preorder.

Nodes live in an arena: the envelope owns parallel lists of contents,
parent indices and child index lists. ``EnvelopeNode`` is a lightweight
handle (envelope + index) handed out to callers.

Example:
    rows = await engine.subtree_of(root)
    env = TreeEnvelope.build(rows)
    env.sort_children(key=lambda c: c.name)
    ordered = env.to_flat_list()
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from nested_hierarchy.core.database.exceptions import HierarchyError, HierarchyErrorKind
from nested_hierarchy.core.database.hierarchy.schema import DEFAULT_SCHEMA, HierarchySchema

if TYPE_CHECKING:
    from nested_hierarchy.core.database.store import NodeStore

# Structure specs used by from_structure: a list of child specs per node
StructureSpec = Sequence["StructureSpec"]


@dataclass(slots=True, frozen=True)
class EnvelopeNode:
    """Handle to one wrapper node of an envelope."""

    envelope: TreeEnvelope
    index: int

    @property
    def content(self) -> Any:
        return self.envelope._contents[self.index]

    @property
    def parent(self) -> EnvelopeNode | None:
        parent_index = self.envelope._parents[self.index]
        if parent_index is None:
            return None
        return EnvelopeNode(self.envelope, parent_index)

    @property
    def children(self) -> list[EnvelopeNode]:
        return [EnvelopeNode(self.envelope, i) for i in self.envelope._children[self.index]]

    @property
    def is_root(self) -> bool:
        return self.index == self.envelope._root

    def __repr__(self) -> str:
        return f"EnvelopeNode(index={self.index}, content={self.content!r})"


class TreeEnvelope:
    """Arena-backed tree over records of one nested set.

    Attributes:
        schema: Tells the envelope which attributes hold ids and bounds
    """

    __slots__ = ("_children", "_contents", "_parents", "_root", "schema")

    def __init__(self, schema: HierarchySchema | None = None) -> None:
        self.schema = schema or DEFAULT_SCHEMA
        self._contents: list[Any] = []
        self._parents: list[int | None] = []
        self._children: list[list[int]] = []
        self._root = 0

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def build(
        cls,
        sequence: Sequence[Any],
        schema: HierarchySchema | None = None,
    ) -> TreeEnvelope:
        """Wrap a preorder sequence into a tree.

        The first element becomes the root. A stack holds the chain of open
        ancestors; each following element pops the stack until the top is its
        declared parent, is attached there, and is pushed. Preorder guarantees
        the parent is always still on the stack.

        Args:
            sequence: Records in ascending left-boundary order
            schema: Attribute names; defaults to ``id``/``parent_id``/...

        Returns:
            The envelope

        Raises:
            HierarchyError: The sequence is empty, or an element's parent is
                not an open ancestor (not a preorder encoding of one tree)
        """
        envelope = cls(schema)
        if not sequence:
            raise HierarchyError(
                HierarchyErrorKind.MALFORMED_SEQUENCE,
                "Cannot build an envelope from an empty sequence",
            )

        identity_of = envelope.schema.identity_of
        parent_of = envelope.schema.parent_of

        root = envelope._new_slot(sequence[0])
        stack = [root]
        for position, content in enumerate(sequence[1:], start=1):
            parent_id = parent_of(content)
            while stack and identity_of(envelope._contents[stack[-1]]) != parent_id:
                stack.pop()
            if not stack:
                raise HierarchyError(
                    HierarchyErrorKind.MALFORMED_SEQUENCE,
                    "No open ancestor matches the element's parent",
                    details={
                        "position": position,
                        "id": identity_of(content),
                        "parent_id": parent_id,
                    },
                )
            index = envelope._new_slot(content)
            envelope._link(stack[-1], index)
            stack.append(index)
        return envelope

    @classmethod
    def from_structure(cls, spec: StructureSpec) -> TreeEnvelope:
        """Build a content-less tree from nested lists.

        ``[[], []]`` is a root with two leaf children; ``[[[]]]`` is a chain
        of three nodes. Mostly useful for comparing shapes in tests.
        """
        envelope = cls()
        envelope._root = envelope._new_slot(None)
        pending = [(envelope._root, spec)]
        while pending:
            parent, child_specs = pending.pop()
            for child_spec in child_specs:
                index = envelope._new_slot(None)
                envelope._link(parent, index)
                pending.append((index, child_spec))
        return envelope

    def wrap(self, content: Any) -> EnvelopeNode:
        """Add a detached wrapper for ``content``; attach it with add_child."""
        return EnvelopeNode(self, self._new_slot(content))

    def _new_slot(self, content: Any) -> int:
        self._contents.append(content)
        self._parents.append(None)
        self._children.append([])
        return len(self._contents) - 1

    def _link(self, parent: int, child: int) -> None:
        self._parents[child] = parent
        self._children[parent].append(child)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    @property
    def root(self) -> EnvelopeNode:
        return EnvelopeNode(self, self._root)

    def _preorder(self, start: int | None = None) -> Iterator[int]:
        stack = [self._root if start is None else start]
        while stack:
            index = stack.pop()
            yield index
            stack.extend(reversed(self._children[index]))

    def __iter__(self) -> Iterator[EnvelopeNode]:
        """Iterate the nodes reachable from the root in preorder."""
        for index in self._preorder():
            yield EnvelopeNode(self, index)

    def __len__(self) -> int:
        return sum(1 for _ in self._preorder())

    def find(self, content_id: Any) -> EnvelopeNode | None:
        """Find the wrapper whose content has the given id.

        Args:
            content_id: Identifier to look for

        Returns:
            The wrapper, or None when no reachable node has that id
        """
        identity_of = self.schema.identity_of
        for index in self._preorder():
            content = self._contents[index]
            if content is not None and identity_of(content) == content_id:
                return EnvelopeNode(self, index)
        return None

    def require(self, content_id: Any) -> EnvelopeNode:
        """Same as find but raise if nothing matches.

        Raises:
            HierarchyError: No node with that id
        """
        node = self.find(content_id)
        if node is None:
            raise HierarchyError(
                HierarchyErrorKind.NODE_NOT_FOUND,
                "No node with this id in the envelope",
                details={"id": content_id},
            )
        return node

    def to_flat_list(self) -> list[Any]:
        """Re-emit contents in preorder under the current child order."""
        return [self._contents[index] for index in self._preorder()]

    # ------------------------------------------------------------------
    # Reordering
    # ------------------------------------------------------------------

    def sort_children(
        self,
        key: Callable[[Any], Any],
        *,
        reverse: bool = False,
    ) -> TreeEnvelope:
        """Sort every node's direct children by ``key(content)``.

        Order never crosses levels: each child list is sorted on its own.
        The sort is stable, so equal keys keep their interval order.
        """
        for index in self._preorder():
            self._children[index].sort(key=lambda i: key(self._contents[i]), reverse=reverse)
        return self

    def reverse(self) -> TreeEnvelope:
        """Reverse child order at every level."""
        for index in self._preorder():
            self._children[index].reverse()
        return self

    # ------------------------------------------------------------------
    # Restructuring
    # ------------------------------------------------------------------

    def _own(self, node: EnvelopeNode) -> int:
        if node.envelope is not self:
            raise ValueError("node belongs to a different envelope")
        return node.index

    def unlink(self, node: EnvelopeNode) -> EnvelopeNode:
        """Remove ``node`` (with its subtree) from its parent's children.

        Raises:
            HierarchyError: ``node`` is the root, or already unlinked
        """
        index = self._own(node)
        if index == self._root:
            raise HierarchyError(HierarchyErrorKind.UNLINK_ROOT, "Can't unlink the root")
        parent = self._parents[index]
        if parent is None:
            raise HierarchyError(
                HierarchyErrorKind.UNLINK_ROOT,
                "Node has no parent to be unlinked from",
                details={"index": index},
            )
        self._children[parent].remove(index)
        self._parents[index] = None
        return node

    def add_child(self, parent: EnvelopeNode, child: EnvelopeNode) -> EnvelopeNode:
        """Append ``child`` as the last child of ``parent``.

        Raises:
            HierarchyError: ``child`` already has a parent, or ``parent``
                lies inside ``child``'s subtree (including the root case)
        """
        parent_index = self._own(parent)
        child_index = self._own(child)
        if self._parents[child_index] is not None:
            raise HierarchyError(
                HierarchyErrorKind.ALREADY_PARENTED,
                "Child already has a parent",
                details={"index": child_index},
            )
        ancestor: int | None = parent_index
        while ancestor is not None:
            if ancestor == child_index:
                raise HierarchyError(
                    HierarchyErrorKind.WOULD_CYCLE,
                    "Can't add a node below itself",
                    details={"parent": parent_index, "child": child_index},
                )
            ancestor = self._parents[ancestor]
        self._link(parent_index, child_index)
        return child

    async def reload(self, store: NodeStore[Any]) -> None:
        """Refresh every wrapped record from storage in place.

        Each record is fetched on its own, so a concurrent writer can leave
        the envelope with a mix of old and new values.
        """
        for index in self._preorder():
            content = self._contents[index]
            if content is not None:
                await store.reload(content)

    # ------------------------------------------------------------------
    # Comparison and checks
    # ------------------------------------------------------------------

    def structurally_equal(self, other: TreeEnvelope) -> bool:
        """Same shape (child counts, recursively), contents ignored."""
        pending = [(self._root, other._root)]
        while pending:
            mine, theirs = pending.pop()
            my_children = self._children[mine]
            their_children = other._children[theirs]
            if len(my_children) != len(their_children):
                return False
            pending.extend(zip(my_children, their_children, strict=True))
        return True

    def has_proper_marks(self) -> bool:
        """Check that wrapped records carry the numbering of this shape.

        Walks the tree assigning marks in preorder, starting from 1 for a
        root record or from the record's own left mark for an inner subtree,
        and compares each record's bounds and root id. Only meaningful
        before the envelope is re-sorted; reload first for fresh values.
        Shapes without records (see ``from_structure``) have no marks and
        never qualify.
        """
        if any(content is None for content in self._contents):
            return False
        schema = self.schema
        root_content = self._contents[self._root]
        root_pos = schema.position_of(root_content)
        mark = 1 if root_pos.is_root else root_pos.lft
        root_id = root_pos.root_id

        # (index, entering) pairs; the right mark is checked on exit
        pending: list[tuple[int, bool]] = [(self._root, True)]
        while pending:
            index, entering = pending.pop()
            pos = schema.position_of(self._contents[index])
            if entering:
                if pos.root_id != root_id or pos.lft != mark:
                    return False
                mark += 1
                pending.append((index, False))
                pending.extend((child, True) for child in reversed(self._children[index]))
            else:
                if pos.rgt != mark:
                    return False
                mark += 1
        return True

    def to_ascii(self) -> str:
        """Indented one-line-per-node rendering, for debugging."""
        identity_of = self.schema.identity_of
        lines = []
        stack = [(self._root, 0)]
        while stack:
            index, level = stack.pop()
            content = self._contents[index]
            label = identity_of(content) if content is not None else None
            lines.append(f"{'--' * level}: {label}")
            stack.extend((child, level + 1) for child in reversed(self._children[index]))
        return "\n".join(lines)


__all__ = [
    "EnvelopeNode",
    "StructureSpec",
    "TreeEnvelope",
]
