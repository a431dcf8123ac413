"""In-process serialization of tree mutations.

Bulk interval updates are not row-locked from the engine's point of view, so
two attach/detach/prune calls touching the same tree must not interleave.
The registry hands out one ``asyncio.Lock`` per ``(table, root_id, scope)``
key. Cross-process safety is left to the database isolation level.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Hashable
from contextlib import AsyncExitStack, asynccontextmanager

logger = logging.getLogger(__name__)

TreeKey = tuple[str, Hashable, Hashable]


class TreeLockRegistry:
    """Registry of per-tree locks.

    Example:
        registry = TreeLockRegistry()
        async with registry.hold(("categories", 1, None), ("categories", 7, None)):
            ...  # both trees are ours
    """

    def __init__(self) -> None:
        """Initialize the registry."""
        self._locks: dict[TreeKey, asyncio.Lock] = {}
        self._users: dict[TreeKey, int] = {}

    def get_or_create(self, key: TreeKey) -> asyncio.Lock:
        """Get the lock for a tree, creating it on first use.

        Args:
            key: ``(table, root_id, scope)``

        Returns:
            The lock guarding that tree
        """
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def is_locked(self, key: TreeKey) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def users(self, key: TreeKey) -> int:
        """Number of callers holding or waiting for a tree's lock."""
        return self._users.get(key, 0)

    def active_count(self) -> int:
        """Number of trees that currently have a lock."""
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, *keys: TreeKey) -> AsyncIterator[None]:
        """Acquire the locks of every given tree.

        Keys are de-duplicated and acquired in a stable order so two callers
        locking the same pair of trees cannot deadlock. Locks are released in
        reverse order on exit, also when the body raises.

        Args:
            *keys: Trees to lock
        """
        ordered = sorted(set(keys), key=repr)
        for key in ordered:
            self._users[key] = self._users.get(key, 0) + 1
        try:
            async with AsyncExitStack() as stack:
                for key in ordered:
                    await stack.enter_async_context(self.get_or_create(key))
                logger.debug("Tree locks acquired", extra={"trees": [repr(k) for k in ordered]})
                yield
        finally:
            self._release_users(ordered)

    def _release_users(self, keys: list[TreeKey]) -> None:
        # Trees get new root ids on detach, so unused keys are dropped.
        for key in keys:
            remaining = self._users[key] - 1
            if remaining:
                self._users[key] = remaining
            else:
                del self._users[key]
                self._locks.pop(key, None)


__all__ = [
    "TreeKey",
    "TreeLockRegistry",
]
