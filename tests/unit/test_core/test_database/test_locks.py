"""Tests for TreeLockRegistry."""

from __future__ import annotations

import asyncio

import pytest

from nested_hierarchy.core.database.hierarchy import TreeLockRegistry

TREE_A = ("categories", 1, None)
TREE_B = ("categories", 7, "t1")


async def test_hold_locks_and_releases():
    registry = TreeLockRegistry()

    async with registry.hold(TREE_A, TREE_B):
        assert registry.is_locked(TREE_A)
        assert registry.is_locked(TREE_B)
        assert registry.users(TREE_A) == 1

    assert not registry.is_locked(TREE_A)
    assert registry.users(TREE_A) == 0
    assert registry.active_count() == 0


async def test_duplicate_keys_are_locked_once():
    registry = TreeLockRegistry()

    async with registry.hold(TREE_A, TREE_A):
        assert registry.users(TREE_A) == 1

    assert registry.active_count() == 0


async def test_release_on_error():
    registry = TreeLockRegistry()

    with pytest.raises(RuntimeError):
        async with registry.hold(TREE_A):
            raise RuntimeError("boom")

    assert not registry.is_locked(TREE_A)
    assert registry.active_count() == 0


async def test_same_tree_is_serialized():
    registry = TreeLockRegistry()
    events: list[str] = []

    async def worker(name: str) -> None:
        async with registry.hold(TREE_A):
            events.append(f"{name}:start")
            await asyncio.sleep(0.01)
            events.append(f"{name}:end")

    await asyncio.gather(worker("first"), worker("second"))

    assert events == ["first:start", "first:end", "second:start", "second:end"]
    assert registry.active_count() == 0


async def test_different_trees_run_concurrently():
    registry = TreeLockRegistry()
    inside = asyncio.Event()

    async def holder() -> None:
        async with registry.hold(TREE_A):
            inside.set()
            await asyncio.sleep(0.05)

    task = asyncio.create_task(holder())
    await inside.wait()
    async with registry.hold(TREE_B):
        assert registry.is_locked(TREE_A)
    await task


async def test_overlapping_pairs_do_not_deadlock():
    registry = TreeLockRegistry()

    async def worker(first, second) -> None:
        async with registry.hold(first, second):
            await asyncio.sleep(0.01)

    await asyncio.wait_for(
        asyncio.gather(worker(TREE_A, TREE_B), worker(TREE_B, TREE_A)),
        timeout=2,
    )
    assert registry.active_count() == 0


def test_get_or_create_returns_same_lock():
    registry = TreeLockRegistry()

    assert registry.get_or_create(TREE_A) is registry.get_or_create(TREE_A)
    assert registry.active_count() == 1


def test_empty_registry_is_truthy():
    registry = TreeLockRegistry()

    assert registry
    assert registry.active_count() == 0
