import asyncio

import pytest

from dashi import errors
from dashi import memory


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_set_and_get():
    store = memory.MemoryStore()

    async def run():
        await store.set("user:1", "value", str)
        return await store.get("user:1", str)

    assert asyncio.run(run()) == "value"


def test_get_missing_entry():
    store = memory.MemoryStore()

    with pytest.raises(errors.EntryNotFound):
        asyncio.run(store.get("user:1", str))


def test_entry_expires():
    clock = FakeClock()
    store = memory.MemoryStore(clock=clock)
    asyncio.run(store.set("user:1", "value", str, expire=1500))

    clock.now += 1.4
    assert asyncio.run(store.get("user:1", str)) == "value"

    clock.now += 0.1
    with pytest.raises(errors.EntryNotFound):
        asyncio.run(store.get("user:1", str))

    assert len(store) == 0


def test_entry_without_expire():
    clock = FakeClock()
    store = memory.MemoryStore(clock=clock)
    asyncio.run(store.set("user:1", "value", str, expire=None))

    clock.now += 1_000_000

    assert asyncio.run(store.get("user:1", str)) == "value"


def test_set_replaces_entry():
    store = memory.MemoryStore()

    async def run():
        await store.set("user:1", "old", str)
        await store.set("user:1", "new", str)
        return await store.get("user:1", str)

    assert asyncio.run(run()) == "new"


def test_delete():
    store = memory.MemoryStore()

    async def run():
        await store.set("user:1", "value", str)
        await store.delete("user:1")
        await store.delete("user:2")

    asyncio.run(run())

    with pytest.raises(errors.EntryNotFound):
        asyncio.run(store.get("user:1", str))


def test_clear():
    store = memory.MemoryStore()

    async def run():
        await store.set("user:1", "value", str)
        await store.set("user:2", "value", str)
        await store.clear()

    asyncio.run(run())

    assert len(store) == 0
