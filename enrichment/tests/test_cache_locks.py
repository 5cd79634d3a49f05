"""Tests for the TTL cache and per-entity locks."""

from __future__ import annotations

import asyncio
import uuid

import pytest

from enrichment.sync.cache import TTLCache
from enrichment.sync.locks import EntityLockRegistry


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_entries_expire_on_injected_clock():
    clock = FakeClock()
    cache = TTLCache(10, clock=clock)
    cache.set("k", "v")
    assert cache.get("k") == "v"
    assert cache.get("missing", "default") == "default"

    clock.now = 10.0
    assert cache.get("k") is None


def test_negative_ttl_rejected():
    with pytest.raises(ValueError):
        TTLCache(-1)


@pytest.mark.asyncio
async def test_get_or_load_caches_success_only():
    cache = TTLCache(60)
    calls = []

    async def loader():
        calls.append(1)
        return "data"

    assert await cache.get_or_load("k", loader) == "data"
    assert await cache.get_or_load("k", loader) == "data"
    assert len(calls) == 1

    async def failing():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await cache.get_or_load("other", failing)
    assert cache.get("other") is None


@pytest.mark.asyncio
async def test_same_entity_syncs_are_serialized():
    locks = EntityLockRegistry()
    entity_id = uuid.uuid4()
    order: list[str] = []

    async def work(name: str):
        async with locks.hold("partners", entity_id):
            order.append(f"{name}-start")
            await asyncio.sleep(0.01)
            order.append(f"{name}-end")

    await asyncio.gather(work("a"), work("b"))
    assert order in (
        ["a-start", "a-end", "b-start", "b-end"],
        ["b-start", "b-end", "a-start", "a-end"],
    )


@pytest.mark.asyncio
async def test_different_entities_do_not_block():
    locks = EntityLockRegistry()
    first, second = uuid.uuid4(), uuid.uuid4()

    async with locks.hold("partners", first):
        assert locks.is_locked("partners", first)
        assert not locks.is_locked("partners", second)
        async with locks.hold("partners", second):
            assert locks.is_locked("partners", second)
