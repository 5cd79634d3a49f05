"""Single-writer locks per entity instance."""

from __future__ import annotations

import asyncio
import uuid
import weakref
from contextlib import asynccontextmanager


class EntityLockRegistry:
    """Hands out one ``asyncio.Lock`` per ``(entity_type, entity_id)``.

    Two syncs of the same instance never overlap; syncs of different
    instances run freely. Locks are dropped once nobody references them.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[tuple[str, uuid.UUID], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def lock_for(self, entity_type: str, entity_id: uuid.UUID) -> asyncio.Lock:
        key = (entity_type, entity_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def is_locked(self, entity_type: str, entity_id: uuid.UUID) -> bool:
        lock = self._locks.get((entity_type, entity_id))
        return bool(lock and lock.locked())

    @asynccontextmanager
    async def hold(self, entity_type: str, entity_id: uuid.UUID):
        lock = self.lock_for(entity_type, entity_id)
        async with lock:
            yield lock
