"""
Per-(date, slot) mutual exclusion inside one process.

Direct bookings, cancellations and lottery runs for the same slot take the same
lock and commit before releasing it, so the conflict check and the insert are
never interleaved within a worker. Across workers the partial unique index on
reservations is the authority; the lock only keeps a process from racing itself.
"""

import asyncio
import weakref
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator


class SlotLockRegistry:
    def __init__(self):
        # Locks disappear once nobody holds or waits on them
        self._locks: "weakref.WeakValueDictionary[tuple[date, str], asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def get(self, target_date: date, slot_key: str) -> asyncio.Lock:
        key = (target_date, slot_key)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, target_date: date, slot_key: str) -> AsyncIterator[None]:
        lock = self.get(target_date, slot_key)
        async with lock:
            yield


slot_locks = SlotLockRegistry()
