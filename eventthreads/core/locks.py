"""
Per-thread critical sections.

Keys: lock:thread:{thread_id}. Locks live on the event loop and are
dropped as soon as nobody holds or waits for them, so the table only
contains threads with in-flight mutations.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List


class KeyedLocks:
    """asyncio.Lock per key, created on demand"""

    def __init__(self) -> None:
        # key -> [lock, holders_and_waiters]
        self._locks: Dict[str, List] = {}

    @asynccontextmanager
    async def acquire(self, key: str) -> AsyncIterator[None]:
        entry = self._locks.get(key)
        if entry is None:
            entry = [asyncio.Lock(), 0]
            self._locks[key] = entry
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0 and self._locks.get(key) is entry:
                del self._locks[key]

    def active_keys(self) -> List[str]:
        return list(self._locks)


def lock_key_thread(thread_id: str) -> str:
    return f"lock:thread:{thread_id}"
