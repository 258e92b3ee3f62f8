"""Keyed Async Locks — per-job mutual exclusion for read-decide-write units.

Invariants:
    - At most one holder per key at a time within the process
    - A key's lock is dropped once nobody holds or waits on it (no unbounded growth)
    - Locks never span event loops: entries only live while in use

Design Decisions:
    - In-process asyncio locks complement the database row lock (SELECT ... FOR UPDATE):
      the row lock covers multi-process PostgreSQL deployments, the keyed lock keeps
      single-process SQLite deployments serial
    - job_locks singleton, like db_manager: one registry per process
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Hashable


class KeyedLocks:
    """Registry of asyncio.Lock objects created on demand per key."""

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


job_locks = KeyedLocks()
