"""
Per-key asyncio locks used to serialize inventory mutations.

CONCURRENCY STRATEGY: Keyed Pessimistic Lock + Guarded UPDATE
=============================================================
Problem:
  Two users try to buy the last ticket simultaneously.
  Both read available_tickets=1, both decrement to 0, both succeed.
  Result: Oversold event.

Solution:
  Every operation that touches an event's (available_tickets, total_tickets)
  pair runs inside `inventory_locks.hold(("event", event_id))`. Operations on
  the same event are strictly serialized; operations on different events use
  different locks and never block each other.

  Inside the lock the UPDATE is still guarded in SQL
  (WHERE available_tickets > 0), so the database check constraint and the
  guard remain a second line of defense if another process writes the row.

  Locks are acquired BEFORE the session issues its first statement, so a
  task waiting for a lock never holds an open database transaction.

Locks are created lazily and bound to the running event loop. When the
registry is first used from a different loop (a new test, a restarted
server) it starts over with an empty table.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Hashable, Optional

from college_events.core.metrics import inventory_lock_wait


class KeyedLocks:
    """
    Lazily created asyncio.Lock per key.

    `hold()` counts the tasks holding or waiting on each key and drops the
    lock once that count returns to zero, so the table only contains keys
    that are in use.
    """

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _table(self) -> dict[Hashable, asyncio.Lock]:
        loop = asyncio.get_running_loop()
        if loop is not self._loop:
            self._loop = loop
            self._locks = {}
            self._users = {}
        return self._locks

    def get(self, key: Hashable) -> asyncio.Lock:
        table = self._table()
        lock = table.get(key)
        if lock is None:
            lock = table[key] = asyncio.Lock()
        return lock

    def __len__(self) -> int:
        return len(self._locks)

    def _release(self, key: Hashable) -> None:
        remaining = self._users[key] - 1
        if remaining:
            self._users[key] = remaining
        else:
            del self._users[key]
            self._locks.pop(key, None)

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self.get(key)
        self._users[key] = self._users.get(key, 0) + 1
        try:
            started = time.perf_counter()
            async with lock:
                inventory_lock_wait.observe(time.perf_counter() - started)
                yield
        finally:
            self._release(key)


inventory_locks = KeyedLocks()


def event_key(event_id: int) -> tuple[str, int]:
    return ("event", event_id)


def event_request_key(request_id: int) -> tuple[str, int]:
    return ("pending_event", request_id)
