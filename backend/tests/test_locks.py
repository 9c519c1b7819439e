"""
Tests for the keyed inventory locks.
"""

import asyncio

import pytest

from college_events.core.errors import NotFound
from college_events.core.locks import KeyedLocks, event_key, event_request_key, inventory_locks
from college_events.services.ticket_service import purchase_ticket


@pytest.mark.asyncio
async def test_same_key_is_serialized():
    locks = KeyedLocks()
    active = 0
    peak = 0

    async def critical():
        nonlocal active, peak
        async with locks.hold(event_key(1)):
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1

    await asyncio.gather(*(critical() for _ in range(5)))
    assert peak == 1


@pytest.mark.asyncio
async def test_different_keys_do_not_block_each_other():
    locks = KeyedLocks()
    release = asyncio.Event()

    async def hold_first():
        async with locks.hold(event_key(1)):
            await release.wait()

    holder = asyncio.create_task(hold_first())
    await asyncio.sleep(0)

    # Would hang if event 2 shared event 1's lock
    async with locks.hold(event_key(2)):
        pass

    release.set()
    await holder


@pytest.mark.asyncio
async def test_locks_are_reused_per_key():
    locks = KeyedLocks()
    assert locks.get(event_key(7)) is locks.get(event_key(7))
    assert locks.get(event_key(7)) is not locks.get(event_request_key(7))
    assert len(locks) == 2


@pytest.mark.asyncio
async def test_released_keys_are_dropped():
    locks = KeyedLocks()

    async def critical(key):
        async with locks.hold(key):
            await asyncio.sleep(0)

    await asyncio.gather(*(critical(event_key(i % 3)) for i in range(9)))
    assert len(locks) == 0


async def _enter_and_leave(locks, key):
    async with locks.hold(key):
        pass


@pytest.mark.asyncio
async def test_key_kept_while_waiters_remain():
    locks = KeyedLocks()
    release = asyncio.Event()

    async def first():
        async with locks.hold(event_key(1)):
            await release.wait()

    holder = asyncio.create_task(first())
    await asyncio.sleep(0)
    waiter = asyncio.create_task(_enter_and_leave(locks, event_key(1)))
    await asyncio.sleep(0)
    assert len(locks) == 1

    release.set()
    await asyncio.gather(holder, waiter)
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_lock_released_when_body_raises():
    locks = KeyedLocks()
    with pytest.raises(RuntimeError):
        async with locks.hold(event_key(5)):
            raise RuntimeError("boom")
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_purchases_of_unknown_events_leave_no_locks(session_factory, student):
    for event_id in range(900000, 900050):
        async with session_factory() as session:
            with pytest.raises(NotFound):
                await purchase_ticket(session, event_id, student.id)
    assert len(inventory_locks) == 0
