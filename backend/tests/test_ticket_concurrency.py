"""
Concurrency tests: many buyers racing for a fixed inventory.

Every buyer uses its own session, as separate requests would.
"""

import asyncio

import pytest
from httpx import AsyncClient
from sqlalchemy import select, func

from college_events.core.errors import OutOfInventory
from college_events.models import Ticket, User
from college_events.models.status import UserRole, TicketStatus
from college_events.services.id_allocator import EntityCategory, get_allocator
from college_events.services.ticket_service import purchase_ticket, cancel_ticket, get_availability
from conftest import make_event, make_user, headers_for


async def _bulk_users(session_factory, count):
    """Insert `count` students without paying for bcrypt on each."""
    allocator = get_allocator()
    users = []
    async with session_factory() as session:
        for _ in range(count):
            user_id = allocator.next(EntityCategory.user)
            users.append(User(
                id=user_id,
                name=f"Buyer {user_id}",
                email=f"buyer{user_id}@college.edu",
                credential_hash="unused",
                role=UserRole.student.value,
            ))
        session.add_all(users)
        await session.commit()
    return [u.id for u in users]


async def _buy(session_factory, event_id, user_id):
    async with session_factory() as session:
        return await purchase_ticket(session, event_id, user_id)


@pytest.mark.asyncio
async def test_hundred_buyers_hundred_tickets(session_factory, admin):
    """100 concurrent purchases of a 100-ticket event all succeed with distinct codes."""
    event = await make_event(session_factory, admin, total_tickets=100)
    buyers = await _bulk_users(session_factory, 100)

    results = await asyncio.gather(*(_buy(session_factory, event.id, u) for u in buyers), return_exceptions=True)

    failures = [r for r in results if isinstance(r, Exception)]
    assert failures == []
    assert len({t.ticket_code for t in results}) == 100
    assert len({t.id for t in results}) == 100

    async with session_factory() as session:
        availability = await get_availability(session, event.id)
        sold = (await session.execute(
            select(func.count(Ticket.id)).where(Ticket.event_id == event.id)
        )).scalar()
    assert availability.available == 0
    assert sold == 100


@pytest.mark.asyncio
async def test_three_buyers_two_tickets(session_factory, admin):
    """Exactly two succeed; the third is out of inventory."""
    event = await make_event(session_factory, admin, total_tickets=2)
    buyers = await _bulk_users(session_factory, 3)

    results = await asyncio.gather(*(_buy(session_factory, event.id, u) for u in buyers), return_exceptions=True)

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 2
    assert len(failures) == 1
    assert isinstance(failures[0], OutOfInventory)

    async with session_factory() as session:
        availability = await get_availability(session, event.id)
    assert availability.available == 0


@pytest.mark.asyncio
async def test_oversubscribed_event_never_oversells(session_factory, admin):
    """50 buyers, 10 tickets: sold + available always equals capacity."""
    event = await make_event(session_factory, admin, total_tickets=10)
    buyers = await _bulk_users(session_factory, 50)

    results = await asyncio.gather(*(_buy(session_factory, event.id, u) for u in buyers), return_exceptions=True)

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 10
    assert all(isinstance(f, OutOfInventory) for f in failures)

    async with session_factory() as session:
        availability = await get_availability(session, event.id)
        live = (await session.execute(
            select(func.count(Ticket.id)).where(
                Ticket.event_id == event.id, Ticket.status == TicketStatus.purchased.value,
            )
        )).scalar()
    assert live + availability.available == availability.total


@pytest.mark.asyncio
async def test_purchases_and_cancellations_interleaved(session_factory, admin):
    """Concurrent cancels and purchases keep the counter consistent."""
    event = await make_event(session_factory, admin, total_tickets=5)
    holders = await _bulk_users(session_factory, 5)
    tickets = [await _buy(session_factory, event.id, u) for u in holders]
    newcomers = await _bulk_users(session_factory, 5)

    async def cancel(ticket):
        async with session_factory() as session:
            return await cancel_ticket(session, ticket.id, ticket.user_id)

    await asyncio.gather(
        *(cancel(t) for t in tickets),
        *(_buy(session_factory, event.id, u) for u in newcomers),
        return_exceptions=True,
    )

    async with session_factory() as session:
        availability = await get_availability(session, event.id)
        live = (await session.execute(
            select(func.count(Ticket.id)).where(
                Ticket.event_id == event.id, Ticket.status == TicketStatus.purchased.value,
            )
        )).scalar()
    assert live + availability.available == 5
    assert 0 <= availability.available <= 5


@pytest.mark.asyncio
async def test_concurrent_http_purchases(client: AsyncClient, session_factory, admin):
    """The same race through the API: 8 requests for 5 tickets."""
    event = await make_event(session_factory, admin, total_tickets=5)
    buyers = [await make_user(session_factory) for _ in range(8)]

    responses = await asyncio.gather(*(
        client.post("/api/v1/tickets/", json={"event_id": event.id}, headers=headers_for(u))
        for u in buyers
    ))

    codes = sorted(r.status_code for r in responses)
    assert codes == [201] * 5 + [409] * 3
    assert all(r.json()["code"] == "OUT_OF_INVENTORY" for r in responses if r.status_code == 409)

    availability = await client.get(f"/api/v1/events/{event.id}/availability")
    assert availability.json()["available"] == 0
