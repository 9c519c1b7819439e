"""
Ticket booking engine: purchase, cancel and redeem tickets against an
event's fixed inventory.

CONCURRENCY STRATEGY: Per-Event Lock + Guarded UPDATE
=====================================================
Problem:
  Many users race for the last tickets of the same event. A plain
  read-check-write lets two of them both see available_tickets=1.

Solution:
  1. Acquire the event's inventory lock (college_events.core.locks) before
     the session issues any statement. Purchases and cancellations of the
     same event are strictly serialized; different events never wait on
     each other.
  2. Decrement in SQL, guarded by the precondition:
       UPDATE events SET available_tickets = available_tickets - 1,
                         version = version + 1
       WHERE id = :event_id AND deleted_at IS NULL AND available_tickets > 0
     rowcount == 0 means sold out. The CHECK constraints
     (0 <= available_tickets <= total_tickets) are the last safety net.
  3. Insert the ticket inside a SAVEPOINT in the same transaction, then
     commit once: the decrement and the ticket row become visible together
     or not at all.

Ticket codes:
  <PREFIX>-<event id>-<ticket id>-<4 hex>. The ticket id comes from the
  identifier allocator, so codes are unique by construction; the random
  suffix only makes them hard to guess. A unique-constraint collision on
  insert still rolls back to the savepoint and retries with a fresh id.

Redemption touches no inventory and needs no lock: the status flip is a
single guarded UPDATE (WHERE status = 'purchased'), which also settles a
race against a concurrent cancellation.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from college_events.core.config import get_settings
from college_events.core.errors import (
    DomainError, NotFound, InvalidStateTransition, OutOfInventory, ConflictError, PermissionDenied,
)
from college_events.core.locks import inventory_locks, event_key
from college_events.core.logging import get_logger
from college_events.core.metrics import record_ticket_operation, ticket_code_retries
from college_events.models.event import Event
from college_events.models.ticket import Ticket
from college_events.models.status import TicketStatus, TICKET_TRANSITIONS, can_transition
from college_events.services.id_allocator import EntityCategory, get_allocator
from college_events.services.identity_service import ensure_user_exists, is_reviewer

logger = get_logger(__name__)
settings = get_settings()


@dataclass(frozen=True)
class Availability:
    event_id: int
    total: int
    available: int


def generate_ticket_code(event_id: int, ticket_id: int) -> str:
    suffix = secrets.token_hex(2).upper()
    return f"{settings.TICKET_CODE_PREFIX}-{event_id:05d}-{ticket_id:08d}-{suffix}"


def _outcome(exc: Exception) -> str:
    if isinstance(exc, OutOfInventory):
        return "sold_out"
    if isinstance(exc, DomainError):
        return "rejected"
    return "error"


async def _is_ticket_clash(db: AsyncSession, ticket_id: int, ticket_code: str) -> bool:
    """True if the failed insert collided with an existing ticket id or code."""
    result = await db.execute(
        select(Ticket.id).where(or_(Ticket.id == ticket_id, Ticket.ticket_code == ticket_code))
    )
    return result.first() is not None


async def _insert_ticket(db: AsyncSession, event_id: int, user_id: int) -> Ticket:
    """
    Insert a purchased ticket, retrying on a ticket_code/id collision.
    Any other integrity failure propagates unchanged.
    """
    allocator = get_allocator()

    for attempt in range(1, settings.TICKET_CODE_MAX_ATTEMPTS + 1):
        ticket_id = allocator.next(EntityCategory.ticket)
        ticket_code = generate_ticket_code(event_id, ticket_id)
        ticket = Ticket(
            id=ticket_id,
            event_id=event_id,
            user_id=user_id,
            ticket_code=ticket_code,
            status=TicketStatus.purchased.value,
            purchase_date=datetime.now(timezone.utc),
            status_changed_at=None,
        )
        try:
            async with db.begin_nested():
                db.add(ticket)
                await db.flush()
        except IntegrityError:
            if not await _is_ticket_clash(db, ticket_id, ticket_code):
                raise
            ticket_code_retries.inc()
            logger.warning(
                "ticket_code_collision",
                event_id=event_id,
                ticket_id=ticket_id,
                attempt=attempt,
            )
            continue
        return ticket

    raise RuntimeError(
        f"Could not issue a unique ticket code after {settings.TICKET_CODE_MAX_ATTEMPTS} attempts"
    )


async def _remaining(db: AsyncSession, event_id: int) -> int:
    result = await db.execute(select(Event.available_tickets).where(Event.id == event_id))
    return result.scalar_one()


async def purchase_ticket(db: AsyncSession, event_id: int, user_id: int) -> Ticket:
    """
    Take one unit of the event's inventory and issue a ticket for it.

    Raises NotFound (event or user), OutOfInventory (nothing left).
    """
    async with inventory_locks.hold(event_key(event_id)):
        try:
            await ensure_user_exists(db, user_id)

            found = await db.execute(
                select(Event.id).where(Event.id == event_id, Event.deleted_at.is_(None))
            )
            if found.scalar_one_or_none() is None:
                raise NotFound("Event", event_id)

            decremented = await db.execute(
                update(Event)
                .where(
                    Event.id == event_id,
                    Event.deleted_at.is_(None),
                    Event.available_tickets > 0,
                )
                .values(
                    available_tickets=Event.available_tickets - 1,
                    version=Event.version + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if decremented.rowcount != 1:
                raise OutOfInventory(event_id)

            ticket = await _insert_ticket(db, event_id, user_id)
            remaining = await _remaining(db, event_id)
            await db.commit()
        except Exception as exc:
            await db.rollback()
            record_ticket_operation("purchase", _outcome(exc))
            if isinstance(exc, OutOfInventory):
                logger.warning("ticket_sold_out", event_id=event_id, user_id=user_id)
            raise

    record_ticket_operation("purchase", "success")
    logger.info(
        "ticket_purchased",
        ticket_id=ticket.id,
        ticket_code=ticket.ticket_code,
        event_id=event_id,
        user_id=user_id,
        remaining=remaining,
    )
    return ticket


async def _load_ticket(db: AsyncSession, ticket_id: int) -> Ticket:
    result = await db.execute(
        select(Ticket)
        .where(Ticket.id == ticket_id)
        .execution_options(populate_existing=True)
    )
    ticket = result.scalar_one_or_none()
    if not ticket:
        raise NotFound("Ticket", ticket_id)
    return ticket


def _check_transition(ticket: Ticket, target: TicketStatus) -> None:
    if not can_transition(TICKET_TRANSITIONS, TicketStatus(ticket.status), target):
        raise InvalidStateTransition("Ticket", ticket.id, ticket.status, target.value)


async def _flip_status(db: AsyncSession, ticket_id: int, target: TicketStatus) -> bool:
    """Move a purchased ticket to `target`. False if it was no longer purchased."""
    result = await db.execute(
        update(Ticket)
        .where(Ticket.id == ticket_id, Ticket.status == TicketStatus.purchased.value)
        .values(status=target.value, status_changed_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def cancel_ticket(db: AsyncSession, ticket_id: int, actor_id: int) -> tuple[Ticket, int]:
    """
    Cancel a purchased ticket and return its unit to the event, atomically.

    Only the ticket holder or a reviewer may cancel. Cancelling a used or
    already cancelled ticket raises InvalidStateTransition.
    Returns the ticket and the event's new available_tickets.
    """
    # event_id never changes, so it is safe to read before taking the lock
    try:
        event_id = (await _load_ticket(db, ticket_id)).event_id
    finally:
        # no open transaction while queueing on the lock
        await db.rollback()

    async with inventory_locks.hold(event_key(event_id)):
        try:
            ticket = await _load_ticket(db, ticket_id)
            if ticket.user_id != actor_id and not await is_reviewer(db, actor_id):
                raise PermissionDenied("Only the ticket holder or a reviewer may cancel this ticket")
            _check_transition(ticket, TicketStatus.cancelled)

            if not await _flip_status(db, ticket_id, TicketStatus.cancelled):
                current = await _load_ticket(db, ticket_id)
                raise InvalidStateTransition("Ticket", ticket_id, current.status, TicketStatus.cancelled.value)

            restored = await db.execute(
                update(Event)
                .where(Event.id == event_id, Event.available_tickets < Event.total_tickets)
                .values(
                    available_tickets=Event.available_tickets + 1,
                    version=Event.version + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if restored.rowcount != 1:
                logger.error("inventory_already_full", event_id=event_id, ticket_id=ticket_id)
                raise ConflictError(f"Event {event_id} inventory is already full")

            ticket = await _load_ticket(db, ticket_id)
            remaining = await _remaining(db, event_id)
            await db.commit()
        except Exception as exc:
            await db.rollback()
            record_ticket_operation("cancel", _outcome(exc))
            raise

    record_ticket_operation("cancel", "success")
    logger.info(
        "ticket_cancelled",
        ticket_id=ticket_id,
        event_id=event_id,
        actor_id=actor_id,
        remaining=remaining,
    )
    return ticket, remaining


async def redeem_ticket(db: AsyncSession, ticket_id: int) -> Ticket:
    """
    Mark a purchased ticket as used. Inventory is not touched: the unit was
    consumed at purchase time.
    """
    try:
        if not await _flip_status(db, ticket_id, TicketStatus.used):
            ticket = await _load_ticket(db, ticket_id)
            raise InvalidStateTransition("Ticket", ticket_id, ticket.status, TicketStatus.used.value)
        ticket = await _load_ticket(db, ticket_id)
        await db.commit()
    except Exception as exc:
        await db.rollback()
        record_ticket_operation("redeem", _outcome(exc))
        raise

    record_ticket_operation("redeem", "success")
    logger.info("ticket_redeemed", ticket_id=ticket_id, event_id=ticket.event_id)
    return ticket


async def get_availability(db: AsyncSession, event_id: int) -> Availability:
    """Both counters come from one committed row version."""
    result = await db.execute(
        select(Event.total_tickets, Event.available_tickets)
        .where(Event.id == event_id, Event.deleted_at.is_(None))
    )
    row = result.one_or_none()
    if row is None:
        raise NotFound("Event", event_id)
    return Availability(event_id=event_id, total=row.total_tickets, available=row.available_tickets)


async def get_ticket(db: AsyncSession, ticket_id: int) -> Ticket:
    return await _load_ticket(db, ticket_id)


async def get_ticket_by_code(db: AsyncSession, ticket_code: str) -> Ticket:
    result = await db.execute(select(Ticket).where(Ticket.ticket_code == ticket_code))
    ticket = result.scalar_one_or_none()
    if not ticket:
        raise NotFound("Ticket", ticket_code)
    return ticket


async def get_user_tickets(
    db: AsyncSession,
    user_id: int,
    status: Optional[TicketStatus] = None,
) -> list[Ticket]:
    """Get all tickets held by a user, newest first."""
    query = select(Ticket).where(Ticket.user_id == user_id)
    if status is not None:
        query = query.where(Ticket.status == TicketStatus(status).value)
    result = await db.execute(query.order_by(Ticket.purchase_date.desc(), Ticket.id.desc()))
    return list(result.scalars().all())


async def can_view_ticket(db: AsyncSession, ticket: Ticket, user_id: int) -> bool:
    return ticket.user_id == user_id or await is_reviewer(db, user_id)
