"""
Event catalog: create, edit, read, list and delete events.

Descriptive edits are last-writer-wins. Anything that touches the ticket
counts (a capacity change, deletion while tickets may be in flight) runs under
the same per-event inventory lock the ticket service uses.
"""

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from college_events.core.errors import ValidationError, NotFound, ConflictError, PermissionDenied
from college_events.core.locks import inventory_locks, event_key
from college_events.core.logging import get_logger
from college_events.models.event import Event, DESCRIPTIVE_FIELDS
from college_events.models.ticket import Ticket
from college_events.models.status import EventCategory, TicketStatus
from college_events.schemas.event import EventCreate, EventUpdate
from college_events.services.id_allocator import EntityCategory, get_allocator
from college_events.services.identity_service import ensure_user_exists, is_reviewer

logger = get_logger(__name__)

_REQUIRED_FIELDS = ("title", "date", "time_start", "time_end", "location", "category")
_NULLABLE_FIELDS = ("description", "image_url")


def validate_event_details(details: dict[str, Any], require_tickets: bool = False) -> None:
    """
    Shape checks shared by direct creation, edits and event requests.

    Past dates are accepted.
    """
    for field in _REQUIRED_FIELDS:
        if details.get(field) is None:
            raise ValidationError(f"{field} is required", field=field)

    for field in ("title", "location"):
        if not str(details[field]).strip():
            raise ValidationError(f"{field} must not be blank", field=field)

    try:
        EventCategory(details["category"])
    except ValueError:
        raise ValidationError(f"Unknown category '{details['category']}'", field="category")

    try:
        price = Decimal(str(details.get("price") if details.get("price") is not None else 0))
    except InvalidOperation:
        raise ValidationError("price must be a decimal amount", field="price")
    if not price.is_finite() or price < 0:
        raise ValidationError("price must not be negative", field="price")
    if price.as_tuple().exponent < -2:
        raise ValidationError("price has at most two decimal places", field="price")

    total = details.get("total_tickets")
    if total is None or total < 0:
        raise ValidationError("total_tickets must be zero or more", field="total_tickets")
    if require_tickets and total <= 0:
        raise ValidationError("total_tickets must be positive", field="total_tickets")

    if details["time_end"] <= details["time_start"]:
        raise ValidationError("time_end must be after time_start", field="time_end")


def new_event(details: dict[str, Any], organizer_id: int) -> Event:
    """Build (but do not add) an Event with full availability and a fresh id."""
    fields = {name: details.get(name) for name in DESCRIPTIVE_FIELDS}
    fields["category"] = EventCategory(fields["category"]).value
    fields["price"] = Decimal(str(fields["price"] if fields["price"] is not None else 0))
    return Event(
        id=get_allocator().next(EntityCategory.event),
        **fields,
        total_tickets=details["total_tickets"],
        available_tickets=details["total_tickets"],
        organizer_id=organizer_id,
        version=1,
    )


async def create_event(db: AsyncSession, event_data: EventCreate, organizer_id: int) -> Event:
    """Create a new event with every ticket available."""
    details = event_data.model_dump()
    validate_event_details(details)
    await ensure_user_exists(db, organizer_id)

    event = new_event(details, organizer_id)
    db.add(event)
    await db.commit()
    await db.refresh(event)

    logger.info("event_created", event_id=event.id, title=event.title, tickets=event.total_tickets)
    return event


async def _load_event(db: AsyncSession, event_id: int, include_deleted: bool = False) -> Event:
    result = await db.execute(
        select(Event)
        .where(Event.id == event_id)
        .execution_options(populate_existing=True)
    )
    event = result.scalar_one_or_none()
    if not event or (event.is_deleted and not include_deleted):
        raise NotFound("Event", event_id)
    return event


async def get_event_by_id(db: AsyncSession, event_id: int) -> Event:
    """Get a single live event by ID."""
    return await _load_event(db, event_id)


async def list_events(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    category: Optional[EventCategory] = None,
    upcoming_only: bool = False,
    available_only: bool = False,
) -> tuple[list[Event], int]:
    """
    List live events with pagination, ordered by date then start time.
    Uses the ix_events_date_start index for ordering and date filtering.
    """
    query = select(Event).where(Event.deleted_at.is_(None))

    if category is not None:
        query = query.where(Event.category == EventCategory(category).value)
    if upcoming_only:
        query = query.where(Event.date >= date.today())
    if available_only:
        query = query.where(Event.available_tickets > 0)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    events_query = (
        query
        .order_by(Event.date.asc(), Event.time_start.asc(), Event.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(events_query)
    events = list(result.scalars().all())

    return events, total


async def _check_can_manage(db: AsyncSession, event: Event, actor_id: int) -> None:
    if event.organizer_id == actor_id:
        return
    if not await is_reviewer(db, actor_id):
        raise PermissionDenied("Only the organizer or a reviewer may modify this event")


async def _sold_count(db: AsyncSession, event_id: int, status: TicketStatus) -> int:
    result = await db.execute(
        select(func.count(Ticket.id)).where(Ticket.event_id == event_id, Ticket.status == status.value)
    )
    return result.scalar() or 0


async def update_event(
    db: AsyncSession,
    event_id: int,
    changes: EventUpdate,
    actor_id: int,
) -> Event:
    """
    Edit an event. Descriptive fields are last-writer-wins.

    A new total_tickets is accepted only if it still covers every ticket
    already sold; available_tickets moves by the same delta.
    """
    updates = changes.model_dump(exclude_unset=True)
    for name, value in updates.items():
        if value is None and name not in _NULLABLE_FIELDS:
            raise ValidationError(f"{name} may not be null", field=name)

    async with inventory_locks.hold(event_key(event_id)):
        try:
            event = await _load_event(db, event_id)
            await _check_can_manage(db, event, actor_id)

            merged = {name: getattr(event, name) for name in DESCRIPTIVE_FIELDS}
            merged["total_tickets"] = event.total_tickets
            merged.update(updates)
            validate_event_details(merged)

            new_total = merged["total_tickets"]
            if new_total != event.total_tickets:
                sold = event.total_tickets - event.available_tickets
                if new_total < sold:
                    raise ConflictError(
                        f"Cannot reduce capacity to {new_total}: {sold} tickets already sold"
                    )
                event.available_tickets = event.available_tickets + (new_total - event.total_tickets)
                event.total_tickets = new_total
                event.version = event.version + 1

            for name in DESCRIPTIVE_FIELDS:
                if name in updates:
                    value = updates[name]
                    if name == "category":
                        value = EventCategory(value).value
                    setattr(event, name, value)

            await db.commit()
        except Exception:
            await db.rollback()
            raise

    await db.refresh(event)
    logger.info("event_updated", event_id=event.id, fields=sorted(updates), actor_id=actor_id)
    return event


async def delete_event(db: AsyncSession, event_id: int, actor_id: int) -> None:
    """
    Soft-delete an event. Rejected while any ticket is still `purchased`;
    used and cancelled tickets keep referencing the row.
    """
    async with inventory_locks.hold(event_key(event_id)):
        try:
            event = await _load_event(db, event_id)
            await _check_can_manage(db, event, actor_id)

            live = await _sold_count(db, event_id, TicketStatus.purchased)
            if live:
                raise ConflictError(f"Event {event_id} still has {live} outstanding tickets")

            event.deleted_at = datetime.now(timezone.utc)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    logger.info("event_deleted", event_id=event_id, actor_id=actor_id)
