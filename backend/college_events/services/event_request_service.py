"""
Event request pipeline: non-privileged users propose events, reviewers
approve or reject them.

State machine per request (college_events.models.status.REQUEST_TRANSITIONS):

    pending --approve--> approved   (terminal, creates the Event)
    pending --reject---> rejected   (terminal, stores admin_notes)

Reviews of one request are serialized by a per-request lock, and the status
flip itself is a guarded UPDATE (WHERE status = 'pending'). On approval the
flip and the new Event are committed in one transaction, so nobody can see
an approved request without its event, or the event without the approval.
"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from college_events.core.config import get_settings
from college_events.core.errors import NotFound, InvalidStateTransition
from college_events.core.locks import inventory_locks, event_request_key
from college_events.core.logging import get_logger
from college_events.core.metrics import record_review
from college_events.models.event import Event, DESCRIPTIVE_FIELDS
from college_events.models.pending_event import PendingEvent
from college_events.models.status import (
    EventCategory, RequestStatus, ReviewDecision, REQUEST_TRANSITIONS, can_transition,
)
from college_events.schemas.event_request import EventRequestCreate
from college_events.services.event_service import validate_event_details, new_event
from college_events.services.id_allocator import EntityCategory, get_allocator
from college_events.services.identity_service import ensure_user_exists, require_reviewer

logger = get_logger(__name__)
settings = get_settings()

_DECISION_TARGET = {
    ReviewDecision.approve: RequestStatus.approved,
    ReviewDecision.reject: RequestStatus.rejected,
}


async def submit_event_request(
    db: AsyncSession,
    requester_id: int,
    request_data: EventRequestCreate,
) -> PendingEvent:
    """Record a new proposal in the `pending` state."""
    details = request_data.model_dump()
    validate_event_details(details, require_tickets=True)
    await ensure_user_exists(db, requester_id)

    request = PendingEvent(
        id=get_allocator().next(EntityCategory.pending_event),
        title=details["title"],
        description=details.get("description"),
        image_url=details.get("image_url"),
        date=details["date"],
        time_start=details["time_start"],
        time_end=details["time_end"],
        location=details["location"],
        category=EventCategory(details["category"]).value,
        price=details["price"],
        total_tickets=details["total_tickets"],
        requester_id=requester_id,
        status=RequestStatus.pending.value,
    )
    db.add(request)
    await db.commit()
    await db.refresh(request)

    logger.info(
        "event_request_submitted",
        request_id=request.id,
        requester_id=requester_id,
        title=request.title,
        tickets=request.total_tickets,
    )
    return request


async def _load_request(db: AsyncSession, request_id: int) -> PendingEvent:
    result = await db.execute(
        select(PendingEvent)
        .where(PendingEvent.id == request_id)
        .execution_options(populate_existing=True)
    )
    request = result.scalar_one_or_none()
    if not request:
        raise NotFound("Event request", request_id)
    return request


async def _close_request(
    db: AsyncSession,
    request_id: int,
    target: RequestStatus,
    **values,
) -> None:
    """Guarded pending -> target flip; a lost race reports the winner's status."""
    result = await db.execute(
        update(PendingEvent)
        .where(PendingEvent.id == request_id, PendingEvent.status == RequestStatus.pending.value)
        .values(status=target.value, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        current = await _load_request(db, request_id)
        raise InvalidStateTransition("Event request", request_id, current.status, target.value)


def _organizer_for(request: PendingEvent, reviewer_id: int) -> int:
    if settings.APPROVED_EVENT_ORGANIZER == "requester":
        return request.requester_id
    return reviewer_id


async def review_event_request(
    db: AsyncSession,
    request_id: int,
    decision: ReviewDecision,
    reviewer_id: int,
    admin_notes: Optional[str] = None,
) -> tuple[PendingEvent, Optional[Event]]:
    """
    Approve or reject a pending request.

    Raises NotFound (unknown request), PermissionDenied (reviewer lacks a
    reviewer role), InvalidStateTransition (request already resolved).
    Returns the updated request and, on approval, the created event.
    """
    decision = ReviewDecision(decision)
    target = _DECISION_TARGET[decision]
    event: Optional[Event] = None

    async with inventory_locks.hold(event_request_key(request_id)):
        try:
            request = await _load_request(db, request_id)
            await require_reviewer(db, reviewer_id)

            if not can_transition(REQUEST_TRANSITIONS, RequestStatus(request.status), target):
                raise InvalidStateTransition("Event request", request_id, request.status, target.value)

            if decision is ReviewDecision.approve:
                details = {name: getattr(request, name) for name in (*DESCRIPTIVE_FIELDS, "total_tickets")}
                event = new_event(details, _organizer_for(request, reviewer_id))
                db.add(event)
                await db.flush()
                await _close_request(
                    db, request_id, target,
                    reviewer_id=reviewer_id, admin_notes=admin_notes, event_id=event.id,
                )
            else:
                await _close_request(
                    db, request_id, target,
                    reviewer_id=reviewer_id, admin_notes=admin_notes,
                )

            await db.commit()
        except Exception:
            await db.rollback()
            raise

    request = await _load_request(db, request_id)
    if event is not None:
        await db.refresh(event)

    record_review(decision.value)
    logger.info(
        f"event_request_{target.value}",
        request_id=request_id,
        reviewer_id=reviewer_id,
        event_id=event.id if event is not None else None,
    )
    return request, event


async def get_event_request(db: AsyncSession, request_id: int) -> PendingEvent:
    return await _load_request(db, request_id)


async def list_event_requests(
    db: AsyncSession,
    status: Optional[RequestStatus] = None,
    requester_id: Optional[int] = None,
) -> list[PendingEvent]:
    """List requests, oldest first; optionally filtered by status and requester."""
    query = select(PendingEvent)
    if status is not None:
        query = query.where(PendingEvent.status == RequestStatus(status).value)
    if requester_id is not None:
        query = query.where(PendingEvent.requester_id == requester_id)
    result = await db.execute(query.order_by(PendingEvent.created_at.asc(), PendingEvent.id.asc()))
    return list(result.scalars().all())
