"""
Event catalog endpoints with Redis caching on list operations.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from college_events.db.session import get_db
from college_events.models.status import EventCategory
from college_events.schemas.event import (
    EventCreate, EventUpdate, EventResponse, EventListResponse, AvailabilityResponse,
)
from college_events.services.event_service import (
    create_event, get_event_by_id, list_events, update_event, delete_event,
)
from college_events.services.identity_service import require_reviewer
from college_events.services.ticket_service import get_availability
from college_events.services.cache_service import (
    make_event_list_key, get_cached_events, set_cached_events, invalidate_event_cache,
)
from college_events.core.security import get_current_user_id
from college_events.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Create a bookable event directly. Reviewer roles only; the caller becomes organizer."""
    await require_reviewer(db, user_id)
    event = await create_event(db, event_data, user_id)
    await invalidate_event_cache()
    return event


@router.get("/", response_model=EventListResponse)
async def list_events_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    category: Optional[EventCategory] = Query(None),
    upcoming_only: bool = Query(False),
    available_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    """
    List events with pagination.
    Results are cached in Redis and invalidated on any catalog or inventory change.
    """
    category_value = category.value if category else None
    key = make_event_list_key(page, page_size, category_value, upcoming_only, available_only)

    cached = await get_cached_events(key)
    if cached:
        logger.info("events_list_cache_hit", page=page)
        cached["cached"] = True
        return EventListResponse(**cached)

    events, total = await list_events(db, page, page_size, category, upcoming_only, available_only)

    response_data = {
        "events": [EventResponse.model_validate(e).model_dump(mode="json") for e in events],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }
    await set_cached_events(key, response_data)

    return EventListResponse(**response_data)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(event_id: int, db: AsyncSession = Depends(get_db)):
    """Get a single event by ID. Not cached (needs real-time ticket counts)."""
    return await get_event_by_id(db, event_id)


@router.get("/{event_id}/availability", response_model=AvailabilityResponse)
async def get_availability_endpoint(event_id: int, db: AsyncSession = Depends(get_db)):
    availability = await get_availability(db, event_id)
    return AvailabilityResponse(
        event_id=availability.event_id,
        total=availability.total,
        available=availability.available,
    )


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    event_id: int,
    changes: EventUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Edit an event. Organizer or reviewer only."""
    event = await update_event(db, event_id, changes, user_id)
    await invalidate_event_cache()
    return event


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event_endpoint(
    event_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Delete an event that has no outstanding tickets."""
    await delete_event(db, event_id, user_id)
    await invalidate_event_cache()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
