"""
Event request endpoints: submit a proposal, list/read proposals, review one.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from college_events.db.session import get_db
from college_events.core.errors import NotFound
from college_events.core.security import get_current_user_id
from college_events.models.status import RequestStatus
from college_events.schemas.event import EventResponse
from college_events.schemas.event_request import (
    EventRequestCreate, EventRequestReview, EventRequestResponse, EventRequestReviewResponse,
)
from college_events.services.event_request_service import (
    submit_event_request, review_event_request, get_event_request, list_event_requests,
)
from college_events.services.identity_service import is_reviewer
from college_events.services.cache_service import invalidate_event_cache

router = APIRouter(prefix="/event-requests", tags=["Event Requests"])


@router.post("/", response_model=EventRequestResponse, status_code=status.HTTP_201_CREATED)
async def submit_event_request_endpoint(
    request_data: EventRequestCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Propose a new event. It stays `pending` until a reviewer acts on it."""
    return await submit_event_request(db, user_id, request_data)


@router.get("/", response_model=list[EventRequestResponse])
async def list_event_requests_endpoint(
    request_status: Optional[RequestStatus] = Query(None, alias="status"),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Reviewers see every request; everyone else sees their own."""
    requester_id = None if await is_reviewer(db, user_id) else user_id
    return await list_event_requests(db, status=request_status, requester_id=requester_id)


@router.get("/{request_id}", response_model=EventRequestResponse)
async def get_event_request_endpoint(
    request_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    request = await get_event_request(db, request_id)
    if request.requester_id != user_id and not await is_reviewer(db, user_id):
        raise NotFound("Event request", request_id)
    return request


@router.post("/{request_id}/review", response_model=EventRequestReviewResponse)
async def review_event_request_endpoint(
    request_id: int,
    review: EventRequestReview,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Approve (creates the event) or reject a pending request. Reviewer roles only."""
    request, event = await review_event_request(
        db, request_id, review.decision, user_id, review.admin_notes,
    )
    if event is not None:
        await invalidate_event_cache()
    return EventRequestReviewResponse(
        request=EventRequestResponse.model_validate(request),
        event=EventResponse.model_validate(event) if event is not None else None,
    )
