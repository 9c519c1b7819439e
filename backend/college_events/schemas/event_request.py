"""
Pydantic schemas for the event request pipeline.
"""

from datetime import date as date_type, time, datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from college_events.models.status import RequestStatus, ReviewDecision
from college_events.schemas.event import EventDetails, EventResponse


class EventRequestCreate(EventDetails):
    total_tickets: int = Field(..., gt=0, le=1_000_000)


class EventRequestReview(BaseModel):
    decision: ReviewDecision
    admin_notes: Optional[str] = Field(None, max_length=2000)


class EventRequestResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    image_url: Optional[str]
    date: date_type
    time_start: time
    time_end: time
    location: str
    category: str
    price: Decimal
    total_tickets: int
    requester_id: int
    status: RequestStatus
    admin_notes: Optional[str]
    reviewer_id: Optional[int]
    event_id: Optional[int]
    created_at: datetime

    model_config = {"from_attributes": True}


class EventRequestReviewResponse(BaseModel):
    request: EventRequestResponse
    event: Optional[EventResponse] = None
