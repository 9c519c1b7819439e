"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import date as date_type, time, datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from college_events.models.status import EventCategory


class EventDetails(BaseModel):
    """Descriptive fields shared by direct creation and event requests."""

    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=255)
    date: date_type
    time_start: time
    time_end: time
    location: str = Field(..., min_length=1, max_length=255)
    category: EventCategory
    price: Decimal = Field(default=Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    total_tickets: int = Field(..., ge=0, le=1_000_000)


class EventCreate(EventDetails):
    pass


class EventUpdate(BaseModel):
    """Partial edit; unset fields are left untouched."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=255)
    date: Optional[date_type] = None
    time_start: Optional[time] = None
    time_end: Optional[time] = None
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[EventCategory] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    total_tickets: Optional[int] = Field(None, ge=0, le=1_000_000)


class EventResponse(BaseModel):
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
    available_tickets: int
    organizer_id: int
    created_at: datetime

    model_config = {"from_attributes": True}


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False


class AvailabilityResponse(BaseModel):
    event_id: int
    total: int
    available: int
