"""
Pydantic schemas for ticket-related request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from college_events.models.status import TicketStatus


class TicketPurchase(BaseModel):
    event_id: int


class TicketResponse(BaseModel):
    id: int
    event_id: int
    user_id: int
    ticket_code: str
    status: TicketStatus
    purchase_date: datetime
    status_changed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TicketActionResponse(BaseModel):
    message: str
    ticket: TicketResponse
    available_tickets: Optional[int] = None
