"""
Ticket endpoints backed by the concurrency-safe booking engine.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from college_events.db.session import get_db
from college_events.core.errors import NotFound
from college_events.core.security import get_current_user_id
from college_events.models.status import TicketStatus
from college_events.schemas.ticket import TicketPurchase, TicketResponse, TicketActionResponse
from college_events.services.ticket_service import (
    purchase_ticket, cancel_ticket, redeem_ticket,
    get_ticket, get_ticket_by_code, get_user_tickets, can_view_ticket,
)
from college_events.services.identity_service import require_reviewer
from college_events.services.cache_service import invalidate_event_cache

router = APIRouter(prefix="/tickets", tags=["Tickets"])


@router.post("/", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def purchase_ticket_endpoint(
    purchase: TicketPurchase,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Buy one ticket for an event.

    Purchases of the same event are serialized; a sold-out event answers
    409 with code OUT_OF_INVENTORY.
    """
    ticket = await purchase_ticket(db, purchase.event_id, user_id)
    await invalidate_event_cache()
    return ticket


@router.get("/", response_model=list[TicketResponse])
async def list_my_tickets(
    ticket_status: Optional[TicketStatus] = Query(None, alias="status"),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Get all tickets held by the authenticated user."""
    return await get_user_tickets(db, user_id, ticket_status)


@router.get("/code/{ticket_code}", response_model=TicketResponse)
async def get_ticket_by_code_endpoint(
    ticket_code: str,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Door lookup by printed code. Reviewer roles only."""
    await require_reviewer(db, user_id)
    return await get_ticket_by_code(db, ticket_code)


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket_endpoint(
    ticket_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    ticket = await get_ticket(db, ticket_id)
    if not await can_view_ticket(db, ticket, user_id):
        raise NotFound("Ticket", ticket_id)
    return ticket


@router.post("/{ticket_id}/cancel", response_model=TicketActionResponse)
async def cancel_ticket_endpoint(
    ticket_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a purchased ticket and return its seat to the event."""
    ticket, remaining = await cancel_ticket(db, ticket_id, user_id)
    await invalidate_event_cache()
    return TicketActionResponse(
        message="Ticket cancelled",
        ticket=TicketResponse.model_validate(ticket),
        available_tickets=remaining,
    )


@router.post("/{ticket_id}/redeem", response_model=TicketActionResponse)
async def redeem_ticket_endpoint(
    ticket_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Mark a ticket as used at the door. Reviewer roles only."""
    await require_reviewer(db, user_id)
    ticket = await redeem_ticket(db, ticket_id)
    return TicketActionResponse(message="Ticket redeemed", ticket=TicketResponse.model_validate(ticket))
