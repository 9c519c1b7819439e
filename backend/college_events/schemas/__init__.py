from college_events.schemas.user import UserCreate, UserResponse, UserLogin, Token
from college_events.schemas.event import (
    EventCreate, EventUpdate, EventResponse, EventListResponse, AvailabilityResponse,
)
from college_events.schemas.event_request import (
    EventRequestCreate, EventRequestReview, EventRequestResponse, EventRequestReviewResponse,
)
from college_events.schemas.ticket import TicketPurchase, TicketResponse, TicketActionResponse

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "EventCreate", "EventUpdate", "EventResponse", "EventListResponse", "AvailabilityResponse",
    "EventRequestCreate", "EventRequestReview", "EventRequestResponse", "EventRequestReviewResponse",
    "TicketPurchase", "TicketResponse", "TicketActionResponse",
]
