"""
Closed value sets stored in string columns, plus the lifecycle tables for
the two entities that have one.

Only transitions listed in a table are legal; every terminal state maps to
an empty set.
"""

import enum


class UserRole(str, enum.Enum):
    admin = "admin"
    student = "student"
    faculty = "faculty"


class EventCategory(str, enum.Enum):
    academic = "academic"
    cultural = "cultural"
    sports = "sports"
    conferences = "conferences"
    festivals = "festivals"
    workshops = "workshops"
    competitions = "competitions"
    social = "social"


class RequestStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class ReviewDecision(str, enum.Enum):
    approve = "approve"
    reject = "reject"


class TicketStatus(str, enum.Enum):
    purchased = "purchased"
    used = "used"
    cancelled = "cancelled"


REQUEST_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.pending: frozenset({RequestStatus.approved, RequestStatus.rejected}),
    RequestStatus.approved: frozenset(),
    RequestStatus.rejected: frozenset(),
}

TICKET_TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
    TicketStatus.purchased: frozenset({TicketStatus.used, TicketStatus.cancelled}),
    TicketStatus.used: frozenset(),
    TicketStatus.cancelled: frozenset(),
}


def can_transition(table: dict, current: enum.Enum, target: enum.Enum) -> bool:
    return target in table[current]


def sql_values(enum_cls: type[enum.Enum]) -> str:
    """Render an enum as the value list of a SQL IN (...) check."""
    return ", ".join(f"'{member.value}'" for member in enum_cls)
