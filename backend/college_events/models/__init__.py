from college_events.models.user import User
from college_events.models.event import Event
from college_events.models.pending_event import PendingEvent
from college_events.models.ticket import Ticket

__all__ = ["User", "Event", "PendingEvent", "Ticket"]
