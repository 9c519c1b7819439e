"""
PendingEvent: an event proposal awaiting review.

Status is write-once: pending -> approved | rejected, both terminal.
"""

from sqlalchemy import Column, Integer, String, Text, ForeignKey, CheckConstraint, Index

from college_events.db.base import Base, TimestampMixin
from college_events.models.event import EventDetailsMixin
from college_events.models.status import RequestStatus, EventCategory, sql_values


class PendingEvent(Base, EventDetailsMixin, TimestampMixin):
    __tablename__ = "pending_events"

    id = Column(Integer, primary_key=True, autoincrement=False)
    requester_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=RequestStatus.pending.value)
    admin_notes = Column(Text, nullable=True)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    # Set on approval
    event_id = Column(Integer, ForeignKey("events.id"), nullable=True, unique=True)

    __table_args__ = (
        CheckConstraint(f"status IN ({sql_values(RequestStatus)})", name="check_pending_event_status"),
        CheckConstraint("total_tickets > 0", name="check_requested_tickets_positive"),
        CheckConstraint("price >= 0", name="check_pending_price_non_negative"),
        CheckConstraint(f"category IN ({sql_values(EventCategory)})", name="check_pending_category"),
        Index("ix_pending_events_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<PendingEvent(id={self.id}, title={self.title}, status={self.status})>"
