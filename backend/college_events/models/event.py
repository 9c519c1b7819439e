"""
Event model with ticket inventory tracking.

Key design decisions:
- `available_tickets` is denormalized (avoids COUNT over tickets on every read)
  and only ever changed by the ticket service under the event's inventory lock
- `version` is bumped on every inventory mutation
- `deleted_at` marks soft deletion; tickets keep pointing at the row
- Index on (`date`, `time_start`) for the catalog ordering
"""

from sqlalchemy import (
    Column, Integer, String, Text, Date, Time, Numeric, DateTime, ForeignKey, Index, CheckConstraint,
)

from college_events.db.base import Base, TimestampMixin
from college_events.models.status import EventCategory, sql_values

# Fields copied verbatim from an approved request into the new event
DESCRIPTIVE_FIELDS = (
    "title",
    "description",
    "image_url",
    "date",
    "time_start",
    "time_end",
    "location",
    "category",
    "price",
)


class EventDetailsMixin:
    """Descriptive columns shared by events and event requests."""

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String(255), nullable=True)
    date = Column(Date, nullable=False)
    time_start = Column(Time, nullable=False)
    time_end = Column(Time, nullable=False)
    location = Column(String(255), nullable=False)
    category = Column(String(50), nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    total_tickets = Column(Integer, nullable=False, default=0)


class Event(Base, EventDetailsMixin, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=False)
    available_tickets = Column(Integer, nullable=False, default=0)
    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    version = Column(Integer, nullable=False, default=1)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("available_tickets >= 0", name="check_available_tickets_non_negative"),
        CheckConstraint("total_tickets >= 0", name="check_total_tickets_non_negative"),
        CheckConstraint("available_tickets <= total_tickets", name="check_available_lte_total"),
        CheckConstraint("price >= 0", name="check_event_price_non_negative"),
        CheckConstraint(f"category IN ({sql_values(EventCategory)})", name="check_event_category"),
        Index("ix_events_date_start", "date", "time_start"),
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, available={self.available_tickets}/{self.total_tickets})>"
