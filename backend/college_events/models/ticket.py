"""
Ticket model: one row per inventory unit consumed from an event.

Key design decisions:
- `ticket_code` is unique across all tickets for the lifetime of the system
- Status is never deleted, only moved: purchased -> used | cancelled
- No (user, event) uniqueness: a user may hold several tickets for one event
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint

from college_events.db.base import Base
from college_events.models.status import TicketStatus, sql_values


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, autoincrement=False)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    ticket_code = Column(String(50), nullable=False, unique=True)
    status = Column(String(20), nullable=False, default=TicketStatus.purchased.value)
    purchase_date = Column(DateTime(timezone=True), nullable=False)
    status_changed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(f"status IN ({sql_values(TicketStatus)})", name="check_ticket_status"),
    )

    def __repr__(self) -> str:
        return f"<Ticket(id={self.id}, code={self.ticket_code}, event={self.event_id}, status={self.status})>"
