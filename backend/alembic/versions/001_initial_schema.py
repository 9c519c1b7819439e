"""Initial schema: users, events, pending_events, tickets with indexes and constraints.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

CATEGORIES = "'academic', 'cultural', 'sports', 'conferences', 'festivals', 'workshops', 'competitions', 'social'"


def _event_details() -> list:
    return [
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_url", sa.String(255), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time_start", sa.Time(), nullable=False),
        sa.Column("time_end", sa.Time(), nullable=False),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("total_tickets", sa.Integer(), nullable=False, server_default=sa.text("0")),
    ]


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Primary keys come from the application's identifier allocator
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(100), nullable=False),
        sa.Column("credential_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'student'")),
        *_timestamps(),
        sa.CheckConstraint("role IN ('admin', 'student', 'faculty')", name="check_user_role"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        *_event_details(),
        sa.Column("available_tickets", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("organizer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("available_tickets >= 0", name="check_available_tickets_non_negative"),
        sa.CheckConstraint("total_tickets >= 0", name="check_total_tickets_non_negative"),
        sa.CheckConstraint("available_tickets <= total_tickets", name="check_available_lte_total"),
        sa.CheckConstraint("price >= 0", name="check_event_price_non_negative"),
        sa.CheckConstraint(f"category IN ({CATEGORIES})", name="check_event_category"),
    )
    op.create_index("ix_events_organizer_id", "events", ["organizer_id"])
    # Catalog listings are ordered by date then start time
    op.create_index("ix_events_date_start", "events", ["date", "time_start"])

    op.create_table(
        "pending_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        *_event_details(),
        sa.Column("requester_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("reviewer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("event_id", name="uq_pending_events_event_id"),
        sa.CheckConstraint("status IN ('pending', 'approved', 'rejected')", name="check_pending_event_status"),
        sa.CheckConstraint("total_tickets > 0", name="check_requested_tickets_positive"),
        sa.CheckConstraint("price >= 0", name="check_pending_price_non_negative"),
        sa.CheckConstraint(f"category IN ({CATEGORIES})", name="check_pending_category"),
    )
    op.create_index("ix_pending_events_requester_id", "pending_events", ["requester_id"])
    # Review queue: "show me everything still pending"
    op.create_index("ix_pending_events_status", "pending_events", ["status"])

    op.create_table(
        "tickets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("ticket_code", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'purchased'")),
        sa.Column("purchase_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status_changed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("ticket_code", name="uq_tickets_ticket_code"),
        sa.CheckConstraint("status IN ('purchased', 'used', 'cancelled')", name="check_ticket_status"),
    )
    op.create_index("ix_tickets_event_id", "tickets", ["event_id"])
    op.create_index("ix_tickets_user_id", "tickets", ["user_id"])


def downgrade() -> None:
    op.drop_table("tickets")
    op.drop_table("pending_events")
    op.drop_table("events")
    op.drop_table("users")
