"""Initial schema: users and roles, events with seating, tickets, payments,
webhook log and team portal signups.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SIGNUP_STATUS_CHECK = "status IN ('pending', 'confirmed', 'waitlisted', 'cancelled')"


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Users, roles, login codes
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False, server_default=""),
        sa.Column("first_name", sa.String(255), nullable=True),
        sa.Column("last_name", sa.String(255), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("phone_number", sa.String(50), nullable=True),
        sa.Column("program", sa.String(255), nullable=True),
        sa.Column("is_system_admin", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("description", sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_roles_id", "roles", ["id"])

    op.create_table(
        "user_roles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("assigned_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "role_id", name="uq_user_role"),
    )
    op.create_index("ix_user_roles_id", "user_roles", ["id"])
    op.create_index("ix_user_roles_user_id", "user_roles", ["user_id"])

    op.create_table(
        "verification_tokens",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("code_hash", sa.String(255), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_verification_tokens_id", "verification_tokens", ["id"])
    op.create_index("ix_verification_tokens_email", "verification_tokens", ["email"])

    # Events and physical seats
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("price", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("stripe_price_id", sa.String(255), nullable=True),
        sa.Column("stripe_product_id", sa.String(255), nullable=True),
        sa.Column("requires_table_signup", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("requires_bus_signup", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("table_count", sa.Integer(), nullable=True),
        sa.Column("seats_per_table", sa.Integer(), nullable=True),
        sa.Column("bus_count", sa.Integer(), nullable=True),
        sa.Column("bus_capacity", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("capacity >= 0", name="check_event_capacity_non_negative"),
        sa.CheckConstraint("price >= 0", name="check_event_price_non_negative"),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_date", "events", ["date"])

    op.create_table(
        "tickets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("checked_in", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("table_seat", sa.String(50), nullable=True),
        sa.Column("bus_seat", sa.String(50), nullable=True),
        sa.Column("qr_code_data", sa.String(255), nullable=True, unique=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "event_id", name="uq_ticket_user_event"),
    )
    op.create_index("ix_tickets_id", "tickets", ["id"])
    op.create_index("ix_tickets_user_id", "tickets", ["user_id"])
    op.create_index("ix_tickets_event_id", "tickets", ["event_id"])

    op.create_table(
        "table_seats",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("table_number", sa.Integer(), nullable=False),
        sa.Column("seat_number", sa.Integer(), nullable=False),
        sa.Column("ticket_id", sa.Integer(), sa.ForeignKey("tickets.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("event_id", "table_number", "seat_number", name="uq_table_seat"),
    )
    op.create_index("ix_table_seats_id", "table_seats", ["id"])
    # First-free lookups filter on (event_id, ticket_id IS NULL)
    op.create_index("ix_table_seats_event_free", "table_seats", ["event_id", "ticket_id"])

    op.create_table(
        "bus_seats",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("bus_number", sa.Integer(), nullable=False),
        sa.Column("seat_number", sa.Integer(), nullable=False),
        sa.Column("ticket_id", sa.Integer(), sa.ForeignKey("tickets.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("event_id", "bus_number", "seat_number", name="uq_bus_seat"),
    )
    op.create_index("ix_bus_seats_id", "bus_seats", ["id"])
    op.create_index("ix_bus_seats_event_free", "bus_seats", ["event_id", "ticket_id"])

    op.create_table(
        "seat_reservations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("stripe_session_id", sa.String(255), nullable=False, unique=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("table_seat_id", sa.Integer(), sa.ForeignKey("table_seats.id", ondelete="CASCADE"), nullable=True),
        sa.Column("bus_seat_id", sa.Integer(), sa.ForeignKey("bus_seats.id", ondelete="CASCADE"), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_seat_reservations_id", "seat_reservations", ["id"])
    op.create_index("ix_seat_reservations_event_id", "seat_reservations", ["event_id"])

    # Payments and the webhook log
    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("ticket_id", sa.Integer(), sa.ForeignKey("tickets.id", ondelete="SET NULL"), nullable=True),
        sa.Column("stripe_session_id", sa.String(255), nullable=False),
        sa.Column("stripe_payment_intent_id", sa.String(255), nullable=True),
        sa.Column("stripe_charge_id", sa.String(255), nullable=True),
        sa.Column("amount_paid", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="usd"),
        sa.Column("status", sa.String(50), nullable=False, server_default="succeeded"),
        sa.Column("refunded_amount", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("payment_date", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("amount_paid >= 0", name="check_payment_amount_non_negative"),
        sa.CheckConstraint("refunded_amount >= 0", name="check_payment_refund_non_negative"),
        sa.CheckConstraint(
            "status IN ('succeeded', 'partially_refunded', 'refunded')",
            name="check_payment_status",
        ),
    )
    op.create_index("ix_payments_id", "payments", ["id"])
    op.create_index("ix_payments_user_id", "payments", ["user_id"])
    op.create_index("ix_payments_event_id", "payments", ["event_id"])

    op.create_table(
        "stripe_webhooks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("stripe_event_id", sa.String(255), nullable=False, unique=True),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("processed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error", sa.String(500), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_stripe_webhooks_id", "stripe_webhooks", ["id"])

    # Team portal
    op.create_table(
        "event_access",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("access_level", sa.String(20), nullable=False, server_default="web_user"),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "event_id", name="uq_event_access_user_event"),
        sa.CheckConstraint("access_level IN ('web_user', 'web_admin', 'both')", name="check_event_access_level"),
    )
    op.create_index("ix_event_access_id", "event_access", ["id"])

    op.create_table(
        "bus_routes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("waitlist_capacity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("departure_location", sa.String(255), nullable=True),
        sa.Column("departure_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("signup_deadline", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_bus_routes_id", "bus_routes", ["id"])
    op.create_index("ix_bus_routes_event_id", "bus_routes", ["event_id"])

    op.create_table(
        "bus_signups",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("route_id", sa.Integer(), sa.ForeignKey("bus_routes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("waitlist_position", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("acted_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("route_id", "user_id", name="uq_bus_signup_route_user"),
        sa.CheckConstraint(SIGNUP_STATUS_CHECK, name="check_bus_signup_status"),
    )
    op.create_index("ix_bus_signups_id", "bus_signups", ["id"])
    op.create_index("ix_bus_signups_event_id", "bus_signups", ["event_id"])
    op.create_index("ix_bus_signups_route_id", "bus_signups", ["route_id"])

    op.create_table(
        "event_tables",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("label", sa.String(120), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("signup_deadline", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("event_id", "label", name="uq_event_table_label"),
    )
    op.create_index("ix_event_tables_id", "event_tables", ["id"])
    op.create_index("ix_event_tables_event_id", "event_tables", ["event_id"])

    op.create_table(
        "table_signups",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("table_id", sa.Integer(), sa.ForeignKey("event_tables.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("group_name", sa.String(255), nullable=True),
        sa.Column("seats_requested", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("waitlist_position", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("acted_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("table_id", "user_id", name="uq_table_signup_table_user"),
        sa.CheckConstraint(SIGNUP_STATUS_CHECK, name="check_table_signup_status"),
        sa.CheckConstraint("seats_requested > 0", name="check_table_signup_seats_positive"),
    )
    op.create_index("ix_table_signups_id", "table_signups", ["id"])
    op.create_index("ix_table_signups_event_id", "table_signups", ["event_id"])
    op.create_index("ix_table_signups_table_id", "table_signups", ["table_id"])

    op.create_table(
        "event_rsvps",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("waitlist_position", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("acted_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("event_id", "user_id", name="uq_event_rsvp_event_user"),
        sa.CheckConstraint(SIGNUP_STATUS_CHECK, name="check_event_rsvp_status"),
    )
    op.create_index("ix_event_rsvps_id", "event_rsvps", ["id"])
    op.create_index("ix_event_rsvps_event_status", "event_rsvps", ["event_id", "status"])


def downgrade() -> None:
    for table in (
        "event_rsvps",
        "table_signups",
        "event_tables",
        "bus_signups",
        "bus_routes",
        "event_access",
        "stripe_webhooks",
        "payments",
        "seat_reservations",
        "bus_seats",
        "table_seats",
        "tickets",
        "events",
        "verification_tokens",
        "user_roles",
        "roles",
        "users",
    ):
        op.drop_table(table)
