"""
Team portal signups: bus routes, event tables and RSVPs.

Each signup row carries a status (pending/confirmed/waitlisted/cancelled) and,
while waitlisted, a waitlist position. A user has at most one signup per
route, per table and per event RSVP; signing up again updates that row.
"""

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, ForeignKey,
    UniqueConstraint, CheckConstraint, Index,
)

from macsync.db.base import Base, TimestampMixin

SIGNUP_STATUSES = ("pending", "confirmed", "waitlisted", "cancelled")
ACCESS_LEVELS = ("web_user", "web_admin", "both")

_STATUS_CHECK = "status IN ('pending', 'confirmed', 'waitlisted', 'cancelled')"


class EventAccess(Base, TimestampMixin):
    __tablename__ = "event_access"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    access_level = Column(String(20), nullable=False, default="web_user")

    __table_args__ = (
        UniqueConstraint("user_id", "event_id", name="uq_event_access_user_event"),
        CheckConstraint(
            "access_level IN ('web_user', 'web_admin', 'both')",
            name="check_event_access_level",
        ),
    )


class BusRoute(Base, TimestampMixin):
    __tablename__ = "bus_routes"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    capacity = Column(Integer, nullable=False, default=0)
    # 0 means the waitlist is unbounded
    waitlist_capacity = Column(Integer, nullable=False, default=0)
    departure_location = Column(String(255), nullable=True)
    departure_time = Column(DateTime(timezone=True), nullable=True)
    signup_deadline = Column(DateTime(timezone=True), nullable=True)


class BusSignup(Base, TimestampMixin):
    __tablename__ = "bus_signups"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    route_id = Column(Integer, ForeignKey("bus_routes.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    waitlist_position = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    acted_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        UniqueConstraint("route_id", "user_id", name="uq_bus_signup_route_user"),
        CheckConstraint(_STATUS_CHECK, name="check_bus_signup_status"),
    )


class EventTable(Base, TimestampMixin):
    __tablename__ = "event_tables"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    label = Column(String(120), nullable=False)
    capacity = Column(Integer, nullable=False, default=0)
    location = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    signup_deadline = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("event_id", "label", name="uq_event_table_label"),
    )


class TableSignup(Base, TimestampMixin):
    __tablename__ = "table_signups"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    table_id = Column(Integer, ForeignKey("event_tables.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    group_name = Column(String(255), nullable=True)
    seats_requested = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default="pending")
    waitlist_position = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    acted_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        UniqueConstraint("table_id", "user_id", name="uq_table_signup_table_user"),
        CheckConstraint(_STATUS_CHECK, name="check_table_signup_status"),
        CheckConstraint("seats_requested > 0", name="check_table_signup_seats_positive"),
    )


class EventRsvp(Base, TimestampMixin):
    __tablename__ = "event_rsvps"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    waitlist_position = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    acted_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_rsvp_event_user"),
        CheckConstraint(_STATUS_CHECK, name="check_event_rsvp_status"),
        Index("ix_event_rsvps_event_status", "event_id", "status"),
    )
