"""
Tickets, physical seats and checkout seat holds.

A seat is taken when its `ticket_id` is set. While a Stripe checkout is open
the chosen seat is held by a SeatReservation until `expires_at`; live
reservations hide the seat from everybody else.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint, Index

from macsync.core.clock import utcnow
from macsync.db.base import Base, TimestampMixin


class Ticket(Base, TimestampMixin):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    checked_in = Column(Boolean, nullable=False, default=False)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    # Display labels, e.g. "Table 5, Seat 4" / "Bus 1 - Seat 5"
    table_seat = Column(String(50), nullable=True)
    bus_seat = Column(String(50), nullable=True)
    qr_code_data = Column(String(255), nullable=True, unique=True)

    __table_args__ = (
        UniqueConstraint("user_id", "event_id", name="uq_ticket_user_event"),
    )

    def __repr__(self) -> str:
        return f"<Ticket(id={self.id}, user={self.user_id}, event={self.event_id})>"


class TableSeat(Base, TimestampMixin):
    __tablename__ = "table_seats"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    table_number = Column(Integer, nullable=False)
    seat_number = Column(Integer, nullable=False)
    ticket_id = Column(Integer, ForeignKey("tickets.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        UniqueConstraint("event_id", "table_number", "seat_number", name="uq_table_seat"),
        Index("ix_table_seats_event_free", "event_id", "ticket_id"),
    )

    @property
    def label(self) -> str:
        return f"Table {self.table_number}, Seat {self.seat_number}"


class BusSeat(Base, TimestampMixin):
    __tablename__ = "bus_seats"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    bus_number = Column(Integer, nullable=False)
    seat_number = Column(Integer, nullable=False)
    ticket_id = Column(Integer, ForeignKey("tickets.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        UniqueConstraint("event_id", "bus_number", "seat_number", name="uq_bus_seat"),
        Index("ix_bus_seats_event_free", "event_id", "ticket_id"),
    )

    @property
    def label(self) -> str:
        return f"Bus {self.bus_number} - Seat {self.seat_number}"


class SeatReservation(Base):
    __tablename__ = "seat_reservations"

    id = Column(Integer, primary_key=True, index=True)
    stripe_session_id = Column(String(255), unique=True, nullable=False)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    table_seat_id = Column(Integer, ForeignKey("table_seats.id", ondelete="CASCADE"), nullable=True)
    bus_seat_id = Column(Integer, ForeignKey("bus_seats.id", ondelete="CASCADE"), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<SeatReservation(session={self.stripe_session_id}, event={self.event_id})>"
