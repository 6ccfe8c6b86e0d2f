"""
Event model with optional table and bus seating.

Key design decisions:
- `price` is stored in cents; 0 means a free event that is joined directly,
  anything else goes through Stripe checkout
- When `requires_table_signup` / `requires_bus_signup` are set, one row per
  physical seat is generated up front (see seating_service), and a ticket can
  only be issued while a seat row is free
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Index, CheckConstraint

from macsync.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    date = Column(DateTime(timezone=True), nullable=False)
    location = Column(String(255), nullable=True)
    capacity = Column(Integer, nullable=False)
    image_url = Column(String(500), nullable=True)
    price = Column(Integer, nullable=False, default=0)
    stripe_price_id = Column(String(255), nullable=True)
    stripe_product_id = Column(String(255), nullable=True)

    requires_table_signup = Column(Boolean, nullable=False, default=False)
    requires_bus_signup = Column(Boolean, nullable=False, default=False)
    # e.g. 10 tables x 8 seats
    table_count = Column(Integer, nullable=True)
    seats_per_table = Column(Integer, nullable=True)
    # e.g. 2 buses x 50 seats
    bus_count = Column(Integer, nullable=True)
    bus_capacity = Column(Integer, nullable=True)

    __table_args__ = (
        CheckConstraint("capacity >= 0", name="check_event_capacity_non_negative"),
        CheckConstraint("price >= 0", name="check_event_price_non_negative"),
        Index("ix_events_date", "date"),
    )

    @property
    def is_paid(self) -> bool:
        return (self.price or 0) > 0

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, name={self.name}, capacity={self.capacity})>"
