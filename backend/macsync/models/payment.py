"""
Payments recorded from completed Stripe checkouts, and the webhook log.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, CheckConstraint

from macsync.db.base import Base, TimestampMixin

PAYMENT_STATUSES = ("succeeded", "partially_refunded", "refunded")


class Payment(Base, TimestampMixin):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    ticket_id = Column(Integer, ForeignKey("tickets.id", ondelete="SET NULL"), nullable=True)
    stripe_session_id = Column(String(255), nullable=False)
    stripe_payment_intent_id = Column(String(255), nullable=True)
    stripe_charge_id = Column(String(255), nullable=True)
    amount_paid = Column(Integer, nullable=False)  # cents
    currency = Column(String(3), nullable=False, default="usd")
    status = Column(String(50), nullable=False, default="succeeded")
    refunded_amount = Column(Integer, nullable=False, default=0)  # cents
    payment_date = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("amount_paid >= 0", name="check_payment_amount_non_negative"),
        CheckConstraint("refunded_amount >= 0", name="check_payment_refund_non_negative"),
        CheckConstraint(
            "status IN ('succeeded', 'partially_refunded', 'refunded')",
            name="check_payment_status",
        ),
    )

    @property
    def refundable_amount(self) -> int:
        return max(self.amount_paid - (self.refunded_amount or 0), 0)

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, user={self.user_id}, event={self.event_id}, status={self.status})>"


class StripeWebhookEvent(Base, TimestampMixin):
    __tablename__ = "stripe_webhooks"

    id = Column(Integer, primary_key=True, index=True)
    stripe_event_id = Column(String(255), unique=True, nullable=False)
    event_type = Column(String(100), nullable=False)
    processed = Column(Boolean, nullable=False, default=False)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    error = Column(String(500), nullable=True)
