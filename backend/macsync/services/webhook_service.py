"""
Stripe webhook processing.

Every verified event is written to `stripe_webhooks` before it is handled;
an event id that is already marked processed is acknowledged and skipped,
which makes Stripe's redeliveries harmless.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from macsync.models.payment import StripeWebhookEvent
from macsync.core.clock import utcnow
from macsync.core.metrics import record_webhook
from macsync.services import payment_gateway
from macsync.services.checkout_service import (
    complete_signup_from_reservation,
    release_reservation,
    ReservationError,
)
from macsync.core.logging import get_logger

logger = get_logger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
CHECKOUT_EXPIRED = "checkout.session.expired"


async def _log_event(db: AsyncSession, stripe_event_id: str, event_type: str) -> StripeWebhookEvent:
    result = await db.execute(
        select(StripeWebhookEvent).where(StripeWebhookEvent.stripe_event_id == stripe_event_id)
    )
    record = result.scalar_one_or_none()
    if record is None:
        record = StripeWebhookEvent(stripe_event_id=stripe_event_id, event_type=event_type, processed=False)
        db.add(record)
        await db.flush()
    return record


async def _handle_checkout_completed(db: AsyncSession, session: dict) -> Optional[str]:
    session_id = session.get("id")
    payment_data = await payment_gateway.retrieve_payment_details(session)
    try:
        await complete_signup_from_reservation(db, session_id, payment_data)
    except ReservationError as e:
        if e.already_signed_up:
            logger.info("checkout_completed_already_signed_up", session_id=session_id)
        else:
            logger.error("checkout_completion_failed", session_id=session_id, error=str(e))
            return str(e)
    return None


async def _handle_checkout_expired(db: AsyncSession, session: dict) -> Optional[str]:
    released = await release_reservation(db, session.get("id"))
    logger.info("checkout_session_expired", session_id=session.get("id"), released=released)
    return None


HANDLERS = {
    CHECKOUT_COMPLETED: _handle_checkout_completed,
    CHECKOUT_EXPIRED: _handle_checkout_expired,
}


async def process_event(db: AsyncSession, event: dict) -> str:
    """Handle one verified Stripe event. Returns the outcome recorded in metrics."""
    event_id = event.get("id", "")
    event_type = event.get("type", "unknown")
    record = await _log_event(db, event_id, event_type)

    if record.processed:
        logger.info("webhook_duplicate", stripe_event_id=event_id, event_type=event_type)
        record_webhook(event_type, "duplicate")
        return "duplicate"

    handler = HANDLERS.get(event_type)
    outcome = "processed"
    if handler is None:
        logger.info("webhook_ignored", stripe_event_id=event_id, event_type=event_type)
        outcome = "ignored"
    else:
        record.error = await handler(db, event.get("data", {}).get("object", {}))
        if record.error:
            outcome = "failed"

    record.processed = True
    record.processed_at = utcnow()
    await db.flush()

    record_webhook(event_type, outcome)
    logger.info("webhook_processed", stripe_event_id=event_id, event_type=event_type, outcome=outcome)
    return outcome
