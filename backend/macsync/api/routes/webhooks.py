"""
Stripe webhook receiver.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from macsync.db.session import get_db
from macsync.schemas.payment import WebhookAck
from macsync.services import payment_gateway, webhook_service
from macsync.core.config import get_settings
from macsync.core.metrics import record_webhook
from macsync.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()
router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/stripe", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    db: AsyncSession = Depends(get_db),
):
    """Verify the signature on the raw body, then hand the event to the webhook service."""
    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.error("webhook_rejected", reason="not_configured")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Webhook secret not configured")
    if not stripe_signature:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing Stripe-Signature header")

    payload = await request.body()
    try:
        event = payment_gateway.verify_webhook(payload, stripe_signature)
    except payment_gateway.WebhookVerificationError as e:
        record_webhook("unknown", "rejected")
        logger.warning("webhook_rejected", reason="signature", error=str(e))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook signature")

    await webhook_service.process_event(db, event)
    return WebhookAck(received=True)
