"""
Thin wrapper over the Stripe SDK.

The SDK is synchronous, so every call runs in the threadpool. Stripe failures
surface as 502, a missing secret key as 503. Webhook payloads are verified
against STRIPE_WEBHOOK_SECRET and returned as plain dicts.
"""

import json
from typing import Optional

import stripe
from fastapi import HTTPException, status
from starlette.concurrency import run_in_threadpool

from macsync.core.config import get_settings
from macsync.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


class WebhookVerificationError(Exception):
    """Raised when a webhook payload or its signature cannot be trusted."""


def _configure() -> None:
    if not settings.STRIPE_SECRET_KEY:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payments are not configured",
        )
    stripe.api_key = settings.STRIPE_SECRET_KEY


def _provider_error(action: str, error: stripe.StripeError) -> HTTPException:
    logger.error("stripe_error", action=action, error=str(error), code=getattr(error, "code", None))
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Payment provider error: {error.user_message or 'request failed'}",
    )


async def create_checkout_session(
    *,
    event_id: int,
    event_name: str,
    description: Optional[str],
    amount: int,
    user_id: int,
    customer_email: str,
    success_url: str,
    cancel_url: str,
) -> dict:
    """Create a hosted checkout session for one ticket. Returns {"id", "url"}."""
    _configure()
    product_data = {"name": event_name}
    if description:
        product_data["description"] = description[:500]

    try:
        session = await run_in_threadpool(
            stripe.checkout.Session.create,
            mode="payment",
            payment_method_types=["card"],
            line_items=[{
                "price_data": {
                    "currency": settings.STRIPE_CURRENCY,
                    "product_data": product_data,
                    "unit_amount": amount,
                },
                "quantity": 1,
            }],
            customer_email=customer_email,
            metadata={"event_id": str(event_id), "user_id": str(user_id)},
            success_url=success_url,
            cancel_url=cancel_url,
        )
    except stripe.StripeError as e:
        raise _provider_error("create_checkout_session", e)

    return {"id": session.id, "url": session.url}


async def retrieve_payment_details(session: dict) -> dict:
    """Payment intent, latest charge, amount and currency for a completed checkout session."""
    details = {
        "payment_intent_id": session.get("payment_intent"),
        "charge_id": None,
        "amount": session.get("amount_total") or 0,
        "currency": session.get("currency") or settings.STRIPE_CURRENCY,
    }
    if not details["payment_intent_id"]:
        return details

    _configure()
    try:
        intent = await run_in_threadpool(
            stripe.PaymentIntent.retrieve,
            details["payment_intent_id"],
            expand=["latest_charge"],
        )
    except stripe.StripeError as e:
        raise _provider_error("retrieve_payment_intent", e)

    charge = intent.latest_charge
    if charge is not None:
        details["charge_id"] = charge if isinstance(charge, str) else charge.id
    details["amount"] = details["amount"] or intent.amount_received or intent.amount
    details["currency"] = intent.currency or details["currency"]
    return details


async def create_refund(payment_intent_id: str, amount: int) -> dict:
    """Refund `amount` cents of a payment intent. Returns {"id", "status", "amount"}."""
    _configure()
    try:
        refund = await run_in_threadpool(
            stripe.Refund.create,
            payment_intent=payment_intent_id,
            amount=amount,
        )
    except stripe.StripeError as e:
        raise _provider_error("create_refund", e)

    return {"id": refund.id, "status": refund.status, "amount": refund.amount}


def verify_webhook(payload: bytes, signature: str) -> dict:
    """Check the Stripe-Signature header and decode the event."""
    try:
        stripe.WebhookSignature.verify_header(payload.decode("utf-8"), signature, settings.STRIPE_WEBHOOK_SECRET)
        return json.loads(payload)
    except stripe.SignatureVerificationError as e:
        raise WebhookVerificationError(f"Invalid signature: {e}") from e
    except (UnicodeDecodeError, ValueError) as e:
        raise WebhookVerificationError(f"Invalid payload: {e}") from e
