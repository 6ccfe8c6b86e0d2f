"""
Payment records and refunds.

A payment row is written once, when a checkout completes. Refunds never
delete it: `refunded_amount` grows and `status` moves from succeeded to
partially_refunded and finally refunded.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from macsync.models.payment import Payment
from macsync.core.clock import utcnow
from macsync.core.metrics import record_refund
from macsync.services import payment_gateway
from macsync.core.logging import get_logger

logger = get_logger(__name__)


async def record_payment(
    db: AsyncSession,
    *,
    user_id: int,
    event_id: int,
    ticket_id: Optional[int],
    stripe_session_id: str,
    payment_data: dict,
) -> Payment:
    payment = Payment(
        user_id=user_id,
        event_id=event_id,
        ticket_id=ticket_id,
        stripe_session_id=stripe_session_id,
        stripe_payment_intent_id=payment_data.get("payment_intent_id"),
        stripe_charge_id=payment_data.get("charge_id"),
        amount_paid=payment_data.get("amount") or 0,
        currency=payment_data.get("currency") or "usd",
        status="succeeded",
        refunded_amount=0,
        payment_date=utcnow(),
    )
    db.add(payment)
    await db.flush()
    await db.refresh(payment)

    logger.info(
        "payment_recorded",
        payment_id=payment.id,
        user_id=user_id,
        event_id=event_id,
        amount=payment.amount_paid,
        currency=payment.currency,
    )
    return payment


async def get_payment(db: AsyncSession, payment_id: int) -> Payment:
    payment = await db.get(Payment, payment_id)
    if not payment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Payment {payment_id} not found",
        )
    return payment


async def payments_for_user(db: AsyncSession, user_id: int) -> list[Payment]:
    result = await db.execute(
        select(Payment).where(Payment.user_id == user_id).order_by(Payment.payment_date.desc(), Payment.id.desc())
    )
    return list(result.scalars().all())


async def payments_for_event(db: AsyncSession, event_id: int) -> list[Payment]:
    result = await db.execute(
        select(Payment).where(Payment.event_id == event_id).order_by(Payment.payment_date.desc(), Payment.id.desc())
    )
    return list(result.scalars().all())


async def latest_payment(db: AsyncSession, user_id: int) -> Payment:
    result = await db.execute(
        select(Payment)
        .where(Payment.user_id == user_id)
        .order_by(Payment.payment_date.desc(), Payment.id.desc())
        .limit(1)
    )
    payment = result.scalar_one_or_none()
    if not payment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No payments found",
        )
    return payment


async def refund_payment(db: AsyncSession, payment_id: int, amount: Optional[int] = None) -> tuple[Payment, dict]:
    """
    Refund part or all of what is left on a payment.
    Without `amount` the whole remaining balance is refunded; larger amounts are capped to it.
    """
    payment = await get_payment(db, payment_id)

    if payment.status == "refunded" or payment.refundable_amount <= 0:
        record_refund("failed")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Payment has already been fully refunded",
        )
    if not payment.stripe_payment_intent_id:
        record_refund("failed")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Payment has no payment intent to refund",
        )

    refund_amount = payment.refundable_amount if amount is None else min(amount, payment.refundable_amount)
    refund = await payment_gateway.create_refund(payment.stripe_payment_intent_id, refund_amount)

    if refund["status"] != "succeeded":
        record_refund("failed")
        logger.error("refund_not_succeeded", payment_id=payment.id, refund_id=refund["id"], status=refund["status"])
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Refund was not completed (status: {refund['status']})",
        )

    payment.refunded_amount = (payment.refunded_amount or 0) + refund_amount
    payment.status = "refunded" if payment.refunded_amount >= payment.amount_paid else "partially_refunded"
    await db.flush()
    await db.refresh(payment)

    record_refund("full" if payment.status == "refunded" else "partial")
    logger.info(
        "refund_issued",
        payment_id=payment.id,
        refund_id=refund["id"],
        amount=refund_amount,
        refunded_total=payment.refunded_amount,
        status=payment.status,
    )
    return payment, {"id": refund["id"], "amount": refund_amount}
