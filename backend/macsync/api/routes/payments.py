"""
Payment endpoints: refunds and abandoning a checkout.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from macsync.db.session import get_db
from macsync.api.deps import get_current_user, require_admin
from macsync.models.user import User
from macsync.schemas.auth import MessageResponse
from macsync.schemas.payment import RefundRequest, RefundResponse, PaymentResponse
from macsync.services import payment_service, checkout_service

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/{payment_id}/refund", response_model=RefundResponse)
async def refund_payment(
    payment_id: int,
    data: RefundRequest = RefundRequest(),
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Refund the given amount in cents, or everything not yet refunded."""
    payment, refund = await payment_service.refund_payment(db, payment_id, data.amount)
    return RefundResponse(
        refund_id=refund["id"],
        amount_refunded=refund["amount"],
        payment=PaymentResponse.model_validate(payment),
    )


@router.delete("/checkout/{session_id}", response_model=MessageResponse)
async def cancel_checkout(
    session_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Release the caller's seat hold when they back out of checkout. Idempotent."""
    released = await checkout_service.release_reservation(db, session_id, owner_id=user.id)
    return MessageResponse(message="Reservation released" if released else "No active reservation")
