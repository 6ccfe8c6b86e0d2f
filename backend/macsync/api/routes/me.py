"""
Endpoints scoped to the calling user. Registered before /users/{user_id}.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from macsync.db.session import get_db
from macsync.api.deps import get_current_user
from macsync.models.user import User
from macsync.schemas.role import UserRolesResponse
from macsync.schemas.ticket import TicketListResponse
from macsync.schemas.payment import PaymentResponse, PaymentListResponse
from macsync.schemas.signup import SignupSummaryResponse
from macsync.services import role_service, registration_service, payment_service, signup_service

router = APIRouter(prefix="/users/me", tags=["Me"])


@router.get("/roles", response_model=UserRolesResponse)
async def my_roles(user: User = Depends(get_current_user)):
    roles = role_service.roles_of(user)
    return {"user_id": user.id, "roles": roles, "role_names": [role.name for role in roles]}


@router.get("/tickets", response_model=TicketListResponse)
async def my_tickets(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    tickets = await registration_service.list_tickets_for_user(db, user.id)
    return {"tickets": tickets, "count": len(tickets)}


@router.get("/payments", response_model=PaymentListResponse)
async def my_payments(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    payments = await payment_service.payments_for_user(db, user.id)
    return {"payments": payments, "count": len(payments)}


@router.get("/payments/latest", response_model=PaymentResponse)
async def my_latest_payment(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    """Most recent payment, polled by the app after returning from checkout."""
    return await payment_service.latest_payment(db, user.id)


@router.get("/signups", response_model=SignupSummaryResponse)
async def my_signups(
    event_id: Optional[int] = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await signup_service.list_user_signups(db, user.id, event_id)
