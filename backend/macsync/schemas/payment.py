"""
Pydantic schemas for checkout, payments and refunds.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class CheckoutRequest(BaseModel):
    success_url: Optional[str] = Field(None, max_length=2000)
    cancel_url: Optional[str] = Field(None, max_length=2000)
    selected_table: Optional[int] = Field(None, gt=0)


class CheckoutResponse(BaseModel):
    session_id: str
    url: Optional[str]
    expires_at: datetime


class PaymentResponse(BaseModel):
    id: int
    user_id: int
    event_id: int
    ticket_id: Optional[int] = None
    stripe_session_id: str
    stripe_payment_intent_id: Optional[str] = None
    stripe_charge_id: Optional[str] = None
    amount_paid: int
    currency: str
    status: str
    refunded_amount: int
    payment_date: datetime

    model_config = {"from_attributes": True}


class PaymentListResponse(BaseModel):
    payments: list[PaymentResponse]
    count: int


class RefundRequest(BaseModel):
    amount: Optional[int] = Field(None, gt=0)  # cents; full remaining amount when omitted


class RefundResponse(BaseModel):
    refund_id: str
    amount_refunded: int
    payment: PaymentResponse


class WebhookAck(BaseModel):
    received: bool = True
