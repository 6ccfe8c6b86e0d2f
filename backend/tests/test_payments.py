"""
Tests for payment listings and refunds.
"""

import pytest
import pytest_asyncio
from httpx import AsyncClient

from macsync.core.clock import utcnow
from macsync.models import Payment
from macsync.services.registration_service import issue_ticket


@pytest_asyncio.fixture
async def payment(db_session, member, paid_event) -> Payment:
    payment = Payment(
        user_id=member.id,
        event_id=paid_event.id,
        stripe_session_id="cs_test_paid",
        stripe_payment_intent_id="pi_test_1",
        stripe_charge_id="ch_test_1",
        amount_paid=4500,
        currency="usd",
        status="succeeded",
        refunded_amount=0,
        payment_date=utcnow(),
    )
    db_session.add(payment)
    await db_session.commit()
    await db_session.refresh(payment)
    return payment


@pytest.mark.asyncio
async def test_my_payments(client: AsyncClient, member_headers, payment):
    response = await client.get("/api/v1/users/me/payments", headers=member_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 1
    assert data["payments"][0]["amount_paid"] == 4500


@pytest.mark.asyncio
async def test_latest_payment_none(client: AsyncClient, member_headers):
    response = await client.get("/api/v1/users/me/payments/latest", headers=member_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_refund_requires_admin(client: AsyncClient, member_headers, payment, fake_stripe):
    response = await client.post(f"/api/v1/payments/{payment.id}/refund", headers=member_headers)
    assert response.status_code == 403
    assert fake_stripe.refunds == []


@pytest.mark.asyncio
async def test_partial_then_full_refund(client: AsyncClient, admin_headers, payment, fake_stripe):
    partial = await client.post(
        f"/api/v1/payments/{payment.id}/refund", json={"amount": 1500}, headers=admin_headers
    )
    assert partial.status_code == 200
    data = partial.json()
    assert data["amount_refunded"] == 1500
    assert data["payment"]["status"] == "partially_refunded"
    assert data["payment"]["refunded_amount"] == 1500

    # No amount refunds the rest
    rest = await client.post(f"/api/v1/payments/{payment.id}/refund", headers=admin_headers)
    assert rest.status_code == 200
    assert rest.json()["amount_refunded"] == 3000
    assert rest.json()["payment"]["status"] == "refunded"

    assert fake_stripe.refunds == [("pi_test_1", 1500), ("pi_test_1", 3000)]

    again = await client.post(f"/api/v1/payments/{payment.id}/refund", headers=admin_headers)
    assert again.status_code == 400


@pytest.mark.asyncio
async def test_refund_amount_capped_to_balance(client: AsyncClient, admin_headers, payment, fake_stripe):
    response = await client.post(
        f"/api/v1/payments/{payment.id}/refund", json={"amount": 99999}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["amount_refunded"] == 4500
    assert response.json()["payment"]["status"] == "refunded"


@pytest.mark.asyncio
async def test_refund_not_succeeded(client: AsyncClient, admin_headers, payment, fake_stripe):
    fake_stripe.refund_status = "pending"
    response = await client.post(f"/api/v1/payments/{payment.id}/refund", headers=admin_headers)
    assert response.status_code == 502

    listing = await client.get(f"/api/v1/users/{payment.user_id}/payments", headers=admin_headers)
    assert listing.json()["payments"][0]["refunded_amount"] == 0


@pytest.mark.asyncio
async def test_refund_unknown_payment(client: AsyncClient, admin_headers, fake_stripe):
    response = await client.post("/api/v1/payments/99999/refund", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_cancelling_paid_ticket_keeps_payment(client: AsyncClient, db_session, member, member_headers, paid_event, payment):
    ticket = await issue_ticket(db_session, paid_event, member.id)
    payment.ticket_id = ticket.id
    await db_session.commit()

    response = await client.delete(f"/api/v1/events/{paid_event.id}/signup", headers=member_headers)
    assert response.status_code == 204

    latest = (await client.get("/api/v1/users/me/payments/latest", headers=member_headers)).json()
    assert latest["id"] == payment.id
    assert latest["ticket_id"] is None
