"""
Tests for the admin dashboard statistics.
"""

import pytest
from datetime import timedelta
from httpx import AsyncClient

from macsync.core.clock import utcnow
from macsync.models import Payment


@pytest.mark.asyncio
async def test_stats_requires_admin(client: AsyncClient, member_headers):
    response = await client.get("/api/v1/stats", headers=member_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_stats_empty(client: AsyncClient, admin_headers):
    response = await client.get("/api/v1/stats", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["user_count"] == 1
    assert data["event_count"] == 0
    assert data["tickets_sold"] == 0
    assert data["conversion_rate"] == 0


@pytest.mark.asyncio
async def test_stats_counts(client: AsyncClient, db_session, member, member_headers, admin_headers, make_event):
    free = await make_event(name="BBQ", capacity=3)
    past = await make_event(name="Old Social", capacity=1, date=utcnow() - timedelta(days=10))
    await client.post(f"/api/v1/events/{free.id}/signup", headers=member_headers)

    db_session.add_all([
        Payment(
            user_id=member.id, event_id=past.id, stripe_session_id="cs_a", amount_paid=4500,
            refunded_amount=1500, status="partially_refunded", payment_date=utcnow(),
        ),
        Payment(
            user_id=member.id, event_id=past.id, stripe_session_id="cs_b", amount_paid=2000,
            refunded_amount=2000, status="refunded", payment_date=utcnow(),
        ),
    ])
    await db_session.commit()

    data = (await client.get("/api/v1/stats", headers=admin_headers)).json()
    assert data["user_count"] == 2
    assert data["event_count"] == 2
    assert data["upcoming_event_count"] == 1
    assert data["tickets_sold"] == 1
    assert data["total_capacity"] == 4
    assert data["total_revenue"] == 3000
    assert data["conversion_rate"] == 25.0
