"""
Tests for event CRUD, the cached listing and seating summaries.
"""

import pytest
from datetime import datetime, timezone, timedelta
from httpx import AsyncClient

from conftest import auth_headers_for


def _future(days: int = 30) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


@pytest.mark.asyncio
async def test_create_event(client: AsyncClient, admin_headers):
    """Admin can create an event."""
    response = await client.post(
        "/api/v1/events",
        json={
            "name": "Engineering Formal",
            "description": "Annual formal",
            "date": _future(),
            "location": "Hamilton Convention Centre",
            "capacity": 500,
            "price": 4500,
        },
        headers=admin_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Engineering Formal"
    assert data["capacity"] == 500
    assert data["is_paid"] is True
    assert data["registered_count"] == 0


@pytest.mark.asyncio
async def test_create_event_requires_admin(client: AsyncClient, member_headers):
    response = await client.post(
        "/api/v1/events",
        json={"name": "Sneaky Event", "date": _future(), "capacity": 10},
        headers=member_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_event_unauthenticated(client: AsyncClient):
    response = await client.post(
        "/api/v1/events",
        json={"name": "Unauthorized Event", "date": _future(), "capacity": 10},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_event_past_date(client: AsyncClient, admin_headers):
    """Event with past date returns 400."""
    response = await client.post(
        "/api/v1/events",
        json={"name": "Past Event", "date": _future(-1), "capacity": 10},
        headers=admin_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_event_table_seating_needs_layout(client: AsyncClient, admin_headers):
    response = await client.post(
        "/api/v1/events",
        json={"name": "Gala", "date": _future(), "capacity": 80, "requires_table_signup": True},
        headers=admin_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_event_generates_seats(client: AsyncClient, admin_headers):
    response = await client.post(
        "/api/v1/events",
        json={
            "name": "Gala",
            "date": _future(),
            "capacity": 6,
            "requires_table_signup": True,
            "table_count": 2,
            "seats_per_table": 3,
            "requires_bus_signup": True,
            "bus_count": 1,
            "bus_capacity": 6,
        },
        headers=admin_headers,
    )
    assert response.status_code == 201
    event_id = response.json()["id"]

    seating = await client.get(f"/api/v1/events/{event_id}/seating", headers=admin_headers)
    assert seating.status_code == 200
    data = seating.json()
    assert data["tables"] == [
        {"number": 1, "capacity": 3, "seats_remaining": 3},
        {"number": 2, "capacity": 3, "seats_remaining": 3},
    ]
    assert data["buses"] == [{"number": 1, "capacity": 6, "seats_remaining": 6}]


@pytest.mark.asyncio
async def test_list_events(client: AsyncClient, member_headers, make_event):
    await make_event(name="Later", date=datetime.now(timezone.utc) + timedelta(days=60))
    await make_event(name="Sooner", date=datetime.now(timezone.utc) + timedelta(days=5))

    response = await client.get("/api/v1/events", headers=member_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 2
    assert [e["name"] for e in data["events"]] == ["Sooner", "Later"]
    assert data["cached"] is False


@pytest.mark.asyncio
async def test_list_events_requires_member_role(client: AsyncClient, make_user):
    roleless = await make_user("nobody@mcmaster.ca", role_names=())
    response = await client.get("/api/v1/events", headers=auth_headers_for(roleless))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_get_event_with_registered_count(client: AsyncClient, member_headers, free_event):
    await client.post(f"/api/v1/events/{free_event.id}/signup", headers=member_headers)

    response = await client.get(f"/api/v1/events/{free_event.id}", headers=member_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["registered_count"] == 1
    assert data["user_ticket"]["checked_in"] is False


@pytest.mark.asyncio
async def test_get_event_not_found(client: AsyncClient, member_headers):
    response = await client.get("/api/v1/events/99999", headers=member_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_event(client: AsyncClient, admin_headers, free_event):
    response = await client.put(
        f"/api/v1/events/{free_event.id}",
        json={"name": "Renamed BBQ", "capacity": 150},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Renamed BBQ"
    assert data["capacity"] == 150


@pytest.mark.asyncio
async def test_update_capacity_below_tickets(client: AsyncClient, make_user, admin_headers, make_event):
    event = await make_event(capacity=5)
    for i in range(2):
        user = await make_user(f"student{i}@mcmaster.ca")
        await client.post(f"/api/v1/events/{event.id}/signup", headers=auth_headers_for(user))

    response = await client.put(f"/api/v1/events/{event.id}", json={"capacity": 1}, headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_event(client: AsyncClient, admin_headers, member_headers, free_event):
    await client.post(f"/api/v1/events/{free_event.id}/signup", headers=member_headers)

    response = await client.delete(f"/api/v1/events/{free_event.id}", headers=admin_headers)
    assert response.status_code == 204

    response = await client.get(f"/api/v1/events/{free_event.id}", headers=admin_headers)
    assert response.status_code == 404

    tickets = await client.get("/api/v1/users/me/tickets", headers=member_headers)
    assert tickets.json()["count"] == 0


@pytest.mark.asyncio
async def test_health_and_metrics(client: AsyncClient):
    health = await client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"
    assert health.json()["cache"]["status"] == "disabled"

    metrics = await client.get("/metrics")
    assert metrics.status_code == 200
    assert "macsync_signup_attempts_total" in metrics.text
