"""
Tests for the team portal: per-event access, bus routes, tables, RSVPs and waitlists.
"""

import pytest
import pytest_asyncio
from httpx import AsyncClient

from conftest import auth_headers_for
from macsync.services import signup_service


async def _grant(client: AsyncClient, admin_headers: dict, event_id: int, user_id: int, level: str = "web_user"):
    response = await client.put(
        f"/api/v1/events/{event_id}/access",
        json={"user_id": user_id, "access_level": level},
        headers=admin_headers,
    )
    assert response.status_code == 200
    return response.json()


@pytest_asyncio.fixture
async def riders(client: AsyncClient, make_user, admin_headers, free_event):
    """Three users with web_user access to the event, as auth headers."""
    headers = []
    for i in range(3):
        user = await make_user(f"rider{i}@mcmaster.ca")
        await _grant(client, admin_headers, free_event.id, user.id)
        headers.append(auth_headers_for(user))
    return headers


async def _create_route(client, admin_headers, event_id, capacity=1, waitlist_capacity=0):
    response = await client.post(
        f"/api/v1/events/{event_id}/bus-routes",
        json={"name": "Main Campus", "capacity": capacity, "waitlist_capacity": waitlist_capacity},
        headers=admin_headers,
    )
    assert response.status_code == 201
    return response.json()


async def _create_table(client, admin_headers, event_id, label="Table A", capacity=4):
    response = await client.post(
        f"/api/v1/events/{event_id}/event-tables",
        json={"label": label, "capacity": capacity},
        headers=admin_headers,
    )
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_grant_access_requires_admin(client: AsyncClient, member, member_headers, free_event):
    response = await client.put(
        f"/api/v1/events/{free_event.id}/access",
        json={"user_id": member.id, "access_level": "both"},
        headers=member_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_grant_access_rejects_unknown_level(client: AsyncClient, member, admin_headers, free_event):
    response = await client.put(
        f"/api/v1/events/{free_event.id}/access",
        json={"user_id": member.id, "access_level": "superuser"},
        headers=admin_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_portal_requires_event_access(client: AsyncClient, member_headers, admin_headers, free_event):
    await _create_route(client, admin_headers, free_event.id)

    response = await client.get(f"/api/v1/events/{free_event.id}/bus-routes", headers=member_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_web_user_cannot_manage_routes(client: AsyncClient, member, member_headers, admin_headers, free_event):
    await _grant(client, admin_headers, free_event.id, member.id, "web_user")
    response = await client.post(
        f"/api/v1/events/{free_event.id}/bus-routes",
        json={"name": "Sneaky Route", "capacity": 10},
        headers=member_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_web_admin_can_manage_routes(client: AsyncClient, member, member_headers, admin_headers, free_event):
    await _grant(client, admin_headers, free_event.id, member.id, "web_admin")
    response = await client.post(
        f"/api/v1/events/{free_event.id}/bus-routes",
        json={"name": "West Route", "capacity": 10},
        headers=member_headers,
    )
    assert response.status_code == 201

    # web_admin alone does not grant user-level signup
    route_id = response.json()["id"]
    signup = await client.post(
        f"/api/v1/events/{free_event.id}/bus-signups", json={"route_id": route_id}, headers=member_headers
    )
    assert signup.status_code == 403


@pytest.mark.asyncio
async def test_bus_signup_confirm_then_waitlist_then_full(client: AsyncClient, admin_headers, free_event, riders):
    route = await _create_route(client, admin_headers, free_event.id, capacity=1, waitlist_capacity=1)
    url = f"/api/v1/events/{free_event.id}/bus-signups"

    first = await client.post(url, json={"route_id": route["id"]}, headers=riders[0])
    assert first.status_code == 201
    assert first.json()["status"] == "confirmed"
    assert first.json()["waitlist_position"] is None

    second = await client.post(url, json={"route_id": route["id"]}, headers=riders[1])
    assert second.json()["status"] == "waitlisted"
    assert second.json()["waitlist_position"] == 1

    third = await client.post(url, json={"route_id": route["id"]}, headers=riders[2])
    assert third.status_code == 409

    routes = (await client.get(f"/api/v1/events/{free_event.id}/bus-routes", headers=riders[0])).json()
    assert routes[0]["seats_remaining"] == 0
    assert routes[0]["waitlist_count"] == 1


@pytest.mark.asyncio
async def test_bus_resignup_keeps_own_place(client: AsyncClient, admin_headers, free_event, riders):
    route = await _create_route(client, admin_headers, free_event.id, capacity=1)
    url = f"/api/v1/events/{free_event.id}/bus-signups"

    first = await client.post(url, json={"route_id": route["id"]}, headers=riders[0])
    again = await client.post(url, json={"route_id": route["id"], "notes": "window seat"}, headers=riders[0])

    assert again.json()["id"] == first.json()["id"]
    assert again.json()["status"] == "confirmed"
    assert again.json()["notes"] == "window seat"


@pytest.mark.asyncio
async def test_bus_signup_unknown_route(client: AsyncClient, free_event, riders):
    response = await client.post(
        f"/api/v1/events/{free_event.id}/bus-signups", json={"route_id": 999}, headers=riders[0]
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_duplicate_table_label(client: AsyncClient, admin_headers, free_event):
    await _create_table(client, admin_headers, free_event.id, label="Table A")
    response = await client.post(
        f"/api/v1/events/{free_event.id}/event-tables",
        json={"label": "Table A", "capacity": 8},
        headers=admin_headers,
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_table_signup_counts_seats(client: AsyncClient, admin_headers, free_event, riders):
    table = await _create_table(client, admin_headers, free_event.id, capacity=4)
    url = f"/api/v1/events/{free_event.id}/table-signups"

    group = await client.post(
        url, json={"table_id": table["id"], "seats_requested": 3, "group_name": "ECE"}, headers=riders[0]
    )
    assert group.json()["status"] == "confirmed"
    assert group.json()["seats_requested"] == 3

    # Only one seat left, so a pair waits; position counts seats
    pair = await client.post(url, json={"table_id": table["id"], "seats_requested": 2}, headers=riders[1])
    assert pair.json()["status"] == "waitlisted"
    assert pair.json()["waitlist_position"] == 2

    single = await client.post(url, json={"table_id": table["id"]}, headers=riders[2])
    assert single.json()["status"] == "confirmed"
    assert single.json()["seats_requested"] == 1

    tables = (await client.get(f"/api/v1/events/{free_event.id}/event-tables", headers=riders[0])).json()
    assert tables[0]["seats_remaining"] == 0


@pytest.mark.asyncio
async def test_cancelling_promotes_waitlist(client: AsyncClient, admin_headers, free_event, riders):
    route = await _create_route(client, admin_headers, free_event.id, capacity=1)
    url = f"/api/v1/events/{free_event.id}/bus-signups"
    ids = []
    for headers in riders:
        ids.append((await client.post(url, json={"route_id": route["id"]}, headers=headers)).json()["id"])

    response = await client.patch(
        f"/api/v1/signups/{ids[0]}/status",
        json={"type": "bus", "status": "cancelled"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    signups = (await client.get(f"/api/v1/events/{free_event.id}/signups", headers=admin_headers)).json()
    by_id = {s["id"]: s for s in signups["signups"]}
    assert by_id[ids[1]]["status"] == "confirmed"
    assert by_id[ids[1]]["waitlist_position"] is None
    assert by_id[ids[2]]["status"] == "waitlisted"
    assert by_id[ids[2]]["waitlist_position"] == 1
    assert by_id[ids[2]]["route_name"] == "Main Campus"


@pytest.mark.asyncio
async def test_demoting_confirmed_signup_appends_after_promotion(client: AsyncClient, admin_headers, free_event, riders):
    route = await _create_route(client, admin_headers, free_event.id, capacity=1)
    url = f"/api/v1/events/{free_event.id}/bus-signups"
    ids = []
    for headers in riders:
        ids.append((await client.post(url, json={"route_id": route["id"]}, headers=headers)).json()["id"])

    response = await client.patch(
        f"/api/v1/signups/{ids[0]}/status",
        json={"type": "bus", "status": "waitlisted"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "waitlisted"
    assert response.json()["waitlist_position"] == 2

    signups = (await client.get(f"/api/v1/events/{free_event.id}/signups", headers=admin_headers)).json()
    by_id = {s["id"]: s for s in signups["signups"]}
    assert by_id[ids[1]]["status"] == "confirmed"
    assert by_id[ids[2]]["waitlist_position"] == 1
    assert by_id[ids[0]]["waitlist_position"] == 2
    positions = sorted(s["waitlist_position"] for s in signups["signups"] if s["status"] == "waitlisted")
    assert positions == [1, 2]


@pytest.mark.asyncio
async def test_table_promotion_stops_when_group_does_not_fit(client: AsyncClient, admin_headers, free_event, riders):
    table = await _create_table(client, admin_headers, free_event.id, capacity=2)
    url = f"/api/v1/events/{free_event.id}/table-signups"

    seated = (await client.post(url, json={"table_id": table["id"], "seats_requested": 1}, headers=riders[0])).json()
    big = (await client.post(url, json={"table_id": table["id"], "seats_requested": 3}, headers=riders[1])).json()
    assert big["status"] == "waitlisted"

    await client.patch(
        f"/api/v1/signups/{seated['id']}/status",
        json={"type": "table", "status": "cancelled"},
        headers=admin_headers,
    )

    mine = (await client.get(f"/api/v1/users/me/signups?event_id={free_event.id}", headers=riders[1])).json()
    assert mine["tables"][0]["status"] == "waitlisted"
    assert mine["tables"][0]["waitlist_position"] == 3


@pytest.mark.asyncio
async def test_status_update_requires_event_admin(client: AsyncClient, admin_headers, free_event, riders):
    route = await _create_route(client, admin_headers, free_event.id, capacity=5)
    signup = (await client.post(
        f"/api/v1/events/{free_event.id}/bus-signups", json={"route_id": route["id"]}, headers=riders[0]
    )).json()

    response = await client.patch(
        f"/api/v1/signups/{signup['id']}/status",
        json={"type": "bus", "status": "cancelled"},
        headers=riders[1],
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_status_update_unknown_signup(client: AsyncClient, admin_headers):
    response = await client.patch(
        "/api/v1/signups/999/status",
        json={"type": "rsvp", "status": "confirmed"},
        headers=admin_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_rsvp_waitlists_over_capacity(client: AsyncClient, monkeypatch, free_event, riders):
    monkeypatch.setattr(signup_service.settings, "RSVP_CAPACITY", 1)
    url = f"/api/v1/events/{free_event.id}/rsvps"

    first = await client.post(url, headers=riders[0])
    assert first.status_code == 201
    assert first.json()["status"] == "confirmed"

    second = await client.post(url, json={"notes": "plus one?"}, headers=riders[1])
    assert second.json()["status"] == "waitlisted"
    assert second.json()["waitlist_position"] == 1


@pytest.mark.asyncio
async def test_my_signups(client: AsyncClient, admin_headers, free_event, riders):
    route = await _create_route(client, admin_headers, free_event.id, capacity=5)
    await client.post(f"/api/v1/events/{free_event.id}/bus-signups", json={"route_id": route["id"]}, headers=riders[0])
    await client.post(f"/api/v1/events/{free_event.id}/rsvps", headers=riders[0])

    response = await client.get("/api/v1/users/me/signups", headers=riders[0])
    assert response.status_code == 200
    data = response.json()
    assert len(data["bus"]) == 1
    assert data["tables"] == []
    assert len(data["rsvps"]) == 1
    assert data["rsvps"][0]["type"] == "rsvp"
