"""
Team portal signups: bus routes, event tables and RSVPs with waitlists.

Allocation rules:
  - bus:   confirmed while confirmed riders < route capacity, otherwise
           waitlisted at position (waitlisted riders + 1); a route with a
           non-zero waitlist_capacity refuses signups once that is full too
  - table: capacity is counted in seats; confirmed when the open seats cover
           seats_requested, otherwise waitlisted at position
           (waitlisted seats + seats_requested)
  - rsvp:  confirmed under RSVP_CAPACITY, otherwise waitlisted
Signing up again replaces the caller's existing row; that row is left out of
the counts. When a confirmed signup is moved out of confirmed, waitlisted
signups are promoted in position order while capacity allows and the rest
of the waitlist is renumbered.
"""

from typing import Optional

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from macsync.models.user import User
from macsync.models.signup import EventAccess, BusRoute, BusSignup, EventTable, TableSignup, EventRsvp
from macsync.schemas.signup import (
    BusRouteCreate,
    EventTableCreate,
    BusSignupCreate,
    TableSignupCreate,
    RsvpCreate,
    SignupStatusUpdate,
)
from macsync.core.config import get_settings
from macsync.core.metrics import record_portal_signup
from macsync.services.role_service import is_admin
from macsync.services.event_service import get_event
from macsync.services.user_service import get_user
from macsync.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

ADMIN_LEVELS = ("web_admin", "both")
USER_LEVELS = ("web_user", "both")

SIGNUP_MODELS = {"bus": BusSignup, "table": TableSignup, "rsvp": EventRsvp}


# Access

async def ensure_event_access(db: AsyncSession, user: User, event_id: int, required: str = "user") -> None:
    """Raise 403 unless the user holds the required access level for the event."""
    if is_admin(user):
        return

    allowed = ADMIN_LEVELS if required == "admin" else USER_LEVELS
    result = await db.execute(
        select(EventAccess.access_level).where(
            EventAccess.user_id == user.id,
            EventAccess.event_id == event_id,
        )
    )
    level = result.scalar_one_or_none()
    if level not in allowed:
        logger.warning("event_access_denied", user_id=user.id, event_id=event_id, required=required)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied for this event",
        )


async def grant_access(db: AsyncSession, event_id: int, user_id: int, access_level: str) -> EventAccess:
    await get_event(db, event_id)
    await get_user(db, user_id)

    result = await db.execute(
        select(EventAccess).where(EventAccess.user_id == user_id, EventAccess.event_id == event_id)
    )
    access = result.scalar_one_or_none()
    if access is None:
        access = EventAccess(user_id=user_id, event_id=event_id)
        db.add(access)
    access.access_level = access_level
    await db.flush()

    logger.info("event_access_granted", event_id=event_id, user_id=user_id, access_level=access_level)
    return access


# Routes and tables

async def create_bus_route(db: AsyncSession, event_id: int, data: BusRouteCreate) -> dict:
    await get_event(db, event_id)
    route = BusRoute(event_id=event_id, **data.model_dump())
    db.add(route)
    await db.flush()
    await db.refresh(route)

    logger.info("bus_route_created", event_id=event_id, route_id=route.id, capacity=route.capacity)
    return _route_summary(route, confirmed=0, waitlisted=0)


async def create_event_table(db: AsyncSession, event_id: int, data: EventTableCreate) -> dict:
    await get_event(db, event_id)

    existing = await db.execute(
        select(EventTable.id).where(EventTable.event_id == event_id, EventTable.label == data.label)
    )
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Table '{data.label}' already exists for this event",
        )

    table = EventTable(event_id=event_id, **data.model_dump())
    db.add(table)
    await db.flush()
    await db.refresh(table)

    logger.info("event_table_created", event_id=event_id, table_id=table.id, capacity=table.capacity)
    return _table_summary(table, confirmed_seats=0)


def _route_summary(route: BusRoute, confirmed: int, waitlisted: int) -> dict:
    return {
        "id": route.id,
        "event_id": route.event_id,
        "name": route.name,
        "description": route.description,
        "capacity": route.capacity,
        "waitlist_capacity": route.waitlist_capacity,
        "departure_location": route.departure_location,
        "departure_time": route.departure_time,
        "seats_remaining": max(route.capacity - confirmed, 0),
        "waitlist_count": waitlisted,
    }


def _table_summary(table: EventTable, confirmed_seats: int) -> dict:
    return {
        "id": table.id,
        "event_id": table.event_id,
        "label": table.label,
        "capacity": table.capacity,
        "location": table.location,
        "seats_remaining": max(table.capacity - confirmed_seats, 0),
    }


def _confirmed_count():
    return func.count(case((BusSignup.status == "confirmed", 1)))


def _waitlisted_count():
    return func.count(case((BusSignup.status == "waitlisted", 1)))


def _seat_sum(status_value: str):
    return func.coalesce(
        func.sum(case((TableSignup.status == status_value, TableSignup.seats_requested), else_=0)),
        0,
    )


async def list_bus_routes(db: AsyncSession, event_id: int) -> list[dict]:
    routes = (
        await db.execute(select(BusRoute).where(BusRoute.event_id == event_id).order_by(BusRoute.id.asc()))
    ).scalars().all()
    if not routes:
        return []

    counts = {
        route_id: (confirmed, waitlisted)
        for route_id, confirmed, waitlisted in (
            await db.execute(
                select(BusSignup.route_id, _confirmed_count(), _waitlisted_count())
                .where(BusSignup.event_id == event_id)
                .group_by(BusSignup.route_id)
            )
        ).all()
    }
    return [_route_summary(route, *counts.get(route.id, (0, 0))) for route in routes]


async def list_event_tables(db: AsyncSession, event_id: int) -> list[dict]:
    tables = (
        await db.execute(select(EventTable).where(EventTable.event_id == event_id).order_by(EventTable.id.asc()))
    ).scalars().all()
    if not tables:
        return []

    seats = {
        table_id: confirmed
        for table_id, confirmed in (
            await db.execute(
                select(TableSignup.table_id, _seat_sum("confirmed"))
                .where(TableSignup.event_id == event_id)
                .group_by(TableSignup.table_id)
            )
        ).all()
    }
    return [_table_summary(table, seats.get(table.id, 0)) for table in tables]


# Signups

def _serialize(signup, kind: str, **extra) -> dict:
    data = {
        "id": signup.id,
        "type": kind,
        "event_id": signup.event_id,
        "user_id": signup.user_id,
        "status": signup.status,
        "waitlist_position": signup.waitlist_position,
        "notes": signup.notes,
        "acted_by": signup.acted_by,
        "updated_at": signup.updated_at,
    }
    if kind == "bus":
        data["route_id"] = signup.route_id
    elif kind == "table":
        data.update(table_id=signup.table_id, group_name=signup.group_name, seats_requested=signup.seats_requested)
    data.update(extra)
    return data


async def _upsert(db: AsyncSession, model, lookup: dict, values: dict):
    result = await db.execute(select(model).filter_by(**lookup))
    signup = result.scalar_one_or_none()
    if signup is None:
        signup = model(**lookup)
        db.add(signup)
    for field, value in values.items():
        setattr(signup, field, value)
    await db.flush()
    await db.refresh(signup)
    return signup


async def create_bus_signup(db: AsyncSession, user: User, event_id: int, data: BusSignupCreate) -> dict:
    result = await db.execute(
        select(BusRoute).where(BusRoute.id == data.route_id, BusRoute.event_id == event_id)
    )
    route = result.scalar_one_or_none()
    if not route:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bus route not found")

    confirmed, waitlisted = (
        await db.execute(
            select(_confirmed_count(), _waitlisted_count()).where(
                BusSignup.route_id == route.id,
                BusSignup.user_id != user.id,
            )
        )
    ).one()

    if confirmed < route.capacity:
        signup_status, position = "confirmed", None
    else:
        if route.waitlist_capacity > 0 and waitlisted >= route.waitlist_capacity:
            logger.warning("bus_signup_rejected", reason="waitlist_full", route_id=route.id, user_id=user.id)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Bus route and its waitlist are full",
            )
        signup_status, position = "waitlisted", waitlisted + 1

    signup = await _upsert(
        db,
        BusSignup,
        {"route_id": route.id, "user_id": user.id},
        {"event_id": event_id, "status": signup_status, "waitlist_position": position, "notes": data.notes},
    )

    record_portal_signup("bus", signup_status)
    logger.info("bus_signup_created", signup_id=signup.id, route_id=route.id, user_id=user.id, status=signup_status)
    return _serialize(signup, "bus")


async def create_table_signup(db: AsyncSession, user: User, event_id: int, data: TableSignupCreate) -> dict:
    result = await db.execute(
        select(EventTable).where(EventTable.id == data.table_id, EventTable.event_id == event_id)
    )
    table = result.scalar_one_or_none()
    if not table:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Table not found")

    seats_requested = data.seats_requested if data.seats_requested and data.seats_requested > 0 else 1

    confirmed_seats, waitlisted_seats = (
        await db.execute(
            select(_seat_sum("confirmed"), _seat_sum("waitlisted")).where(
                TableSignup.table_id == table.id,
                TableSignup.user_id != user.id,
            )
        )
    ).one()

    open_seats = max(table.capacity - confirmed_seats, 0)
    if open_seats >= seats_requested:
        signup_status, position = "confirmed", None
    else:
        signup_status, position = "waitlisted", waitlisted_seats + seats_requested

    signup = await _upsert(
        db,
        TableSignup,
        {"table_id": table.id, "user_id": user.id},
        {
            "event_id": event_id,
            "status": signup_status,
            "seats_requested": seats_requested,
            "group_name": data.group_name,
            "waitlist_position": position,
            "notes": data.notes,
        },
    )

    record_portal_signup("table", signup_status)
    logger.info(
        "table_signup_created",
        signup_id=signup.id,
        table_id=table.id,
        user_id=user.id,
        seats=seats_requested,
        status=signup_status,
    )
    return _serialize(signup, "table")


async def create_rsvp(db: AsyncSession, user: User, event_id: int, data: RsvpCreate) -> dict:
    await get_event(db, event_id)

    confirmed, waitlisted = (
        await db.execute(
            select(
                func.count(case((EventRsvp.status == "confirmed", 1))),
                func.count(case((EventRsvp.status == "waitlisted", 1))),
            ).where(EventRsvp.event_id == event_id, EventRsvp.user_id != user.id)
        )
    ).one()

    if confirmed < settings.RSVP_CAPACITY:
        signup_status, position = "confirmed", None
    else:
        signup_status, position = "waitlisted", waitlisted + 1

    signup = await _upsert(
        db,
        EventRsvp,
        {"event_id": event_id, "user_id": user.id},
        {"status": signup_status, "waitlist_position": position, "notes": data.notes},
    )

    record_portal_signup("rsvp", signup_status)
    logger.info("rsvp_created", signup_id=signup.id, event_id=event_id, user_id=user.id, status=signup_status)
    return _serialize(signup, "rsvp")


async def list_signups_for_event(db: AsyncSession, event_id: int) -> list[dict]:
    bus = await db.execute(
        select(BusSignup, User.email, User.name, BusRoute.name)
        .join(User, User.id == BusSignup.user_id)
        .join(BusRoute, BusRoute.id == BusSignup.route_id)
        .where(BusSignup.event_id == event_id)
        .order_by(BusSignup.id.asc())
    )
    tables = await db.execute(
        select(TableSignup, User.email, User.name, EventTable.label)
        .join(User, User.id == TableSignup.user_id)
        .join(EventTable, EventTable.id == TableSignup.table_id)
        .where(TableSignup.event_id == event_id)
        .order_by(TableSignup.id.asc())
    )
    rsvps = await db.execute(
        select(EventRsvp, User.email, User.name)
        .join(User, User.id == EventRsvp.user_id)
        .where(EventRsvp.event_id == event_id)
        .order_by(EventRsvp.id.asc())
    )

    signups = [
        _serialize(signup, "bus", user_email=email, user_name=name, route_name=route_name)
        for signup, email, name, route_name in bus.all()
    ]
    signups += [
        _serialize(signup, "table", user_email=email, user_name=name, table_label=label)
        for signup, email, name, label in tables.all()
    ]
    signups += [
        _serialize(signup, "rsvp", user_email=email, user_name=name)
        for signup, email, name in rsvps.all()
    ]
    return signups


async def list_user_signups(db: AsyncSession, user_id: int, event_id: Optional[int] = None) -> dict:
    summary = {}
    for key, kind in (("bus", "bus"), ("tables", "table"), ("rsvps", "rsvp")):
        model = SIGNUP_MODELS[kind]
        query = select(model).where(model.user_id == user_id)
        if event_id is not None:
            query = query.where(model.event_id == event_id)
        result = await db.execute(query.order_by(model.id.asc()))
        summary[key] = [_serialize(signup, kind) for signup in result.scalars().all()]
    return summary


async def get_signup(db: AsyncSession, signup_id: int, kind: str):
    signup = await db.get(SIGNUP_MODELS[kind], signup_id)
    if not signup:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Signup not found")
    return signup


# Status changes and waitlist promotion

async def _waitlist(db: AsyncSession, kind: str, signup) -> list:
    model = SIGNUP_MODELS[kind]
    query = select(model).where(model.status == "waitlisted", model.id != signup.id)
    if kind == "bus":
        query = query.where(model.route_id == signup.route_id)
    elif kind == "table":
        query = query.where(model.table_id == signup.table_id)
    else:
        query = query.where(model.event_id == signup.event_id)
    result = await db.execute(query.order_by(model.waitlist_position.is_(None), model.waitlist_position.asc(), model.id.asc()))
    return list(result.scalars().all())


async def _open_capacity(db: AsyncSession, kind: str, signup) -> int:
    """Places (seats for tables) still free after the pending status change."""
    if kind == "bus":
        route = await db.get(BusRoute, signup.route_id)
        confirmed = (
            await db.execute(
                select(func.count(BusSignup.id)).where(
                    BusSignup.route_id == signup.route_id, BusSignup.status == "confirmed"
                )
            )
        ).scalar_one()
        return route.capacity - confirmed
    if kind == "table":
        table = await db.get(EventTable, signup.table_id)
        confirmed = (
            await db.execute(
                select(_seat_sum("confirmed")).where(TableSignup.table_id == signup.table_id)
            )
        ).scalar_one()
        return table.capacity - confirmed
    confirmed = (
        await db.execute(
            select(func.count(EventRsvp.id)).where(
                EventRsvp.event_id == signup.event_id, EventRsvp.status == "confirmed"
            )
        )
    ).scalar_one()
    return settings.RSVP_CAPACITY - confirmed


def _places(kind: str, signup) -> int:
    return signup.seats_requested if kind == "table" else 1


async def _promote_waitlist(db: AsyncSession, kind: str, signup, acted_by: int) -> list[int]:
    open_places = await _open_capacity(db, kind, signup)
    waiting = await _waitlist(db, kind, signup)

    promoted = []
    for candidate in waiting:
        if _places(kind, candidate) > open_places:
            break
        candidate.status = "confirmed"
        candidate.waitlist_position = None
        candidate.acted_by = acted_by
        open_places -= _places(kind, candidate)
        promoted.append(candidate.id)

    position = 0
    for candidate in waiting[len(promoted):]:
        position += _places(kind, candidate)
        candidate.waitlist_position = position

    return promoted


async def update_signup_status(db: AsyncSession, acting_user: User, signup_id: int, data: SignupStatusUpdate) -> dict:
    signup = await get_signup(db, signup_id, data.type)
    await ensure_event_access(db, acting_user, signup.event_id, "admin")

    was_confirmed = signup.status == "confirmed"

    append_to_waitlist = data.status == "waitlisted" and data.waitlist_position is None
    signup.waitlist_position = data.waitlist_position if data.status == "waitlisted" else None

    signup.status = data.status
    if data.notes is not None:
        signup.notes = data.notes
    signup.acted_by = acting_user.id
    await db.flush()

    promoted = []
    if was_confirmed and data.status != "confirmed":
        promoted = await _promote_waitlist(db, data.type, signup, acting_user.id)
        await db.flush()

    # Appended after promotion so the position follows the renumbered queue
    if append_to_waitlist:
        waiting = await _waitlist(db, data.type, signup)
        signup.waitlist_position = sum(_places(data.type, other) for other in waiting) + _places(data.type, signup)
        await db.flush()

    await db.refresh(signup)
    logger.info(
        "signup_status_updated",
        signup_id=signup.id,
        type=data.type,
        status=data.status,
        acted_by=acting_user.id,
        promoted=promoted,
    )
    return _serialize(signup, data.type)
