"""
Event service handling CRUD operations and registered counts.
"""

from typing import Optional

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from macsync.models.event import Event
from macsync.models.ticket import Ticket, TableSeat, BusSeat, SeatReservation
from macsync.models.payment import Payment
from macsync.models.signup import EventAccess, BusRoute, BusSignup, EventTable, TableSignup, EventRsvp
from macsync.schemas.event import EventCreate, EventUpdate
from macsync.core.clock import utcnow, as_utc
from macsync.services import seating_service
from macsync.services.cache_service import invalidate_event_cache
from macsync.core.logging import get_logger

logger = get_logger(__name__)


async def create_event(db: AsyncSession, event_data: EventCreate) -> Event:
    """Create an event and, when it needs them, its table and bus seats."""
    if as_utc(event_data.date) <= utcnow():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Event date must be in the future",
        )

    event = Event(**event_data.model_dump())
    db.add(event)
    await db.flush()
    await db.refresh(event)

    await seating_service.generate_seats(db, event)
    await invalidate_event_cache()

    logger.info("event_created", event_id=event.id, name=event.name, capacity=event.capacity, price=event.price)
    return event


async def get_event(db: AsyncSession, event_id: int) -> Event:
    """Get a single event by ID."""
    result = await db.execute(select(Event).where(Event.id == event_id))
    event = result.scalar_one_or_none()

    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {event_id} not found",
        )
    return event


async def count_tickets(db: AsyncSession, event_id: int) -> int:
    result = await db.execute(select(func.count(Ticket.id)).where(Ticket.event_id == event_id))
    return result.scalar_one()


async def registered_counts(db: AsyncSession) -> dict[int, int]:
    result = await db.execute(select(Ticket.event_id, func.count(Ticket.id)).group_by(Ticket.event_id))
    return {event_id: count for event_id, count in result.all()}


async def list_events(db: AsyncSession) -> list[tuple[Event, int]]:
    """All events ordered by date, each with its ticket count."""
    result = await db.execute(select(Event).order_by(Event.date.asc(), Event.id.asc()))
    counts = await registered_counts(db)
    return [(event, counts.get(event.id, 0)) for event in result.scalars().all()]


async def get_user_ticket(db: AsyncSession, event_id: int, user_id: int) -> Optional[Ticket]:
    result = await db.execute(
        select(Ticket).where(Ticket.event_id == event_id, Ticket.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def update_event(db: AsyncSession, event_id: int, event_data: EventUpdate) -> Event:
    event = await get_event(db, event_id)
    changes = event_data.model_dump(exclude_unset=True)

    for field in ("name", "date", "capacity", "price"):
        if field in changes and changes[field] is None:
            changes.pop(field)

    if "capacity" in changes:
        registered = await count_tickets(db, event.id)
        if changes["capacity"] < registered:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Capacity cannot be lower than the {registered} tickets already issued",
            )

    for field, value in changes.items():
        setattr(event, field, value)

    await db.flush()
    await db.refresh(event)
    await invalidate_event_cache()

    logger.info("event_updated", event_id=event.id, fields=sorted(changes))
    return event


async def delete_event(db: AsyncSession, event_id: int) -> None:
    """Remove an event with its seats, holds, tickets, payments and portal signups."""
    event = await get_event(db, event_id)

    for model in (
        SeatReservation,
        TableSeat,
        BusSeat,
        Payment,
        Ticket,
        BusSignup,
        BusRoute,
        TableSignup,
        EventTable,
        EventRsvp,
        EventAccess,
    ):
        await db.execute(delete(model).where(model.event_id == event.id))

    await db.delete(event)
    await db.flush()
    await invalidate_event_cache()

    logger.info("event_deleted", event_id=event_id)
