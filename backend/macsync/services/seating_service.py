"""
Physical seat inventory for events with table and/or bus seating.

Seats are generated once, when the event is created. A seat is free when no
ticket owns it and no live checkout reservation holds it. Assignment always
takes the lowest (table, seat) / (bus, seat) that is free.
"""

from collections import defaultdict
from typing import Iterable, Optional

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from macsync.models.event import Event
from macsync.models.ticket import TableSeat, BusSeat, SeatReservation
from macsync.core.clock import utcnow
from macsync.core.logging import get_logger

logger = get_logger(__name__)


async def generate_seats(db: AsyncSession, event: Event) -> None:
    table_seats = 0
    bus_seats = 0

    if event.requires_table_signup and event.table_count and event.seats_per_table:
        for table_number in range(1, event.table_count + 1):
            for seat_number in range(1, event.seats_per_table + 1):
                db.add(TableSeat(event_id=event.id, table_number=table_number, seat_number=seat_number))
                table_seats += 1

    if event.requires_bus_signup and event.bus_count and event.bus_capacity:
        for bus_number in range(1, event.bus_count + 1):
            for seat_number in range(1, event.bus_capacity + 1):
                db.add(BusSeat(event_id=event.id, bus_number=bus_number, seat_number=seat_number))
                bus_seats += 1

    await db.flush()
    logger.info("seats_generated", event_id=event.id, table_seats=table_seats, bus_seats=bus_seats)


def _held_table_seat_ids(event_id: int, exclude_user_id: Optional[int] = None):
    query = select(SeatReservation.table_seat_id).where(
        SeatReservation.event_id == event_id,
        SeatReservation.table_seat_id.is_not(None),
        SeatReservation.expires_at > utcnow(),
    )
    if exclude_user_id is not None:
        query = query.where(SeatReservation.user_id != exclude_user_id)
    return query


def _held_bus_seat_ids(event_id: int, exclude_user_id: Optional[int] = None):
    query = select(SeatReservation.bus_seat_id).where(
        SeatReservation.event_id == event_id,
        SeatReservation.bus_seat_id.is_not(None),
        SeatReservation.expires_at > utcnow(),
    )
    if exclude_user_id is not None:
        query = query.where(SeatReservation.user_id != exclude_user_id)
    return query


async def first_free_table_seat(
    db: AsyncSession,
    event_id: int,
    table_number: Optional[int] = None,
    exclude_user_id: Optional[int] = None,
) -> Optional[TableSeat]:
    """Lowest free table seat, optionally within one table. Seats held by `exclude_user_id` count as free."""
    query = (
        select(TableSeat)
        .where(
            TableSeat.event_id == event_id,
            TableSeat.ticket_id.is_(None),
            TableSeat.id.not_in(_held_table_seat_ids(event_id, exclude_user_id)),
        )
        .order_by(TableSeat.table_number.asc(), TableSeat.seat_number.asc())
        .limit(1)
    )
    if table_number is not None:
        query = query.where(TableSeat.table_number == table_number)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def first_free_bus_seat(
    db: AsyncSession,
    event_id: int,
    exclude_user_id: Optional[int] = None,
) -> Optional[BusSeat]:
    query = (
        select(BusSeat)
        .where(
            BusSeat.event_id == event_id,
            BusSeat.ticket_id.is_(None),
            BusSeat.id.not_in(_held_bus_seat_ids(event_id, exclude_user_id)),
        )
        .order_by(BusSeat.bus_number.asc(), BusSeat.seat_number.asc())
        .limit(1)
    )
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def release_ticket_seats(db: AsyncSession, ticket_ids: Iterable[int]) -> None:
    ticket_ids = list(ticket_ids)
    if not ticket_ids:
        return
    await db.execute(update(TableSeat).where(TableSeat.ticket_id.in_(ticket_ids)).values(ticket_id=None))
    await db.execute(update(BusSeat).where(BusSeat.ticket_id.in_(ticket_ids)).values(ticket_id=None))


async def purge_expired_reservations(db: AsyncSession, event_id: int) -> None:
    await db.execute(
        delete(SeatReservation).where(
            SeatReservation.event_id == event_id,
            SeatReservation.expires_at <= utcnow(),
        ).execution_options(synchronize_session="fetch")
    )


async def seating_summary(db: AsyncSession, event: Event) -> dict:
    """Per table and per bus: total seats and seats still available."""
    held_tables = set((await db.execute(_held_table_seat_ids(event.id))).scalars().all())
    held_buses = set((await db.execute(_held_bus_seat_ids(event.id))).scalars().all())

    tables = defaultdict(lambda: [0, 0])
    for seat in (await db.execute(select(TableSeat).where(TableSeat.event_id == event.id))).scalars():
        tables[seat.table_number][0] += 1
        if seat.ticket_id is None and seat.id not in held_tables:
            tables[seat.table_number][1] += 1

    buses = defaultdict(lambda: [0, 0])
    for seat in (await db.execute(select(BusSeat).where(BusSeat.event_id == event.id))).scalars():
        buses[seat.bus_number][0] += 1
        if seat.ticket_id is None and seat.id not in held_buses:
            buses[seat.bus_number][1] += 1

    return {
        "event_id": event.id,
        "tables": [
            {"number": number, "capacity": capacity, "seats_remaining": remaining}
            for number, (capacity, remaining) in sorted(tables.items())
        ],
        "buses": [
            {"number": number, "capacity": capacity, "seats_remaining": remaining}
            for number, (capacity, remaining) in sorted(buses.items())
        ],
    }
