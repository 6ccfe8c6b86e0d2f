"""
Ticket issuance for events: direct signup, cancellation and check-in.

A ticket is the proof of registration. For events with table and/or bus
seating every ticket owns exactly one seat of each kind, assigned first-free
in (table, seat) / (bus, seat) order, and the ticket stores the human readable
labels ("Table 5, Seat 4", "Bus 1 - Seat 5").

Paid events never come through here directly: see checkout_service.
"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from macsync.models.event import Event
from macsync.models.ticket import Ticket, TableSeat, BusSeat
from macsync.models.payment import Payment
from macsync.core.clock import utcnow
from macsync.core.metrics import record_signup_attempt
from macsync.core.security import generate_qr_code_data
from macsync.services import seating_service
from macsync.services.event_service import get_event, count_tickets, get_user_ticket
from macsync.services.cache_service import invalidate_event_cache
from macsync.core.logging import get_logger

logger = get_logger(__name__)


def _already_registered() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="You are already signed up for this event",
    )


def _no_table_seat(selected_table: Optional[int]) -> HTTPException:
    detail = "No table seats available"
    if selected_table is not None:
        detail = f"No seats available at table {selected_table}"
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


def _no_bus_seat() -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail="No bus seats available")


async def issue_ticket(
    db: AsyncSession,
    event: Event,
    user_id: int,
    table_seat: Optional[TableSeat] = None,
    bus_seat: Optional[BusSeat] = None,
) -> Ticket:
    """Create the ticket and bind the given seats to it."""
    ticket = Ticket(
        user_id=user_id,
        event_id=event.id,
        qr_code_data=generate_qr_code_data(),
        table_seat=table_seat.label if table_seat else None,
        bus_seat=bus_seat.label if bus_seat else None,
    )
    db.add(ticket)
    await db.flush()

    if table_seat:
        table_seat.ticket_id = ticket.id
    if bus_seat:
        bus_seat.ticket_id = ticket.id
    await db.flush()
    await db.refresh(ticket)

    await invalidate_event_cache()
    logger.info(
        "ticket_created",
        ticket_id=ticket.id,
        event_id=event.id,
        user_id=user_id,
        table_seat=ticket.table_seat,
        bus_seat=ticket.bus_seat,
    )
    return ticket


async def signup_for_event(
    db: AsyncSession,
    event_id: int,
    user_id: int,
    selected_table: Optional[int] = None,
) -> Ticket:
    """
    Register a user for a free event.

    Raises 409 if already registered, the event is full or no seat is left,
    404 if the event does not exist, 400 if the event is paid.
    """
    if await get_user_ticket(db, event_id, user_id):
        record_signup_attempt("rejected")
        raise _already_registered()

    event = await get_event(db, event_id)

    if event.is_paid:
        record_signup_attempt("rejected")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This event requires payment. Use checkout to sign up.",
        )

    if await count_tickets(db, event.id) >= event.capacity:
        record_signup_attempt("full")
        logger.warning("signup_rejected", reason="event_full", event_id=event.id, user_id=user_id)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Event is full")

    table_seat = None
    if event.requires_table_signup:
        table_seat = await seating_service.first_free_table_seat(db, event.id, selected_table)
        if not table_seat:
            record_signup_attempt("full")
            raise _no_table_seat(selected_table)

    bus_seat = None
    if event.requires_bus_signup:
        bus_seat = await seating_service.first_free_bus_seat(db, event.id)
        if not bus_seat:
            record_signup_attempt("full")
            raise _no_bus_seat()

    ticket = await issue_ticket(db, event, user_id, table_seat, bus_seat)
    record_signup_attempt("created")
    return ticket


async def cancel_signup(db: AsyncSession, event_id: int, user_id: int) -> None:
    ticket = await get_user_ticket(db, event_id, user_id)
    if not ticket:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="You are not signed up for this event",
        )

    await seating_service.release_ticket_seats(db, [ticket.id])
    await db.execute(update(Payment).where(Payment.ticket_id == ticket.id).values(ticket_id=None))
    await db.delete(ticket)
    await db.flush()
    await invalidate_event_cache()

    logger.info("ticket_cancelled", ticket_id=ticket.id, event_id=event_id, user_id=user_id)


async def list_tickets_for_user(db: AsyncSession, user_id: int) -> list[dict]:
    """Tickets with the event's name, date and location, soonest event first."""
    result = await db.execute(
        select(Ticket, Event.name, Event.date, Event.location)
        .join(Event, Event.id == Ticket.event_id)
        .where(Ticket.user_id == user_id)
        .order_by(Event.date.asc(), Ticket.id.asc())
    )
    tickets = []
    for ticket, name, date, location in result.all():
        tickets.append({
            "id": ticket.id,
            "user_id": ticket.user_id,
            "event_id": ticket.event_id,
            "checked_in": ticket.checked_in,
            "checked_in_at": ticket.checked_in_at,
            "table_seat": ticket.table_seat,
            "bus_seat": ticket.bus_seat,
            "qr_code_data": ticket.qr_code_data,
            "created_at": ticket.created_at,
            "event_name": name,
            "event_date": date,
            "event_location": location,
        })
    return tickets


async def check_in(db: AsyncSession, qr_code_data: str) -> Ticket:
    result = await db.execute(select(Ticket).where(Ticket.qr_code_data == qr_code_data))
    ticket = result.scalar_one_or_none()

    if not ticket:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Ticket not found",
        )
    if ticket.checked_in:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Ticket already checked in",
        )

    ticket.checked_in = True
    ticket.checked_in_at = utcnow()
    await db.flush()

    logger.info("ticket_checked_in", ticket_id=ticket.id, event_id=ticket.event_id, user_id=ticket.user_id)
    return ticket
