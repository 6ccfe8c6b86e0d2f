"""
Paid registration through Stripe Checkout with short-lived seat holds.

Flow:
  1. create_checkout_session  -> picks the seats the ticket will get, holds
                                 them in a SeatReservation for
                                 SEAT_RESERVATION_MINUTES and returns the
                                 hosted checkout URL
  2a. checkout.session.completed webhook
                              -> complete_signup_from_reservation issues the
                                 ticket on the held seats and records payment
  2b. checkout.session.expired webhook / user cancels
                              -> release_reservation drops the hold

Capacity counts issued tickets plus other users' live holds, so two buyers
cannot both pay for the last place.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from macsync.models.user import User
from macsync.models.ticket import SeatReservation, TableSeat, BusSeat
from macsync.core.clock import utcnow
from macsync.core.config import get_settings
from macsync.core.metrics import record_checkout
from macsync.services import seating_service, payment_gateway, payment_service
from macsync.services.event_service import get_event, count_tickets, get_user_ticket
from macsync.services.registration_service import issue_ticket
from macsync.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

ALLOWED_REDIRECT_SCHEMES = ("http://", "https://", "exp://", "expo://")
SESSION_PLACEHOLDER = "stripeSessionId={CHECKOUT_SESSION_ID}"


def _redirect_url(requested: Optional[str], default: str) -> str:
    url = requested if requested and requested.startswith(ALLOWED_REDIRECT_SCHEMES) else default
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{SESSION_PLACEHOLDER}"


async def _live_holds_by_others(db: AsyncSession, event_id: int, user_id: int) -> int:
    result = await db.execute(
        select(func.count(SeatReservation.id)).where(
            SeatReservation.event_id == event_id,
            SeatReservation.user_id != user_id,
            SeatReservation.expires_at > utcnow(),
        )
    )
    return result.scalar_one()


async def create_checkout_session(
    db: AsyncSession,
    event_id: int,
    user: User,
    success_url: Optional[str] = None,
    cancel_url: Optional[str] = None,
    selected_table: Optional[int] = None,
) -> tuple[dict, datetime]:
    """Hold seats for the user and open a Stripe checkout. Returns ({"id", "url"}, expires_at)."""
    event = await get_event(db, event_id)

    if not event.is_paid:
        record_checkout("rejected")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This event is free. Sign up directly instead.",
        )

    taken = await count_tickets(db, event.id) + await _live_holds_by_others(db, event.id, user.id)
    if taken >= event.capacity:
        record_checkout("full")
        logger.warning("checkout_rejected", reason="event_full", event_id=event.id, user_id=user.id)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Event is full")

    if await get_user_ticket(db, event.id, user.id):
        record_checkout("rejected")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You are already signed up for this event",
        )

    table_seat = None
    if event.requires_table_signup:
        table_seat = await seating_service.first_free_table_seat(
            db, event.id, selected_table, exclude_user_id=user.id
        )
        if not table_seat:
            record_checkout("full")
            detail = "No table seats available"
            if selected_table is not None:
                detail = f"No seats available at table {selected_table}"
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)

    bus_seat = None
    if event.requires_bus_signup:
        bus_seat = await seating_service.first_free_bus_seat(db, event.id, exclude_user_id=user.id)
        if not bus_seat:
            record_checkout("full")
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="No bus seats available")

    session = await payment_gateway.create_checkout_session(
        event_id=event.id,
        event_name=event.name,
        description=event.description,
        amount=event.price,
        user_id=user.id,
        customer_email=user.email,
        success_url=_redirect_url(success_url, settings.STRIPE_SUCCESS_URL),
        cancel_url=_redirect_url(cancel_url, settings.STRIPE_CANCEL_URL),
    )

    await seating_service.purge_expired_reservations(db, event.id)
    await db.execute(
        delete(SeatReservation).where(
            SeatReservation.event_id == event.id,
            SeatReservation.user_id == user.id,
        )
    )

    expires_at = utcnow() + timedelta(minutes=settings.SEAT_RESERVATION_MINUTES)
    db.add(SeatReservation(
        stripe_session_id=session["id"],
        event_id=event.id,
        user_id=user.id,
        table_seat_id=table_seat.id if table_seat else None,
        bus_seat_id=bus_seat.id if bus_seat else None,
        expires_at=expires_at,
    ))
    await db.flush()

    record_checkout("created")
    logger.info(
        "checkout_session_created",
        session_id=session["id"],
        event_id=event.id,
        user_id=user.id,
        table_seat_id=table_seat.id if table_seat else None,
        bus_seat_id=bus_seat.id if bus_seat else None,
    )
    return session, expires_at


async def _get_reservation(db: AsyncSession, session_id: str) -> Optional[SeatReservation]:
    result = await db.execute(select(SeatReservation).where(SeatReservation.stripe_session_id == session_id))
    return result.scalar_one_or_none()


async def release_reservation(db: AsyncSession, session_id: str, owner_id: Optional[int] = None) -> bool:
    """Drop the seat hold for a checkout session. Returns whether one existed."""
    reservation = await _get_reservation(db, session_id)
    if not reservation or (owner_id is not None and reservation.user_id != owner_id):
        return False

    await db.delete(reservation)
    await db.flush()
    logger.info("reservation_released", session_id=session_id, event_id=reservation.event_id)
    return True


class ReservationError(Exception):
    """A completed checkout could not be turned into a ticket."""

    def __init__(self, message: str, already_signed_up: bool = False):
        super().__init__(message)
        self.already_signed_up = already_signed_up


async def _held_or_free_table_seat(db: AsyncSession, reservation: SeatReservation) -> Optional[TableSeat]:
    if reservation.table_seat_id:
        seat = await db.get(TableSeat, reservation.table_seat_id)
        if seat and seat.ticket_id is None:
            return seat
    return await seating_service.first_free_table_seat(
        db, reservation.event_id, exclude_user_id=reservation.user_id
    )


async def _held_or_free_bus_seat(db: AsyncSession, reservation: SeatReservation) -> Optional[BusSeat]:
    if reservation.bus_seat_id:
        seat = await db.get(BusSeat, reservation.bus_seat_id)
        if seat and seat.ticket_id is None:
            return seat
    return await seating_service.first_free_bus_seat(
        db, reservation.event_id, exclude_user_id=reservation.user_id
    )


async def complete_signup_from_reservation(db: AsyncSession, session_id: str, payment_data: dict):
    """
    Issue the ticket for a paid checkout and record its payment.
    Raises ReservationError when there is nothing to complete.
    """
    reservation = await _get_reservation(db, session_id)
    if not reservation:
        raise ReservationError("Reservation not found or already used")

    event_id = reservation.event_id
    user_id = reservation.user_id

    if await get_user_ticket(db, event_id, user_id):
        await db.delete(reservation)
        await db.flush()
        raise ReservationError("User is already signed up for this event", already_signed_up=True)

    event = await get_event(db, event_id)

    table_seat = None
    if event.requires_table_signup:
        table_seat = await _held_or_free_table_seat(db, reservation)
        if not table_seat:
            logger.error("paid_signup_without_table_seat", session_id=session_id, event_id=event_id)

    bus_seat = None
    if event.requires_bus_signup:
        bus_seat = await _held_or_free_bus_seat(db, reservation)
        if not bus_seat:
            logger.error("paid_signup_without_bus_seat", session_id=session_id, event_id=event_id)

    ticket = await issue_ticket(db, event, user_id, table_seat, bus_seat)
    payment = await payment_service.record_payment(
        db,
        user_id=user_id,
        event_id=event_id,
        ticket_id=ticket.id,
        stripe_session_id=session_id,
        payment_data=payment_data,
    )

    await db.delete(reservation)
    await db.flush()

    logger.info("paid_signup_completed", session_id=session_id, ticket_id=ticket.id, payment_id=payment.id)
    return ticket, payment
