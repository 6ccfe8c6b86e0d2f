"""
Event endpoints: catalogue (Redis-cached list), admin CRUD, seating,
direct signup and Stripe checkout.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from macsync.db.session import get_db
from macsync.api.deps import get_current_user, require_admin, require_member
from macsync.models.event import Event
from macsync.models.user import User
from macsync.schemas.event import (
    EventCreate,
    EventUpdate,
    EventResponse,
    EventDetailResponse,
    EventListResponse,
    SeatingResponse,
)
from macsync.schemas.ticket import SignupRequest, TicketResponse
from macsync.schemas.payment import CheckoutRequest, CheckoutResponse, PaymentListResponse
from macsync.schemas.signup import EventAccessGrant, EventAccessResponse
from macsync.services import (
    event_service,
    seating_service,
    registration_service,
    checkout_service,
    payment_service,
    signup_service,
)
from macsync.services.cache_service import get_cached_events, set_cached_events
from macsync.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


def _event_payload(event: Event, registered_count: int) -> dict:
    data = EventResponse.model_validate(event).model_dump()
    data["registered_count"] = registered_count
    return data


@router.get("", response_model=EventListResponse)
async def list_events_endpoint(
    _: User = Depends(require_member),
    db: AsyncSession = Depends(get_db),
):
    """
    List all events by date with their registered counts.
    Cached in Redis; any event or ticket change invalidates the cache.
    """
    cached = await get_cached_events()
    if cached:
        logger.info("events_list_cache_hit")
        cached["cached"] = True
        return EventListResponse(**cached)

    rows = await event_service.list_events(db)
    response_data = {
        "events": [_event_payload(event, count) for event, count in rows],
        "count": len(rows),
        "cached": False,
    }
    await set_cached_events(response_data)

    return EventListResponse(**response_data)


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    event = await event_service.create_event(db, event_data)
    return _event_payload(event, 0)


@router.get("/{event_id}", response_model=EventDetailResponse)
async def get_event_endpoint(
    event_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Single event with live registered count and the caller's seats, if registered. Not cached."""
    event = await event_service.get_event(db, event_id)
    data = _event_payload(event, await event_service.count_tickets(db, event.id))

    ticket = await event_service.get_user_ticket(db, event.id, user.id)
    if ticket:
        data["user_ticket"] = {
            "ticket_id": ticket.id,
            "table_seat": ticket.table_seat,
            "bus_seat": ticket.bus_seat,
            "checked_in": ticket.checked_in,
        }
    return data


@router.put("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    event_id: int,
    event_data: EventUpdate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    event = await event_service.update_event(db, event_id, event_data)
    return _event_payload(event, await event_service.count_tickets(db, event.id))


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event_endpoint(
    event_id: int,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await event_service.delete_event(db, event_id)


@router.get("/{event_id}/seating", response_model=SeatingResponse)
async def seating_endpoint(
    event_id: int,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    event = await event_service.get_event(db, event_id)
    return await seating_service.seating_summary(db, event)


@router.post("/{event_id}/signup", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def signup_endpoint(
    event_id: int,
    data: SignupRequest = SignupRequest(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Register for a free event. Paid events go through /checkout."""
    return await registration_service.signup_for_event(db, event_id, user.id, data.selected_table)


@router.delete("/{event_id}/signup", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_signup_endpoint(
    event_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await registration_service.cancel_signup(db, event_id, user.id)


@router.post("/{event_id}/checkout", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
async def checkout_endpoint(
    event_id: int,
    data: CheckoutRequest = CheckoutRequest(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Hold a place and start a Stripe checkout for a paid event."""
    session, expires_at = await checkout_service.create_checkout_session(
        db,
        event_id,
        user,
        success_url=data.success_url,
        cancel_url=data.cancel_url,
        selected_table=data.selected_table,
    )
    return CheckoutResponse(session_id=session["id"], url=session["url"], expires_at=expires_at)


@router.get("/{event_id}/payments", response_model=PaymentListResponse)
async def event_payments_endpoint(
    event_id: int,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await event_service.get_event(db, event_id)
    payments = await payment_service.payments_for_event(db, event_id)
    return {"payments": payments, "count": len(payments)}


@router.put("/{event_id}/access", response_model=EventAccessResponse)
async def grant_access_endpoint(
    event_id: int,
    data: EventAccessGrant,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Grant or change a user's team portal access level for this event."""
    return await signup_service.grant_access(db, event_id, data.user_id, data.access_level)
