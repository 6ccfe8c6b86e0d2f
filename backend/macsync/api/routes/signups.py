"""
Team portal endpoints: bus routes, event tables, RSVPs and their waitlists.
Access is per event (see PUT /events/{event_id}/access).
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from macsync.db.session import get_db
from macsync.api.deps import get_current_user
from macsync.models.user import User
from macsync.schemas.signup import (
    BusRouteCreate,
    BusRouteSummary,
    EventTableCreate,
    EventTableSummary,
    BusSignupCreate,
    TableSignupCreate,
    RsvpCreate,
    SignupResponse,
    SignupListResponse,
    SignupStatusUpdate,
)
from macsync.services import signup_service

router = APIRouter(tags=["Signups"])


@router.get("/events/{event_id}/bus-routes", response_model=list[BusRouteSummary])
async def list_bus_routes(event_id: int, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    await signup_service.ensure_event_access(db, user, event_id, "user")
    return await signup_service.list_bus_routes(db, event_id)


@router.post("/events/{event_id}/bus-routes", response_model=BusRouteSummary, status_code=status.HTTP_201_CREATED)
async def create_bus_route(
    event_id: int,
    data: BusRouteCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await signup_service.ensure_event_access(db, user, event_id, "admin")
    return await signup_service.create_bus_route(db, event_id, data)


@router.get("/events/{event_id}/event-tables", response_model=list[EventTableSummary])
async def list_event_tables(event_id: int, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    await signup_service.ensure_event_access(db, user, event_id, "user")
    return await signup_service.list_event_tables(db, event_id)


@router.post("/events/{event_id}/event-tables", response_model=EventTableSummary, status_code=status.HTTP_201_CREATED)
async def create_event_table(
    event_id: int,
    data: EventTableCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await signup_service.ensure_event_access(db, user, event_id, "admin")
    return await signup_service.create_event_table(db, event_id, data)


@router.post("/events/{event_id}/bus-signups", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def create_bus_signup(
    event_id: int,
    data: BusSignupCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await signup_service.ensure_event_access(db, user, event_id, "user")
    return await signup_service.create_bus_signup(db, user, event_id, data)


@router.post("/events/{event_id}/table-signups", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def create_table_signup(
    event_id: int,
    data: TableSignupCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await signup_service.ensure_event_access(db, user, event_id, "user")
    return await signup_service.create_table_signup(db, user, event_id, data)


@router.post("/events/{event_id}/rsvps", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def create_rsvp(
    event_id: int,
    data: RsvpCreate = RsvpCreate(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await signup_service.ensure_event_access(db, user, event_id, "user")
    return await signup_service.create_rsvp(db, user, event_id, data)


@router.get("/events/{event_id}/signups", response_model=SignupListResponse)
async def list_event_signups(event_id: int, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    await signup_service.ensure_event_access(db, user, event_id, "admin")
    signups = await signup_service.list_signups_for_event(db, event_id)
    return {"signups": signups, "count": len(signups)}


@router.patch("/signups/{signup_id}/status", response_model=SignupResponse)
async def update_signup_status(
    signup_id: int,
    data: SignupStatusUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Confirm, waitlist or cancel a signup. Requires admin access to the signup's event."""
    return await signup_service.update_signup_status(db, user, signup_id, data)
