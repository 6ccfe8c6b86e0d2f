"""
User administration: lookup, create, update and delete.
"""

from typing import Optional

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from macsync.models.user import User, UserRole
from macsync.models.ticket import Ticket, TableSeat, BusSeat, SeatReservation
from macsync.models.payment import Payment
from macsync.models.signup import EventAccess, BusSignup, TableSignup, EventRsvp
from macsync.schemas.user import UserCreate, UserUpdate
from macsync.core.security import hash_password, verify_password
from macsync.services import role_service
from macsync.services.cache_service import invalidate_event_cache
from macsync.core.logging import get_logger

logger = get_logger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def display_name(first_name: Optional[str], last_name: Optional[str], fallback: str = "") -> str:
    full = " ".join(part.strip() for part in (first_name, last_name) if part and part.strip())
    return full or fallback


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found",
        )
    return user


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.id.asc()))
    return list(result.scalars().all())


async def create_user(db: AsyncSession, user_data: UserCreate, acting_user: User) -> User:
    email = normalize_email(user_data.email)
    if await get_user_by_email(db, email):
        logger.warning("user_create_failed", reason="email_exists", email=email)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    user = User(
        email=email,
        name=user_data.name or display_name(user_data.first_name, user_data.last_name),
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        phone_number=user_data.phone_number,
        program=user_data.program,
        password_hash=hash_password(user_data.password) if user_data.password else None,
        is_system_admin=user_data.is_system_admin,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    if user_data.roles:
        await role_service.replace_roles(db, user, user_data.roles, assigned_by=acting_user.id)

    logger.info("user_created", user_id=user.id, email=user.email, created_by=acting_user.id)
    return user


async def update_user(db: AsyncSession, user_id: int, user_data: UserUpdate, acting_user: User) -> User:
    user = await get_user(db, user_id)
    changes = user_data.model_dump(exclude_unset=True, exclude={"admin_password"})

    if "is_system_admin" in changes and changes["is_system_admin"] != user.is_system_admin:
        if not user_data.admin_password:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Your password is required to change system admin status",
            )
        if not verify_password(user_data.admin_password, acting_user.password_hash):
            logger.warning("admin_password_rejected", acting_user_id=acting_user.id, target_user_id=user.id)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid admin password",
            )

    if changes.get("email"):
        changes["email"] = normalize_email(changes["email"])
        if changes["email"] != user.email and await get_user_by_email(db, changes["email"]):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Email already registered",
            )

    password = changes.pop("password", None)
    if password:
        user.password_hash = hash_password(password)

    for field, value in changes.items():
        if value is None and field in ("email", "is_active", "is_system_admin", "name"):
            continue
        setattr(user, field, value)

    await db.flush()
    logger.info("user_updated", user_id=user.id, fields=sorted(changes), updated_by=acting_user.id)
    return user


async def delete_user(db: AsyncSession, user_id: int, acting_user: User) -> None:
    """Delete a user, their tickets, holds, payments and signups. Seats they held become free."""
    if user_id == acting_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account",
        )

    user = await get_user(db, user_id)
    ticket_ids = select(Ticket.id).where(Ticket.user_id == user.id)

    await db.execute(update(TableSeat).where(TableSeat.ticket_id.in_(ticket_ids)).values(ticket_id=None))
    await db.execute(update(BusSeat).where(BusSeat.ticket_id.in_(ticket_ids)).values(ticket_id=None))
    await db.execute(delete(SeatReservation).where(SeatReservation.user_id == user.id))
    await db.execute(delete(Payment).where(Payment.user_id == user.id))
    await db.execute(delete(Ticket).where(Ticket.user_id == user.id))
    for model in (BusSignup, TableSignup, EventRsvp):
        await db.execute(delete(model).where(model.user_id == user.id))
        await db.execute(update(model).where(model.acted_by == user.id).values(acted_by=None))
    await db.execute(delete(EventAccess).where(EventAccess.user_id == user.id))
    await db.execute(update(UserRole).where(UserRole.assigned_by == user.id).values(assigned_by=None))

    await db.delete(user)
    await db.flush()
    await invalidate_event_cache()

    logger.info("user_deleted", user_id=user_id, deleted_by=acting_user.id)
