"""
Role lookup, assignment and the role checks used by route dependencies.

Two roles exist by default: Admin and Member. A user flagged
`is_system_admin` is treated as holding Admin without an assignment row.
"""

from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from macsync.models.user import User, Role, UserRole
from macsync.core.logging import get_logger

logger = get_logger(__name__)

ADMIN_ROLE = "Admin"
MEMBER_ROLE = "Member"

DEFAULT_ROLES = {
    ADMIN_ROLE: "Manages events, users, roles and refunds",
    MEMBER_ROLE: "Browses events and signs up",
}


def effective_role_names(user: User) -> set[str]:
    names = set(user.role_names)
    if user.is_system_admin:
        names.add(ADMIN_ROLE)
    return names


def has_any_role(user: User, role_names: Iterable[str]) -> bool:
    return bool(effective_role_names(user) & set(role_names))


def is_admin(user: User) -> bool:
    return has_any_role(user, [ADMIN_ROLE])


async def get_role_by_name(db: AsyncSession, name: str) -> Optional[Role]:
    result = await db.execute(select(Role).where(Role.name == name))
    return result.scalar_one_or_none()


async def get_or_create_role(db: AsyncSession, name: str) -> Role:
    role = await get_role_by_name(db, name)
    if role:
        return role

    role = Role(name=name, description=DEFAULT_ROLES.get(name))
    db.add(role)
    await db.flush()
    logger.info("role_created", role=name)
    return role


async def ensure_default_roles(db: AsyncSession) -> list[Role]:
    """Create Admin and Member when missing. Run at startup."""
    return [await get_or_create_role(db, name) for name in DEFAULT_ROLES]


async def list_roles(db: AsyncSession) -> list[Role]:
    result = await db.execute(select(Role).order_by(Role.name.asc()))
    return list(result.scalars().all())


async def _require_role(db: AsyncSession, name: str) -> Role:
    role = await get_role_by_name(db, name)
    if not role:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Role '{name}' not found",
        )
    return role


def roles_of(user: User) -> list[Role]:
    return sorted((ur.role for ur in user.user_roles), key=lambda role: role.name)


async def assign_role(db: AsyncSession, user: User, role_name: str, assigned_by: Optional[int]) -> UserRole:
    """Grant a role. Granting a role the user already holds returns the existing assignment."""
    role = await _require_role(db, role_name)

    for user_role in user.user_roles:
        if user_role.role_id == role.id:
            return user_role

    user_role = UserRole(role=role, assigned_by=assigned_by)
    user.user_roles.append(user_role)
    await db.flush()

    logger.info("role_assigned", user_id=user.id, role=role.name, assigned_by=assigned_by)
    return user_role


async def revoke_role(db: AsyncSession, user: User, role_name: str) -> None:
    role = await _require_role(db, role_name)

    for user_role in user.user_roles:
        if user_role.role_id == role.id:
            user.user_roles.remove(user_role)
            await db.flush()
            logger.info("role_revoked", user_id=user.id, role=role.name)
            return

    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"User {user.id} does not have role '{role_name}'",
    )


async def replace_roles(db: AsyncSession, user: User, role_names: list[str], assigned_by: Optional[int]) -> User:
    """Make the user's roles exactly `role_names`. Unknown names are rejected before anything changes."""
    wanted = list(dict.fromkeys(role_names))
    available = {role.name: role for role in await list_roles(db)}

    unknown = [name for name in wanted if name not in available]
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown roles: {', '.join(unknown)}. Available roles: {', '.join(sorted(available))}",
        )

    for user_role in list(user.user_roles):
        if user_role.role.name not in wanted:
            user.user_roles.remove(user_role)

    held = {user_role.role.name for user_role in user.user_roles}
    for name in wanted:
        if name not in held:
            user.user_roles.append(UserRole(role=available[name], assigned_by=assigned_by))

    await db.flush()
    logger.info("roles_replaced", user_id=user.id, roles=wanted, assigned_by=assigned_by)
    return user
