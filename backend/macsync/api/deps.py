"""
Request dependencies for authentication and role checks.

Tokens are taken from the auth cookie first, then the Authorization header.
"""

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from macsync.db.session import get_db
from macsync.models.user import User
from macsync.core.security import ACCESS_TOKEN, ONBOARDING_TOKEN, decode_token, extract_token
from macsync.services.role_service import ADMIN_ROLE, MEMBER_ROLE, has_any_role


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_token(request: Request) -> str:
    token = extract_token(request)
    if not token:
        raise _unauthorized("Not authenticated")
    return token


async def get_current_user(
    token: str = Depends(get_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    payload = decode_token(token, ACCESS_TOKEN)
    if not payload:
        raise _unauthorized("Invalid or expired token")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token subject")

    user = await db.get(User, user_id)
    if not user or not user.is_active:
        raise _unauthorized("User not found or inactive")
    return user


def require_roles(*role_names: str):
    """Dependency factory: the caller must hold one of `role_names` (system admins count as Admin)."""

    async def dependency(user: User = Depends(get_current_user)) -> User:
        if not has_any_role(user, role_names):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return dependency


require_admin = require_roles(ADMIN_ROLE)
require_member = require_roles(MEMBER_ROLE, ADMIN_ROLE)


def get_onboarding_email(token: str = Depends(get_token)) -> str:
    payload = decode_token(token, ONBOARDING_TOKEN)
    if not payload:
        raise _unauthorized("Invalid or expired onboarding token")
    return payload["email"]


def ensure_self_or_admin(user: User, user_id: int) -> None:
    if user.id != user_id and not has_any_role(user, [ADMIN_ROLE]):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only access your own records",
        )
