"""
Authentication service: one-time email codes, registration and password login.

Login flow:
  1. request_code     -> a 6 digit code is mailed (hash stored, never the code)
  2. verify_code      -> access token when the profile is complete,
                         otherwise an onboarding token
  3. register         -> onboarding token + profile details -> access token
Users with a password can skip the code and call `login` directly.
"""

import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from macsync.models.user import User, VerificationToken
from macsync.schemas.auth import RegisterRequest
from macsync.core.clock import utcnow
from macsync.core.config import get_settings
from macsync.core.security import (
    hash_password,
    verify_password,
    create_access_token,
    create_onboarding_token,
    generate_verification_code,
    hash_verification_code,
)
from macsync.services import role_service, email_service
from macsync.services.user_service import get_user_by_email, normalize_email, display_name
from macsync.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


def _check_domain(email: str) -> None:
    if not email.endswith("@" + settings.ALLOWED_EMAIL_DOMAIN.lower()):
        logger.warning("login_code_rejected", reason="domain", email=email)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Only @{settings.ALLOWED_EMAIL_DOMAIN} email addresses can sign in",
        )


async def request_code(db: AsyncSession, email: str) -> datetime:
    """Issue a login code for the email and return when it expires."""
    email = normalize_email(email)
    _check_domain(email)

    code = generate_verification_code()
    expires_at = utcnow() + timedelta(minutes=settings.VERIFICATION_CODE_EXPIRE_MINUTES)
    db.add(VerificationToken(email=email, code_hash=hash_verification_code(code), expires_at=expires_at))
    await db.flush()

    await email_service.send_verification_code(email, code)
    logger.info("login_code_issued", email=email)
    return expires_at


async def verify_code(db: AsyncSession, email: str, code: str) -> tuple[str, bool, Optional[User]]:
    """
    Consume the newest unused code for the email.
    Returns (token, needs_registration, user).
    """
    email = normalize_email(email)
    result = await db.execute(
        select(VerificationToken)
        .where(
            VerificationToken.email == email,
            VerificationToken.used_at.is_(None),
            VerificationToken.expires_at > utcnow(),
        )
        .order_by(VerificationToken.created_at.desc(), VerificationToken.id.desc())
        .limit(1)
    )
    token = result.scalar_one_or_none()

    if not token or not secrets.compare_digest(token.code_hash, hash_verification_code(code)):
        logger.warning("login_code_invalid", email=email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired code",
        )

    token.used_at = utcnow()
    await db.flush()

    user = await get_user_by_email(db, email)
    if user and user.is_profile_complete:
        _ensure_active(user)
        logger.info("user_logged_in", user_id=user.id, method="code")
        return create_access_token(user.id, user.email), False, user

    logger.info("onboarding_started", email=email)
    return create_onboarding_token(email), True, user


async def check_email(db: AsyncSession, email: str) -> dict:
    user = await get_user_by_email(db, email)
    return {
        "exists": user is not None,
        "has_password": bool(user and user.has_password),
        "profile_complete": bool(user and user.is_profile_complete),
    }


async def register(db: AsyncSession, email: str, data: RegisterRequest) -> tuple[User, str]:
    """Create the user (or complete an admin-created one) and grant Member."""
    email = normalize_email(email)
    user = await get_user_by_email(db, email)

    if user and user.is_profile_complete:
        logger.warning("registration_failed", reason="already_registered", email=email)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already registered",
        )

    if user is None:
        user = User(email=email)
        db.add(user)

    user.first_name = data.first_name
    user.last_name = data.last_name
    user.name = display_name(data.first_name, data.last_name, email)
    user.phone_number = data.phone_number
    user.program = data.program
    user.password_hash = hash_password(data.password)
    await db.flush()
    await db.refresh(user)

    member = await role_service.get_or_create_role(db, role_service.MEMBER_ROLE)
    await role_service.assign_role(db, user, member.name, assigned_by=None)

    logger.info("user_registered", user_id=user.id, email=user.email)
    return user, create_access_token(user.id, user.email)


async def login(db: AsyncSession, email: str, password: str) -> tuple[User, str]:
    """
    Password login.
    Raises 401 if credentials are invalid, 403 if the account is deactivated.
    """
    email = normalize_email(email)
    user = await get_user_by_email(db, email)

    if not user or not verify_password(password, user.password_hash):
        logger.warning("login_failed", email=email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    _ensure_active(user)
    logger.info("user_logged_in", user_id=user.id, method="password")
    return user, create_access_token(user.id, user.email)


def _ensure_active(user: User) -> None:
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )
