"""
Authentication endpoints: login codes, registration, password login and session.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from macsync.db.session import get_db
from macsync.api.deps import get_current_user, get_onboarding_email, get_token
from macsync.models.user import User
from macsync.schemas.auth import (
    RequestCodeRequest,
    RequestCodeResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
    CheckEmailRequest,
    CheckEmailResponse,
    RegisterRequest,
    LoginRequest,
    AuthResponse,
    TokenResponse,
    MessageResponse,
)
from macsync.schemas.user import UserResponse
from macsync.services import auth_service
from macsync.core.config import get_settings

settings = get_settings()
router = APIRouter(prefix="/auth", tags=["Authentication"])


def _set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.AUTH_COOKIE_SECURE,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
    )


@router.post("/request-code", response_model=RequestCodeResponse)
async def request_code(data: RequestCodeRequest, db: AsyncSession = Depends(get_db)):
    """Email a one-time login code."""
    expires_at = await auth_service.request_code(db, data.email)
    return RequestCodeResponse(sent=True, expires_at=expires_at)


@router.post("/verify-code", response_model=VerifyCodeResponse)
async def verify_code(data: VerifyCodeRequest, response: Response, db: AsyncSession = Depends(get_db)):
    """Exchange a login code for an access token, or an onboarding token for new users."""
    token, needs_registration, user = await auth_service.verify_code(db, data.email, data.code)
    if not needs_registration:
        _set_auth_cookie(response, token)
    return VerifyCodeResponse(
        token=token,
        needs_registration=needs_registration,
        user=UserResponse.model_validate(user) if user and not needs_registration else None,
    )


@router.post("/check-email", response_model=CheckEmailResponse)
async def check_email(data: CheckEmailRequest, db: AsyncSession = Depends(get_db)):
    return await auth_service.check_email(db, data.email)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    response: Response,
    email: str = Depends(get_onboarding_email),
    db: AsyncSession = Depends(get_db),
):
    """Complete the profile of a verified email. Requires an onboarding token."""
    user, token = await auth_service.register(db, email, data)
    _set_auth_cookie(response, token)
    return AuthResponse(token=token, user=UserResponse.model_validate(user))


@router.post("/login", response_model=AuthResponse)
async def login(data: LoginRequest, response: Response, db: AsyncSession = Depends(get_db)):
    """Authenticate with email and password."""
    user, token = await auth_service.login(db, data.email, data.password)
    _set_auth_cookie(response, token)
    return AuthResponse(token=token, user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)):
    return user


@router.get("/token", response_model=TokenResponse)
async def token(_: User = Depends(get_current_user), raw_token: str = Depends(get_token)):
    """Return the caller's token, e.g. for clients that only hold the cookie."""
    return TokenResponse(token=raw_token)


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
    response.delete_cookie(key=settings.AUTH_COOKIE_NAME, path="/")
    return MessageResponse(message="Logged out successfully")
