"""
Password hashing, JWT issuance/validation and one-time login codes.

Two kinds of JWT are issued:
  - access tokens   {"sub": "<user id>", "email": ..., "type": "access"}
  - onboarding      {"email": ..., "type": "onboarding"}, handed out after a
                    verified login code for an email without a complete profile

Tokens are read from the auth cookie first, then from the Authorization header.
"""

import hashlib
import secrets
from datetime import timedelta
from typing import Optional

import bcrypt
from fastapi import Request
from jose import JWTError, jwt

from macsync.core.clock import utcnow
from macsync.core.config import get_settings

settings = get_settings()

ACCESS_TOKEN = "access"
ONBOARDING_TOKEN = "onboarding"


# bcrypt only reads the first 72 bytes and newer releases reject longer input
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed_password: Optional[str]) -> bool:
    if not password or not hashed_password:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed hash stored for the user
        return False


def _encode(claims: dict, expires_minutes: int) -> str:
    to_encode = claims.copy()
    to_encode["exp"] = utcnow() + timedelta(minutes=expires_minutes)
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(user_id: int, email: str) -> str:
    return _encode(
        {"sub": str(user_id), "email": email, "type": ACCESS_TOKEN},
        settings.ACCESS_TOKEN_EXPIRE_MINUTES,
    )


def create_onboarding_token(email: str) -> str:
    return _encode(
        {"email": email, "type": ONBOARDING_TOKEN},
        settings.ONBOARDING_TOKEN_EXPIRE_MINUTES,
    )


def decode_token(token: str, expected_type: str) -> Optional[dict]:
    """Return the claims of a valid, unexpired token of the given kind, else None."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != expected_type or not payload.get("email"):
        return None
    if expected_type == ACCESS_TOKEN and not payload.get("sub"):
        return None
    return payload


def extract_token(request: Request) -> Optional[str]:
    cookie_token = request.cookies.get(settings.AUTH_COOKIE_NAME)
    if cookie_token:
        return cookie_token

    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        token = header[len("Bearer "):].strip()
        return token or None
    return None


def generate_verification_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def hash_verification_code(code: str) -> str:
    return hashlib.sha256(f"{code}.{settings.code_hash_secret}".encode("utf-8")).hexdigest()


def generate_qr_code_data() -> str:
    return f"MST-{secrets.token_urlsafe(18)}"
