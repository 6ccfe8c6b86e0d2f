"""
Pydantic schemas for login codes, registration and sessions.
"""

import re
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from macsync.schemas.user import UserResponse

NAME_PATTERN = r"^[A-Za-z][A-Za-z\s'\-]*$"
PHONE_PATTERN = re.compile(r"^\+?\d{10,15}$")


class RequestCodeRequest(BaseModel):
    email: EmailStr


class RequestCodeResponse(BaseModel):
    sent: bool
    expires_at: datetime


class VerifyCodeRequest(BaseModel):
    email: EmailStr
    code: str = Field(..., pattern=r"^\d{6}$")


class VerifyCodeResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    needs_registration: bool
    user: Optional[UserResponse] = None


class CheckEmailRequest(BaseModel):
    email: EmailStr


class CheckEmailResponse(BaseModel):
    exists: bool
    has_password: bool
    profile_complete: bool


class RegisterRequest(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100, pattern=NAME_PATTERN)
    last_name: str = Field(..., min_length=1, max_length=100, pattern=NAME_PATTERN)
    phone_number: str
    program: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)
    confirm_password: str

    @field_validator("first_name", "last_name", "program")
    @classmethod
    def strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("phone_number")
    @classmethod
    def normalize_phone(cls, value: str) -> str:
        cleaned = re.sub(r"[\s()\-]", "", value)
        if not PHONE_PATTERN.match(cleaned):
            raise ValueError("phone number must be 10-15 digits, optionally starting with +")
        return cleaned

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("passwords do not match")
        return self


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserResponse


class TokenResponse(BaseModel):
    token: str


class MessageResponse(BaseModel):
    message: str
