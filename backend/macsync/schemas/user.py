"""
Pydantic schemas for user-related request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import AliasChoices, BaseModel, EmailStr, Field


class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    program: Optional[str] = None
    is_system_admin: bool
    is_active: bool
    roles: list[str] = Field(default_factory=list, validation_alias=AliasChoices("role_names", "roles"))
    created_at: datetime

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    users: list[UserResponse]
    count: int


class UserCreate(BaseModel):
    email: EmailStr
    name: Optional[str] = Field(None, max_length=255)
    first_name: Optional[str] = Field(None, max_length=255)
    last_name: Optional[str] = Field(None, max_length=255)
    phone_number: Optional[str] = Field(None, max_length=50)
    program: Optional[str] = Field(None, max_length=255)
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    is_system_admin: bool = False
    roles: list[str] = Field(default_factory=list)


class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, max_length=255)
    first_name: Optional[str] = Field(None, max_length=255)
    last_name: Optional[str] = Field(None, max_length=255)
    phone_number: Optional[str] = Field(None, max_length=50)
    program: Optional[str] = Field(None, max_length=255)
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    is_active: Optional[bool] = None
    is_system_admin: Optional[bool] = None
    # Acting admin's own password, required when is_system_admin changes
    admin_password: Optional[str] = None


class UserRolesReplace(BaseModel):
    roles: list[str]
