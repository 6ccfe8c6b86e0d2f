"""
Pydantic schemas for roles and role assignments.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class RoleResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None

    model_config = {"from_attributes": True}


class RoleListResponse(BaseModel):
    roles: list[RoleResponse]
    count: int


class AssignRoleRequest(BaseModel):
    role_name: str = Field(..., min_length=1, max_length=100)


class UserRoleResponse(BaseModel):
    user_id: int
    role_id: int
    role_name: str
    assigned_by: Optional[int] = None
    assigned_at: datetime


class UserRolesResponse(BaseModel):
    user_id: int
    roles: list[RoleResponse]
    role_names: list[str]
