"""
Role catalogue endpoint. Per-user role management lives under /users.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from macsync.db.session import get_db
from macsync.api.deps import require_admin
from macsync.models.user import User
from macsync.schemas.role import RoleListResponse
from macsync.services import role_service

router = APIRouter(prefix="/roles", tags=["Roles"])


@router.get("", response_model=RoleListResponse)
async def list_roles(_: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    roles = await role_service.list_roles(db)
    return {"roles": roles, "count": len(roles)}
