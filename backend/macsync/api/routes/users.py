"""
User administration endpoints. Admin only, except the self-or-admin record views.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from macsync.db.session import get_db
from macsync.api.deps import get_current_user, require_admin, ensure_self_or_admin
from macsync.models.user import User
from macsync.schemas.user import UserResponse, UserListResponse, UserCreate, UserUpdate, UserRolesReplace
from macsync.schemas.role import AssignRoleRequest, UserRoleResponse, UserRolesResponse
from macsync.schemas.ticket import TicketListResponse
from macsync.schemas.payment import PaymentListResponse
from macsync.services import user_service, role_service, registration_service, payment_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=UserListResponse)
async def list_users(_: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    users = await user_service.list_users(db)
    return {"users": users, "count": len(users)}


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.create_user(db, data, admin)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, _: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return await user_service.get_user(db, user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    data: UserUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.update_user(db, user_id, data, admin)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: int, admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    await user_service.delete_user(db, user_id, admin)


@router.get("/{user_id}/roles", response_model=UserRolesResponse)
async def get_user_roles(user_id: int, _: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    user = await user_service.get_user(db, user_id)
    roles = role_service.roles_of(user)
    return {"user_id": user.id, "roles": roles, "role_names": [role.name for role in roles]}


@router.post("/{user_id}/roles", response_model=UserRoleResponse, status_code=status.HTTP_201_CREATED)
async def assign_role(
    user_id: int,
    data: AssignRoleRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.get_user(db, user_id)
    user_role = await role_service.assign_role(db, user, data.role_name, assigned_by=admin.id)
    return {
        "user_id": user.id,
        "role_id": user_role.role.id,
        "role_name": user_role.role.name,
        "assigned_by": user_role.assigned_by,
        "assigned_at": user_role.assigned_at,
    }


@router.put("/{user_id}/roles", response_model=UserResponse)
async def replace_user_roles(
    user_id: int,
    data: UserRolesReplace,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.get_user(db, user_id)
    return await role_service.replace_roles(db, user, data.roles, assigned_by=admin.id)


@router.delete("/{user_id}/roles/{role_name}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_role(
    user_id: int,
    role_name: str,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.get_user(db, user_id)
    await role_service.revoke_role(db, user, role_name)


@router.get("/{user_id}/tickets", response_model=TicketListResponse)
async def user_tickets(
    user_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_self_or_admin(user, user_id)
    tickets = await registration_service.list_tickets_for_user(db, user_id)
    return {"tickets": tickets, "count": len(tickets)}


@router.get("/{user_id}/payments", response_model=PaymentListResponse)
async def user_payments(
    user_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_self_or_admin(user, user_id)
    payments = await payment_service.payments_for_user(db, user_id)
    return {"payments": payments, "count": len(payments)}
