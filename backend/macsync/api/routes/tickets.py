"""
Door check-in by ticket QR code.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from macsync.db.session import get_db
from macsync.api.deps import require_admin
from macsync.models.user import User
from macsync.schemas.ticket import CheckInRequest, TicketResponse
from macsync.services import registration_service

router = APIRouter(prefix="/tickets", tags=["Tickets"])


@router.post("/check-in", response_model=TicketResponse)
async def check_in(data: CheckInRequest, _: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return await registration_service.check_in(db, data.qr_code_data)
