"""
Admin dashboard statistics.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from macsync.db.session import get_db
from macsync.api.deps import require_admin
from macsync.models.user import User
from macsync.schemas.stats import StatsResponse
from macsync.services import stats_service

router = APIRouter(prefix="/stats", tags=["Stats"])


@router.get("", response_model=StatsResponse)
async def get_stats(_: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return await stats_service.get_stats(db)
