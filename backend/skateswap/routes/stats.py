"""
SkateSwap Backend - Community Stats Routes
============================================

What:  Landing page counters.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from skateswap.database import get_db_session
from skateswap.schemas.common import CommunityStatsResponse, UserCountResponse
from skateswap.services.stats_service import stats_service

router = APIRouter(prefix="/api/stats", tags=["Stats"])


@router.get(
    "/community",
    response_model=CommunityStatsResponse,
    summary="Total listings, total users and listings from the last 7 days",
)
async def community_stats(
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> CommunityStatsResponse:
    # Landing page polls this; a minute of staleness is fine
    response.headers["Cache-Control"] = "public, max-age=60"
    return await stats_service.community_stats(db=db)


@router.get(
    "/users",
    response_model=UserCountResponse,
    summary="Number of registered users",
)
async def user_count(
    db: AsyncSession = Depends(get_db_session),
) -> UserCountResponse:
    return await stats_service.user_count(db=db)
