"""
SkateSwap Backend - Community Stats
=====================================

What:  Marketplace-wide counters for the landing page.
"""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from skateswap.exceptions import DatabaseError
from skateswap.models.listing import Listing
from skateswap.models.user import User
from skateswap.schemas.common import CommunityStatsResponse, UserCountResponse

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_WINDOW = timedelta(days=7)


class StatsService:

    async def community_stats(self, db: AsyncSession) -> CommunityStatsResponse:
        """Total listings, total users, and listings created in the last 7 days."""
        since = datetime.now(timezone.utc) - RECENT_ACTIVITY_WINDOW
        try:
            total_listings = await db.scalar(select(func.count(Listing.id)))
            total_users = await db.scalar(select(func.count(User.id)))
            recent_activity = await db.scalar(
                select(func.count(Listing.id)).where(Listing.created_at >= since)
            )
        except SQLAlchemyError as e:
            logger.error("Database error fetching community stats: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not retrieve community stats.") from e

        return CommunityStatsResponse(
            total_listings=total_listings or 0,
            total_users=total_users or 0,
            recent_activity=recent_activity or 0,
        )

    async def user_count(self, db: AsyncSession) -> UserCountResponse:
        try:
            count = await db.scalar(select(func.count(User.id)))
        except SQLAlchemyError as e:
            logger.error("Database error counting users: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not retrieve the user count.") from e
        return UserCountResponse(count=count or 0)


stats_service = StatsService()
