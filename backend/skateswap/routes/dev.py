"""
SkateSwap Backend - Development Routes
========================================

What:  Demo data for local development.
When:  Mounted by main.py only when ENABLE_DEV_ROUTES=true.

Endpoints:
    POST /api/setup-db              demo user (test@example.com / password123)
    POST /api/create-sample-posts   three sample listings for the demo user
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from skateswap.database import get_db_session
from skateswap.schemas.common import ErrorResponse, SampleListingsResponse, SetupResponse
from skateswap.services.seed_service import seed_service

router = APIRouter(prefix="/api", tags=["Development"])


@router.post(
    "/setup-db",
    response_model=SetupResponse,
    summary="Create the demo user if there are no users yet",
)
async def setup_db(db: AsyncSession = Depends(get_db_session)) -> SetupResponse:
    return await seed_service.ensure_demo_user(db=db)


@router.post(
    "/create-sample-posts",
    status_code=201,
    response_model=SampleListingsResponse,
    responses={400: {"description": "Demo user missing", "model": ErrorResponse}},
    summary="Create three sample listings for the demo user",
)
async def create_sample_posts(db: AsyncSession = Depends(get_db_session)) -> SampleListingsResponse:
    return await seed_service.create_sample_listings(db=db)
