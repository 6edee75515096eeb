"""
SkateSwap Backend - User Route Handlers
=========================================

What:  Registration, login, and the per-user profile endpoints.

Endpoints:
    POST /api/register
    POST /api/login
    GET  /api/users/{id}/listings   seller's listings with conversation counts
    GET  /api/users/{id}/stats      listing count, conversation count, total value
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from skateswap.database import get_db_session
from skateswap.schemas.common import ErrorResponse
from skateswap.schemas.listing import ListingListResponse
from skateswap.schemas.user import (
    LoginRequest,
    LoginResponse,
    RegisterResponse,
    UserRegister,
    UserStatsResponse,
)
from skateswap.services.listing_service import listing_service
from skateswap.services.user_service import user_service


router = APIRouter(prefix="/api", tags=["Users"])


@router.post(
    "/register",
    status_code=201,
    response_model=RegisterResponse,
    responses={400: {"description": "Username or email already exists", "model": ErrorResponse}},
    summary="Create an account",
)
async def register(
    data: UserRegister,
    db: AsyncSession = Depends(get_db_session),
) -> RegisterResponse:
    return await user_service.register(db=db, data=data)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"description": "Invalid email or password", "model": ErrorResponse}},
    summary="Log in and receive an access token",
)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    return await user_service.authenticate(db=db, email=data.email, password=data.password)


@router.get(
    "/users/{user_id}/listings",
    response_model=ListingListResponse,
    summary="A seller's listings",
    description="Newest first, each with the number of conversations opened on it.",
)
async def list_user_listings(
    user_id: int = Path(..., gt=0),
    db: AsyncSession = Depends(get_db_session),
) -> ListingListResponse:
    return await listing_service.list_seller_listings(db=db, seller_id=user_id)


@router.get(
    "/users/{user_id}/stats",
    response_model=UserStatsResponse,
    summary="Profile counters for one user",
)
async def user_stats(
    user_id: int = Path(..., gt=0),
    db: AsyncSession = Depends(get_db_session),
) -> UserStatsResponse:
    return await user_service.get_user_stats(db=db, user_id=user_id)
