"""
SkateSwap Backend - Listing Route Handlers
============================================

What:  CRUD endpoints for marketplace listings.
How:   Thin handlers: parse the body, delegate to ListingService, return JSON.
Who:   Called by the marketplace feed, item detail page and "sell" form.

Endpoints:
    POST   /api/listings          create (201)
    GET    /api/listings          marketplace feed, newest first
    GET    /api/listings/{id}     item detail
    PUT    /api/listings/{id}     full replacement, seller only
    DELETE /api/listings/{id}     delete with its conversations, seller only

A seller's own listings live under /api/users/{id}/listings (users.py).
"""

from fastapi import APIRouter, Body, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from skateswap.database import get_db_session
from skateswap.schemas.common import ErrorResponse
from skateswap.schemas.listing import (
    DeleteResponse,
    ListingCreate,
    ListingDelete,
    ListingListResponse,
    ListingMutationResponse,
    ListingResponse,
    ListingUpdate,
)
from skateswap.services.listing_service import listing_service


router = APIRouter(prefix="/api", tags=["Listings"])


@router.post(
    "/listings",
    status_code=201,
    response_model=ListingMutationResponse,
    responses={
        201: {"description": "Listing created", "model": ListingMutationResponse},
        404: {"description": "Seller not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Post a new listing",
    description=(
        "Creates a listing. `imageUrls` may be a list of URLs, a single URL or null; "
        "when `primaryImageUrl` is omitted the first image becomes the primary image."
    ),
)
async def create_listing(
    data: ListingCreate,
    db: AsyncSession = Depends(get_db_session),
) -> ListingMutationResponse:
    listing = await listing_service.create_listing(db=db, data=data)
    return ListingMutationResponse(message="Listing created successfully", listing=listing)


@router.get(
    "/listings",
    response_model=ListingListResponse,
    summary="Marketplace feed",
    description="Every listing, newest first, with seller name, email and location.",
)
async def list_listings(
    db: AsyncSession = Depends(get_db_session),
) -> ListingListResponse:
    return await listing_service.list_listings(db=db)


@router.get(
    "/listings/{listing_id}",
    response_model=ListingResponse,
    responses={404: {"description": "Listing not found", "model": ErrorResponse}},
    summary="Get a single listing",
)
async def get_listing(
    listing_id: int = Path(..., gt=0),
    db: AsyncSession = Depends(get_db_session),
) -> ListingResponse:
    return await listing_service.get_listing(db=db, listing_id=listing_id)


@router.put(
    "/listings/{listing_id}",
    response_model=ListingMutationResponse,
    responses={
        403: {"description": "Requester is not the seller", "model": ErrorResponse},
        404: {"description": "Listing not found", "model": ErrorResponse},
    },
    summary="Replace a listing",
    description=(
        "Full replacement of every editable field. Images omitted from the body are "
        "cleared; the primary image falls back to the first image as on create."
    ),
)
async def update_listing(
    data: ListingUpdate,
    listing_id: int = Path(..., gt=0),
    db: AsyncSession = Depends(get_db_session),
) -> ListingMutationResponse:
    listing = await listing_service.update_listing(db=db, listing_id=listing_id, data=data)
    return ListingMutationResponse(message="Listing updated successfully", listing=listing)


@router.delete(
    "/listings/{listing_id}",
    response_model=DeleteResponse,
    responses={
        403: {"description": "Requester is not the seller", "model": ErrorResponse},
        404: {"description": "Listing not found", "model": ErrorResponse},
    },
    summary="Delete a listing",
)
async def delete_listing(
    listing_id: int = Path(..., gt=0),
    data: ListingDelete = Body(...),
    db: AsyncSession = Depends(get_db_session),
) -> DeleteResponse:
    await listing_service.delete_listing(db=db, listing_id=listing_id, seller_id=data.seller_id)
    return DeleteResponse()
