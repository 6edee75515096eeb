"""
SkateSwap Backend - Listing Service
=====================================

What:  Create, replace, delete and read marketplace listings.
How:   Every write runs the client's image input through the image codec
       (encode + primary fallback); every read decodes the stored
       `image_urls` column before it reaches a response model.
Who:   Called by the listing routes and by the dev seeding routes.
When:  Once per listing request; each call uses the request's own session.

Write path (POST / PUT):
    ┌──────────────┐    ┌─────────────────┐    ┌──────────────────────────┐
    │ ListingCreate│───▶│ image_set_codec │───▶│ Listing row              │
    │ (classified  │    │ .build()        │    │  image_urls = encode(..) │
    │  image input)│    │ .encode()       │    │  primary_image_url = ..  │
    └──────────────┘    └─────────────────┘    └──────────────────────────┘

Read path (GET):
    Listing row ──▶ image_set_codec.decode(image_urls) ──▶ ListingResponse
                    (malformed value → [] + WARNING log)

Ownership:
    PUT and DELETE carry the requester's seller_id. The listing is loaded
    first; a missing listing is a 404, a different seller a 403, and
    nothing is mutated in either case.
"""

import logging
from typing import Optional

from sqlalchemy import delete, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from skateswap.exceptions import (
    DatabaseError,
    NotFoundError,
    PermissionDeniedError,
    SkateSwapError,
)
from skateswap.models.conversation import Conversation, Message
from skateswap.models.listing import Listing
from skateswap.models.user import User
from skateswap.schemas.listing import (
    ListingCreate,
    ListingListResponse,
    ListingResponse,
    ListingUpdate,
)
from skateswap.services.image_codec import image_set_codec

logger = logging.getLogger(__name__)


class ListingService:
    """
    Business logic for listings.

    Responsibilities:
        - create_listing() / update_listing(): write path (encode images,
          resolve the primary image, persist)
        - get_listing() / list_listings() / list_seller_listings(): read
          path (decode images)
        - delete_listing(): ownership-checked delete, conversations included

    Error Handling Strategy:
        Application exceptions propagate unchanged. SQLAlchemy errors are
        logged and wrapped in DatabaseError so no SQL reaches the client.
    """

    # ── Write path ────────────────────────────────────────────────────────

    async def create_listing(self, db: AsyncSession, data: ListingCreate) -> ListingResponse:
        """
        Persist a new listing for `data.seller_id`.

        Returns:
            The listing as stored, with image_urls decoded from the column
            value just written.

        Raises:
            NotFoundError: The seller does not exist (→ 404)
            DatabaseError: Insert failed (→ 500)
        """
        try:
            seller = await db.get(User, data.seller_id)
            if seller is None:
                raise NotFoundError(resource="user", resource_id=str(data.seller_id))

            listing = Listing(seller_id=data.seller_id)
            self._apply(listing, data)
            db.add(listing)
            await db.flush()

            logger.info(
                "Listing %s created by seller %s (primary image: %s)",
                listing.id,
                listing.seller_id,
                "yes" if listing.primary_image_url else "no",
            )
            return self._to_response(
                listing,
                seller_name=seller.username,
                seller_email=seller.email,
            )

        except SkateSwapError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error creating listing: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the listing. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

    async def update_listing(
        self,
        db: AsyncSession,
        listing_id: int,
        data: ListingUpdate,
    ) -> ListingResponse:
        """
        Replace every editable field of a listing, images included.

        The primary image follows the same rule as on create: an explicit
        primary_image_url wins, otherwise the first of the new images,
        otherwise NULL.

        Raises:
            NotFoundError: No listing with this id (→ 404)
            PermissionDeniedError: data.seller_id is not the listing's seller (→ 403)
            DatabaseError: Update failed (→ 500)
        """
        try:
            listing = await self._get_owned(db, listing_id, data.seller_id, action="edit")

            self._apply(listing, data)
            await db.flush()

            seller = await db.get(User, listing.seller_id)
            logger.info("Listing %s updated by seller %s", listing.id, listing.seller_id)
            return self._to_response(
                listing,
                seller_name=seller.username if seller else None,
                seller_email=seller.email if seller else None,
            )

        except SkateSwapError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error updating listing %s: %s", listing_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not update the listing. Please try again.",
                context={"listing_id": listing_id},
            ) from e

    async def delete_listing(self, db: AsyncSession, listing_id: int, seller_id: int) -> None:
        """
        Delete a listing together with its conversations and their messages.

        Child rows are deleted explicitly so the result does not depend on
        the database enforcing ON DELETE CASCADE.

        Raises:
            NotFoundError: No listing with this id (→ 404)
            PermissionDeniedError: seller_id is not the listing's seller (→ 403)
            DatabaseError: Delete failed (→ 500)
        """
        try:
            listing = await self._get_owned(db, listing_id, seller_id, action="delete")

            conversation_ids = select(Conversation.id).where(Conversation.listing_id == listing.id)
            await db.execute(delete(Message).where(Message.conversation_id.in_(conversation_ids)))
            await db.execute(delete(Conversation).where(Conversation.listing_id == listing.id))
            await db.delete(listing)
            await db.flush()

            logger.info("Listing %s deleted by seller %s", listing_id, seller_id)

        except SkateSwapError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error deleting listing %s: %s", listing_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not delete the listing. Please try again.",
                context={"listing_id": listing_id},
            ) from e

    # ── Read path ─────────────────────────────────────────────────────────

    async def get_listing(self, db: AsyncSession, listing_id: int) -> ListingResponse:
        """
        Single listing with its seller's name and email.

        Raises:
            NotFoundError: No listing with this id (→ 404)
            DatabaseError: Query failed (→ 500)
        """
        try:
            result = await db.execute(
                select(Listing, User.username, User.email)
                .join(User, Listing.seller_id == User.id)
                .where(Listing.id == listing_id)
            )
            row = result.one_or_none()
            if row is None:
                raise NotFoundError(resource="listing", resource_id=str(listing_id))

            listing, seller_name, seller_email = row
            return self._to_response(listing, seller_name=seller_name, seller_email=seller_email)

        except SkateSwapError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error fetching listing %s: %s", listing_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the listing. Please try again.",
                context={"listing_id": listing_id},
            ) from e

    async def list_listings(self, db: AsyncSession) -> ListingListResponse:
        """
        The marketplace feed: every listing, newest first, with seller
        name, email and location.
        """
        try:
            result = await db.execute(
                select(Listing, User.username, User.email, User.location)
                .join(User, Listing.seller_id == User.id)
                .order_by(desc(Listing.created_at), desc(Listing.id))
            )
            listings = [
                self._to_response(
                    listing,
                    seller_name=seller_name,
                    seller_email=seller_email,
                    seller_location=seller_location,
                )
                for listing, seller_name, seller_email, seller_location in result.all()
            ]
            return ListingListResponse(listings=listings, total_count=len(listings))

        except SQLAlchemyError as e:
            logger.error("Database error listing listings: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve listings. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

    async def list_seller_listings(self, db: AsyncSession, seller_id: int) -> ListingListResponse:
        """
        One seller's listings, newest first, each with the number of
        conversations buyers have opened on it.
        """
        conversation_count = (
            select(func.count(Conversation.id))
            .where(Conversation.listing_id == Listing.id)
            .correlate(Listing)
            .scalar_subquery()
        )
        try:
            result = await db.execute(
                select(Listing, conversation_count.label("conversation_count"))
                .where(Listing.seller_id == seller_id)
                .order_by(desc(Listing.created_at), desc(Listing.id))
            )
            listings = [
                self._to_response(listing, conversation_count=count or 0)
                for listing, count in result.all()
            ]
            return ListingListResponse(listings=listings, total_count=len(listings))

        except SQLAlchemyError as e:
            logger.error("Database error listing seller %s listings: %s", seller_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve your listings. Please try again.",
                context={"seller_id": seller_id},
            ) from e

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _get_owned(
        self,
        db: AsyncSession,
        listing_id: int,
        seller_id: int,
        action: str,
    ) -> Listing:
        listing = await db.get(Listing, listing_id)
        if listing is None:
            raise NotFoundError(resource="listing", resource_id=str(listing_id))
        if listing.seller_id != seller_id:
            logger.warning(
                "Seller %s tried to %s listing %s owned by %s",
                seller_id, action, listing_id, listing.seller_id,
            )
            raise PermissionDeniedError(
                message=f"Not authorized to {action} this listing",
                context={"listing_id": listing_id},
            )
        return listing

    def _apply(self, listing: Listing, data: ListingCreate) -> None:
        """Copy request fields onto the row; images go through the codec."""
        image_set = image_set_codec.build(data.image_urls, data.primary_image_url)

        listing.title = data.title
        listing.category = data.category
        listing.price = data.price
        listing.condition = data.condition
        listing.description = data.description
        listing.location = data.location
        listing.image_urls = image_set_codec.encode(image_set.images)
        listing.primary_image_url = image_set.primary

    def _to_response(
        self,
        listing: Listing,
        seller_name: Optional[str] = None,
        seller_email: Optional[str] = None,
        seller_location: Optional[str] = None,
        conversation_count: Optional[int] = None,
    ) -> ListingResponse:
        return ListingResponse(
            id=listing.id,
            seller_id=listing.seller_id,
            title=listing.title,
            category=listing.category,
            price=listing.price,
            condition=listing.condition,
            description=listing.description,
            location=listing.location,
            image_urls=image_set_codec.decode(listing.image_urls, listing_id=listing.id),
            primary_image_url=listing.primary_image_url,
            created_at=listing.created_at,
            seller_name=seller_name,
            seller_email=seller_email,
            seller_location=seller_location,
            conversation_count=conversation_count,
        )


# ── Singleton Instance ────────────────────────────────────────────────────
listing_service = ListingService()
