"""
SkateSwap Backend - Listing Service Tests
===========================================

What:  Tests for ListingService writes (image encoding, primary fallback,
       ownership) and reads (image decoding, ordering, counts).
How:   Ownership and not-found paths use mock DB sessions; storage
       behaviour runs against an in-memory SQLite database.

What we test:
    ✅ Create persists the encoded gallery and the resolved primary image
    ✅ Create with no images stores NULL and reads back [] / None
    ✅ Update re-resolves the primary with the create-time rule
    ✅ Update/delete by another seller → PermissionDeniedError, row untouched
    ✅ Missing listing → NotFoundError
    ✅ Reads decode legacy bare-URL rows and survive malformed rows
    ✅ Delete removes conversations and messages
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, select

from skateswap.exceptions import NotFoundError, PermissionDeniedError
from skateswap.models.conversation import Conversation, Message
from skateswap.models.listing import Listing
from skateswap.schemas.listing import ListingCreate, ListingUpdate
from skateswap.services.listing_service import ListingService


def listing_payload(seller_id, **overrides):
    data = {
        "seller_id": seller_id,
        "title": "Baker Brand Logo Deck",
        "category": "decks",
        "price": Decimal("55.00"),
        "condition": "good",
        "description": "8.25 inch, light scuffs on the tail.",
        "location": "Nairobi, Kenya",
    }
    data.update(overrides)
    return data


async def stored_row(db_session, listing_id) -> Listing:
    """The raw row as persisted, bypassing the service."""
    result = await db_session.execute(select(Listing).where(Listing.id == listing_id))
    row = result.scalar_one()
    await db_session.refresh(row)
    return row


# ══════════════════════════════════════════════════════════════════════════
# Unit tests (mocked session)
# ══════════════════════════════════════════════════════════════════════════


class TestListingServiceOwnership:
    """Ownership and existence checks happen before any mutation."""

    def setup_method(self):
        self.service = ListingService()

    def _existing_listing(self, seller_id=1):
        listing = MagicMock(spec=Listing)
        listing.id = 10
        listing.seller_id = seller_id
        listing.title = "Original title"
        listing.image_urls = '["keep.jpg"]'
        listing.primary_image_url = "keep.jpg"
        return listing

    @pytest.mark.asyncio
    async def test_update_missing_listing_raises_not_found(self, mock_db_session):
        mock_db_session.get.return_value = None

        with pytest.raises(NotFoundError):
            await self.service.update_listing(
                mock_db_session, 99, ListingUpdate(**listing_payload(seller_id=1))
            )
        mock_db_session.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_by_other_seller_is_denied_and_untouched(self, mock_db_session):
        listing = self._existing_listing(seller_id=1)
        mock_db_session.get.return_value = listing

        with pytest.raises(PermissionDeniedError):
            await self.service.update_listing(
                mock_db_session,
                10,
                ListingUpdate(**listing_payload(seller_id=2, image_urls=["new.jpg"])),
            )

        assert listing.title == "Original title"
        assert listing.image_urls == '["keep.jpg"]'
        assert listing.primary_image_url == "keep.jpg"
        mock_db_session.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_by_other_seller_is_denied(self, mock_db_session):
        mock_db_session.get.return_value = self._existing_listing(seller_id=1)

        with pytest.raises(PermissionDeniedError):
            await self.service.delete_listing(mock_db_session, 10, seller_id=2)

        mock_db_session.execute.assert_not_awaited()
        mock_db_session.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_missing_listing_raises_not_found(self, mock_db_session):
        mock_db_session.get.return_value = None

        with pytest.raises(NotFoundError):
            await self.service.delete_listing(mock_db_session, 99, seller_id=1)

    @pytest.mark.asyncio
    async def test_create_for_unknown_seller_raises_not_found(self, mock_db_session):
        mock_db_session.get.return_value = None

        with pytest.raises(NotFoundError):
            await self.service.create_listing(
                mock_db_session, ListingCreate(**listing_payload(seller_id=404))
            )
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_missing_listing_raises_not_found(self, mock_db_session):
        mock_result = MagicMock()
        mock_result.one_or_none.return_value = None
        mock_db_session.execute.return_value = mock_result

        with pytest.raises(NotFoundError):
            await self.service.get_listing(mock_db_session, 99)


# ══════════════════════════════════════════════════════════════════════════
# Storage tests (in-memory SQLite)
# ══════════════════════════════════════════════════════════════════════════


class TestListingWritePath:

    def setup_method(self):
        self.service = ListingService()

    @pytest.mark.asyncio
    async def test_create_with_gallery_defaults_primary_to_first_image(self, db_session, seller):
        created = await self.service.create_listing(
            db_session,
            ListingCreate(**listing_payload(seller.id, image_urls=["a.jpg", "b.jpg"])),
        )

        row = await stored_row(db_session, created.id)
        assert row.image_urls == '["a.jpg","b.jpg"]'
        assert row.primary_image_url == "a.jpg"

        fetched = await self.service.get_listing(db_session, created.id)
        assert fetched.image_urls == ["a.jpg", "b.jpg"]
        assert fetched.primary_image_url == "a.jpg"
        assert fetched.seller_name == "deckdealer"

    @pytest.mark.asyncio
    async def test_create_without_images_stores_null(self, db_session, seller):
        created = await self.service.create_listing(
            db_session, ListingCreate(**listing_payload(seller.id))
        )

        row = await stored_row(db_session, created.id)
        assert row.image_urls is None
        assert row.primary_image_url is None

        fetched = await self.service.get_listing(db_session, created.id)
        assert fetched.image_urls == []
        assert fetched.primary_image_url is None

    @pytest.mark.asyncio
    async def test_create_with_single_url_string(self, db_session, seller):
        created = await self.service.create_listing(
            db_session, ListingCreate(**listing_payload(seller.id, image_urls="only.jpg"))
        )

        row = await stored_row(db_session, created.id)
        assert row.image_urls == '["only.jpg"]'
        assert created.image_urls == ["only.jpg"]
        assert created.primary_image_url == "only.jpg"

    @pytest.mark.asyncio
    async def test_explicit_primary_is_kept_verbatim(self, db_session, seller):
        created = await self.service.create_listing(
            db_session,
            ListingCreate(
                **listing_payload(
                    seller.id,
                    image_urls=["a.jpg", "b.jpg"],
                    primary_image_url="cover.jpg",
                )
            ),
        )
        assert created.primary_image_url == "cover.jpg"
        assert created.image_urls == ["a.jpg", "b.jpg"]

    @pytest.mark.asyncio
    async def test_camel_case_body_is_accepted(self, db_session, seller):
        body = {
            "sellerId": seller.id,
            "title": "Bones Reds Bearings",
            "category": "bearings",
            "price": "12.50",
            "condition": "new",
            "description": "Sealed box.",
            "location": "Mombasa, Kenya",
            "imageUrls": ["x.jpg", "y.jpg"],
            "primaryImageUrl": "y.jpg",
        }
        created = await self.service.create_listing(db_session, ListingCreate.model_validate(body))
        assert created.image_urls == ["x.jpg", "y.jpg"]
        assert created.primary_image_url == "y.jpg"

    @pytest.mark.asyncio
    async def test_update_replaces_images_and_reresolves_primary(self, db_session, seller):
        created = await self.service.create_listing(
            db_session, ListingCreate(**listing_payload(seller.id, image_urls=["old.jpg"]))
        )

        updated = await self.service.update_listing(
            db_session,
            created.id,
            ListingUpdate(**listing_payload(seller.id, title="Relisted", image_urls=["n1.jpg", "n2.jpg"])),
        )

        assert updated.title == "Relisted"
        assert updated.image_urls == ["n1.jpg", "n2.jpg"]
        assert updated.primary_image_url == "n1.jpg"

    @pytest.mark.asyncio
    async def test_update_without_images_clears_them(self, db_session, seller):
        created = await self.service.create_listing(
            db_session, ListingCreate(**listing_payload(seller.id, image_urls=["old.jpg"]))
        )

        await self.service.update_listing(
            db_session, created.id, ListingUpdate(**listing_payload(seller.id))
        )

        row = await stored_row(db_session, created.id)
        assert row.image_urls is None
        assert row.primary_image_url is None

    @pytest.mark.asyncio
    async def test_update_by_other_seller_leaves_row_unchanged(self, db_session, seller, buyer):
        created = await self.service.create_listing(
            db_session, ListingCreate(**listing_payload(seller.id, image_urls=["mine.jpg"]))
        )

        with pytest.raises(PermissionDeniedError):
            await self.service.update_listing(
                db_session,
                created.id,
                ListingUpdate(**listing_payload(buyer.id, title="Hijacked", image_urls=["theirs.jpg"])),
            )

        row = await stored_row(db_session, created.id)
        assert row.title == "Baker Brand Logo Deck"
        assert row.image_urls == '["mine.jpg"]'


class TestListingReadPath:

    def setup_method(self):
        self.service = ListingService()

    @pytest.mark.asyncio
    async def test_legacy_bare_url_row_is_returned_as_list(self, db_session, seller):
        db_session.add(
            Listing(
                seller_id=seller.id, title="Old Deck", category="decks", price=Decimal("20.00"),
                condition="fair", image_urls="legacy.jpg", primary_image_url="legacy.jpg",
            )
        )
        await db_session.flush()

        feed = await self.service.list_listings(db_session)

        assert feed.listings[0].image_urls == ["legacy.jpg"]
        assert feed.listings[0].primary_image_url == "legacy.jpg"

    @pytest.mark.asyncio
    async def test_malformed_row_does_not_break_the_feed(self, db_session, seller):
        good = await self.service.create_listing(
            db_session, ListingCreate(**listing_payload(seller.id, image_urls=["ok.jpg"]))
        )
        broken = Listing(
            seller_id=seller.id, title="Broken", category="decks", price=Decimal("10.00"),
            condition="poor", image_urls="[not valid json", primary_image_url="still-here.jpg",
        )
        db_session.add(broken)
        await db_session.flush()

        feed = await self.service.list_listings(db_session)
        by_id = {item.id: item for item in feed.listings}

        assert by_id[good.id].image_urls == ["ok.jpg"]
        assert by_id[broken.id].image_urls == []
        assert by_id[broken.id].primary_image_url == "still-here.jpg"

    @pytest.mark.asyncio
    async def test_feed_is_newest_first_with_seller_details(self, db_session, seller):
        first = await self.service.create_listing(
            db_session, ListingCreate(**listing_payload(seller.id, title="First"))
        )
        second = await self.service.create_listing(
            db_session, ListingCreate(**listing_payload(seller.id, title="Second"))
        )

        feed = await self.service.list_listings(db_session)

        assert [item.id for item in feed.listings] == [second.id, first.id]
        assert feed.total_count == 2
        assert feed.listings[0].seller_location == "Nairobi, Kenya"
        assert feed.listings[0].seller_email == "seller@example.com"

    @pytest.mark.asyncio
    async def test_seller_listings_include_conversation_count(self, db_session, seller, buyer):
        listing = await self.service.create_listing(
            db_session, ListingCreate(**listing_payload(seller.id))
        )
        db_session.add(Conversation(listing_id=listing.id, buyer_id=buyer.id, seller_id=seller.id))
        await db_session.flush()

        mine = await self.service.list_seller_listings(db_session, seller.id)
        theirs = await self.service.list_seller_listings(db_session, buyer.id)

        assert [item.conversation_count for item in mine.listings] == [1]
        assert theirs.listings == []


class TestListingDelete:

    def setup_method(self):
        self.service = ListingService()

    @pytest.mark.asyncio
    async def test_delete_removes_conversations_and_messages(self, db_session, seller, buyer):
        listing = await self.service.create_listing(
            db_session, ListingCreate(**listing_payload(seller.id))
        )
        conversation = Conversation(listing_id=listing.id, buyer_id=buyer.id, seller_id=seller.id)
        db_session.add(conversation)
        await db_session.flush()
        db_session.add(Message(conversation_id=conversation.id, sender_id=buyer.id, message="Still available?"))
        await db_session.flush()

        await self.service.delete_listing(db_session, listing.id, seller_id=seller.id)

        assert await db_session.scalar(select(func.count(Listing.id))) == 0
        assert await db_session.scalar(select(func.count(Conversation.id))) == 0
        assert await db_session.scalar(select(func.count(Message.id))) == 0
