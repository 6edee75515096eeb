"""
SkateSwap Backend - Development Seeding
=========================================

What:  Demo account and sample listings for local development.
Who:   Called by the dev routes (mounted only when ENABLE_DEV_ROUTES=true).

Tables are created by Alembic (`alembic upgrade head`), not here.
Sample listings go through ListingService, so they are stored exactly as
listings posted from the web form would be.
"""

import logging
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from skateswap.exceptions import ValidationError
from skateswap.models.user import User
from skateswap.schemas.common import SampleListingsResponse, SetupResponse
from skateswap.schemas.listing import ListingCreate
from skateswap.services.auth_service import hash_password
from skateswap.services.listing_service import listing_service
from skateswap.services.user_service import user_service

logger = logging.getLogger(__name__)

DEMO_EMAIL = "test@example.com"
DEMO_PASSWORD = "password123"

DECK_PHOTO = "https://images.unsplash.com/photo-1547447138-c45bca6f0d3a?w=400&h=300&fit=crop"
TRUCKS_PHOTO = "https://images.unsplash.com/photo-1571019613454-1cb2f99b2d8b?w=400&h=300&fit=crop"

SAMPLE_LISTINGS = [
    {
        "title": "Santa Cruz Classic Dot Deck",
        "category": "decks",
        "price": Decimal("65.00"),
        "condition": "excellent",
        "description": "Classic Santa Cruz deck in great condition. Lightly used, no cracks or chips.",
        "location": "Nairobi, Kenya",
        "image_urls": [DECK_PHOTO],
    },
    {
        "title": "Independent Stage 11 Trucks",
        "category": "trucks",
        "price": Decimal("45.00"),
        "condition": "good",
        "description": "Solid trucks, great for street skating. Some wear but fully functional.",
        "location": "Nairobi, Kenya",
        "image_urls": [TRUCKS_PHOTO],
    },
    {
        "title": "Spitfire Formula Four Wheels",
        "category": "wheels",
        "price": Decimal("35.00"),
        "condition": "like-new",
        "description": "Hardly used Spitfire wheels. Perfect for smooth rides.",
        "location": "Nairobi, Kenya",
        "image_urls": [DECK_PHOTO],
    },
]


class SeedService:

    async def ensure_demo_user(self, db: AsyncSession) -> SetupResponse:
        """Create the demo account, but only while the users table is empty."""
        user_count = await db.scalar(select(func.count(User.id)))
        created = False
        if not user_count:
            db.add(
                User(
                    first_name="Test",
                    last_name="User",
                    username="testuser",
                    email=DEMO_EMAIL,
                    password=hash_password(DEMO_PASSWORD),
                    location="Nairobi, Kenya",
                )
            )
            await db.flush()
            created = True
            logger.info("Demo user %s created", DEMO_EMAIL)

        return SetupResponse(
            message="Database is ready",
            demo_user_created=created,
            demo_email=DEMO_EMAIL,
            demo_password=DEMO_PASSWORD,
        )

    async def create_sample_listings(self, db: AsyncSession) -> SampleListingsResponse:
        """
        Post the three sample listings as the demo user.

        Raises:
            ValidationError: The demo user does not exist yet (→ 400)
        """
        demo_user = await user_service.get_user_by_email(db, DEMO_EMAIL)
        if demo_user is None:
            raise ValidationError(message="No demo user found. Run /api/setup-db first.")

        listing_ids = []
        for sample in SAMPLE_LISTINGS:
            listing = await listing_service.create_listing(
                db, ListingCreate(seller_id=demo_user.id, **sample)
            )
            listing_ids.append(listing.id)

        logger.info("Created %d sample listings for %s", len(listing_ids), DEMO_EMAIL)
        return SampleListingsResponse(
            message=f"Created {len(listing_ids)} sample listings",
            listing_ids=listing_ids,
        )


seed_service = SeedService()
