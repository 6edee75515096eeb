"""
SkateSwap Backend - Listing SQLAlchemy Model
==============================================

What:  ORM model for the `listings` table (one row per item for sale).
Who:   Written by ListingService.create_listing/update_listing, read by every
       listing endpoint, joined by ConversationService for thread summaries.

Image columns:
    image_urls         Nullable TEXT. NULL, a JSON array of URL strings, or
                       (rows written by older clients) one bare URL string.
                       Only services/image_codec.py reads or writes it.
    primary_image_url  Nullable TEXT. The default image, resolved once at
                       write time and returned verbatim on read.

Index on (seller_id, created_at DESC):
    Serves "my listings, newest first" on the profile page.
"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text, TIMESTAMP, text
from sqlalchemy.orm import Mapped, mapped_column

from skateswap.database import Base


class Listing(Base):
    """
    An item posted for sale by one seller.

    Lifecycle:
        1. Created by its seller (images encoded, primary resolved)
        2. Replaced wholesale by PUT from the same seller
        3. Deleted by its seller together with its conversations
    """

    __tablename__ = "listings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    seller_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)

    # DECIMAL(10,2): prices are money, never floats
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    condition: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)

    image_urls: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        default=None,
        comment="Persisted image set: NULL, JSON array of URLs, or one bare URL",
    )

    primary_image_url: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        default=None,
        comment="Denormalized default image, resolved at write time",
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_listings_seller_created", "seller_id", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Listing(id={self.id}, seller_id={self.seller_id}, title='{self.title}')>"
