"""
SkateSwap Backend - Listing Request/Response Schemas
======================================================

What:  Pydantic models for the listing endpoints.
How:   FastAPI validates request bodies against these and serializes
       responses from them; they also drive the OpenAPI docs.

Request bodies accept the camelCase keys sent by the web client
(`sellerId`, `imageUrls`, `primaryImageUrl`) as well as snake_case.

Image fields are deliberately loose on the way in: `image_urls` may be a
list, a single string, null, or garbage, and is classified by the image
codec instead of being rejected. On the way out `image_urls` is always a
list.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from skateswap.services.image_codec import image_set_codec


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class ListingCreate(BaseModel):
    """
    What:  Body of POST /api/listings.
    Who:   The "sell an item" form.

    All scalar fields are required, as on the "sell an item" form. Images are
    optional; see the module docstring for the accepted shapes.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    seller_id: int = Field(gt=0, description="Id of the user posting the listing")
    title: str = Field(min_length=1, max_length=255)
    category: str = Field(min_length=1, max_length=100, description="e.g. decks, trucks, wheels")
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    condition: str = Field(min_length=1, max_length=50, description="e.g. new, like-new, good")
    description: str = Field(min_length=1)
    location: str = Field(min_length=1, max_length=255)

    image_urls: Any = Field(
        default=None,
        description="Image URLs: an ordered list, a single URL string, or null",
    )
    primary_image_url: Any = Field(
        default=None,
        description="Default image. Falls back to the first of image_urls when omitted.",
    )

    @field_validator("image_urls", mode="after")
    @classmethod
    def classify_image_urls(cls, v: Any) -> Any:
        """Resolve the loose image input into Absent | Single | Many once, here."""
        return image_set_codec.classify(v)


class ListingUpdate(ListingCreate):
    """
    What:  Body of PUT /api/listings/{id}.

    Full replacement: every field is written, and omitted images clear the
    listing's images. `seller_id` identifies the requester and must match
    the listing's seller.
    """


class ListingDelete(BaseModel):
    """Body of DELETE /api/listings/{id}."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    seller_id: int = Field(gt=0, description="Must match the listing's seller")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ListingResponse(BaseModel):
    """
    What:  A listing as returned by every listing endpoint.

    image_urls is the decoded, ordered gallery (empty list when there are
    no images). primary_image_url is returned exactly as stored.

    Seller fields are filled from the users join. seller_location is only
    filled on the marketplace feed; conversation_count only on a seller's
    own listings page.
    """
    id: int
    seller_id: int
    title: str
    category: str
    price: Decimal
    condition: str
    description: Optional[str] = None
    location: Optional[str] = None
    image_urls: List[str] = Field(default_factory=list)
    primary_image_url: Optional[str] = None
    created_at: datetime
    seller_name: Optional[str] = None
    seller_email: Optional[str] = None
    seller_location: Optional[str] = None
    conversation_count: Optional[int] = None


class ListingListResponse(BaseModel):
    """Newest-first list of listings. No pagination."""
    listings: List[ListingResponse]
    total_count: int


class ListingMutationResponse(BaseModel):
    """Returned by create and update: a message plus the listing as re-read from the DB."""
    message: str
    listing: ListingResponse


class DeleteResponse(BaseModel):
    message: str = "Listing deleted successfully"
