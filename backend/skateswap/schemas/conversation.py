"""
SkateSwap Backend - Messaging Request/Response Schemas
========================================================

What:  Pydantic models for conversations and messages.
How:   `listingId` is also accepted as `postId`, the key the web
       client sends.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ConversationStart(BaseModel):
    """Body of POST /api/conversations."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    listing_id: int = Field(
        gt=0,
        validation_alias=AliasChoices("listingId", "postId", "listing_id"),
    )
    buyer_id: int = Field(gt=0)
    seller_id: int = Field(gt=0)


class ConversationResponse(BaseModel):
    id: int
    listing_id: int
    buyer_id: int
    seller_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ConversationSummary(ConversationResponse):
    """One inbox row: the thread plus the listing and the latest message."""
    listing_title: str
    listing_price: Decimal
    listing_image: Optional[str] = Field(
        default=None, description="The listing's primary image"
    )
    seller_name: str
    buyer_name: str
    last_message: Optional[str] = None
    last_message_time: Optional[datetime] = None


class ConversationListResponse(BaseModel):
    conversations: List[ConversationSummary]


class MessageCreate(BaseModel):
    """Body of POST /api/messages."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    conversation_id: int = Field(gt=0)
    sender_id: int = Field(gt=0)
    message: str = Field(description="Trimmed before storage; must not be blank")


class MessageResponse(BaseModel):
    id: int
    conversation_id: int
    sender_id: int
    message: str
    is_read: bool
    created_at: datetime
    sender_name: str


class MessageListResponse(BaseModel):
    messages: List[MessageResponse]
