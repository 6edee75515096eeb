"""
SkateSwap Backend - Conversation & Message SQLAlchemy Models
==============================================================

What:  ORM models for buyer-seller messaging threads.
Who:   Used by ConversationService; counted by UserService stats and the
       per-listing conversation_count on a seller's listings page.

Table Design:
    conversations  One thread per (listing, buyer). updated_at is bumped on
                   every new message so inboxes sort by recent activity.
    messages       Append-only rows; is_read flips when the other party
                   opens the thread.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, ForeignKey, Index, Integer, Text, TIMESTAMP, text
from sqlalchemy.orm import Mapped, mapped_column

from skateswap.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Conversation(Base):
    """A messaging thread between one buyer and the seller of one listing."""

    __tablename__ = "conversations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    listing_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
    )
    buyer_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    seller_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_conversations_listing_buyer", "listing_id", "buyer_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Conversation(id={self.id}, listing_id={self.listing_id}, "
            f"buyer_id={self.buyer_id}, seller_id={self.seller_id})>"
        )


class Message(Base):
    """One message inside a conversation."""

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    conversation_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)

    # Stored trimmed; never empty
    message: Mapped[str] = mapped_column(Text, nullable=False)

    is_read: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_messages_conversation_created", "conversation_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, conversation_id={self.conversation_id})>"
