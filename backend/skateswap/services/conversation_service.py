"""
SkateSwap Backend - Conversation Service
==========================================

What:  Buyer-seller messaging: open a thread on a listing, post messages,
       list a user's inbox and read a thread.
Who:   Called by the messaging routes.

Thread identity:
    At most one conversation per (listing, buyer). Starting a conversation
    that already exists returns the existing one.

Inbox ordering:
    Every new message bumps conversations.updated_at, and the inbox is
    sorted by it, most recent first.

Read receipts:
    Reading a thread with current_user_id marks the *other* party's
    messages as read. The returned rows are the ones selected before that
    update.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import desc, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from skateswap.exceptions import DatabaseError, NotFoundError, SkateSwapError, ValidationError
from skateswap.models.conversation import Conversation, Message
from skateswap.models.listing import Listing
from skateswap.models.user import User
from skateswap.schemas.conversation import (
    ConversationListResponse,
    ConversationResponse,
    ConversationStart,
    ConversationSummary,
    MessageCreate,
    MessageListResponse,
    MessageResponse,
)

logger = logging.getLogger(__name__)


class ConversationService:
    """
    Business logic for messaging.

    Error Handling Strategy:
        Unknown listings, conversations and senders raise NotFoundError.
        A message that is blank after trimming raises ValidationError.
        SQLAlchemy errors are wrapped in DatabaseError.
    """

    async def start_conversation(
        self,
        db: AsyncSession,
        data: ConversationStart,
    ) -> ConversationResponse:
        """
        Get or create the conversation between data.buyer_id and the seller
        of data.listing_id.

        The stored seller is always the listing's seller; data.seller_id is
        accepted for client compatibility but not trusted.

        Raises:
            NotFoundError: The listing does not exist (→ 404)
        """
        try:
            listing = await db.get(Listing, data.listing_id)
            if listing is None:
                raise NotFoundError(resource="listing", resource_id=str(data.listing_id))

            result = await db.execute(
                select(Conversation).where(
                    Conversation.listing_id == data.listing_id,
                    Conversation.buyer_id == data.buyer_id,
                )
            )
            conversation = result.scalars().first()
            if conversation is not None:
                logger.debug("Reusing conversation %s", conversation.id)
                return ConversationResponse.model_validate(conversation)

            if data.seller_id != listing.seller_id:
                logger.warning(
                    "Conversation request on listing %s named seller %s; listing belongs to %s",
                    listing.id, data.seller_id, listing.seller_id,
                )

            # The listing, not the request body, decides who the seller is
            conversation = Conversation(
                listing_id=listing.id,
                buyer_id=data.buyer_id,
                seller_id=listing.seller_id,
            )
            db.add(conversation)
            await db.flush()
            logger.info(
                "Conversation %s started on listing %s by buyer %s",
                conversation.id, data.listing_id, data.buyer_id,
            )
            return ConversationResponse.model_validate(conversation)

        except SkateSwapError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error starting conversation: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not start the conversation. Please try again.",
                context={"listing_id": data.listing_id},
            ) from e

    async def send_message(self, db: AsyncSession, data: MessageCreate) -> MessageResponse:
        """
        Append a message to a conversation and bump its updated_at.

        Raises:
            ValidationError: Message is empty after trimming (→ 400)
            NotFoundError: Unknown conversation or sender (→ 404)
        """
        text = data.message.strip()
        if not text:
            raise ValidationError(message="Message cannot be empty", field="message")

        try:
            conversation = await db.get(Conversation, data.conversation_id)
            if conversation is None:
                raise NotFoundError(resource="conversation", resource_id=str(data.conversation_id))

            sender = await db.get(User, data.sender_id)
            if sender is None:
                raise NotFoundError(resource="user", resource_id=str(data.sender_id))

            message = Message(
                conversation_id=conversation.id,
                sender_id=sender.id,
                message=text,
                is_read=False,
            )
            db.add(message)
            conversation.updated_at = datetime.now(timezone.utc)
            await db.flush()

            logger.info("Message %s posted to conversation %s", message.id, conversation.id)
            return MessageResponse(
                id=message.id,
                conversation_id=message.conversation_id,
                sender_id=message.sender_id,
                message=message.message,
                is_read=message.is_read,
                created_at=message.created_at,
                sender_name=sender.username,
            )

        except SkateSwapError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error sending message: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not send the message. Please try again.",
                context={"conversation_id": data.conversation_id},
            ) from e

    async def list_conversations(self, db: AsyncSession, user_id: int) -> ConversationListResponse:
        """
        Inbox for `user_id`: every conversation where they are buyer or
        seller, with listing details and the latest message.
        """
        seller = aliased(User)
        buyer = aliased(User)

        last_message = self._latest_message_column(Message.message)
        last_message_time = self._latest_message_column(Message.created_at)

        try:
            result = await db.execute(
                select(
                    Conversation,
                    Listing.title,
                    Listing.price,
                    Listing.primary_image_url,
                    seller.username,
                    buyer.username,
                    last_message.label("last_message"),
                    last_message_time.label("last_message_time"),
                )
                .join(Listing, Conversation.listing_id == Listing.id)
                .join(seller, Conversation.seller_id == seller.id)
                .join(buyer, Conversation.buyer_id == buyer.id)
                .where(or_(Conversation.buyer_id == user_id, Conversation.seller_id == user_id))
                .order_by(desc(Conversation.updated_at), desc(Conversation.id))
            )
            conversations = [
                ConversationSummary(
                    id=conversation.id,
                    listing_id=conversation.listing_id,
                    buyer_id=conversation.buyer_id,
                    seller_id=conversation.seller_id,
                    created_at=conversation.created_at,
                    updated_at=conversation.updated_at,
                    listing_title=title,
                    listing_price=price,
                    listing_image=image,
                    seller_name=seller_name,
                    buyer_name=buyer_name,
                    last_message=last_text,
                    last_message_time=last_time,
                )
                for (
                    conversation, title, price, image,
                    seller_name, buyer_name, last_text, last_time,
                ) in result.all()
            ]
            return ConversationListResponse(conversations=conversations)

        except SQLAlchemyError as e:
            logger.error("Database error listing conversations for %s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve conversations. Please try again.",
                context={"user_id": user_id},
            ) from e

    async def list_messages(
        self,
        db: AsyncSession,
        conversation_id: int,
        current_user_id: Optional[int] = None,
    ) -> MessageListResponse:
        """
        Messages of one conversation, oldest first, with sender usernames.

        When current_user_id is given, messages from the other participant
        are marked read after they have been selected.
        """
        try:
            result = await db.execute(
                select(Message, User.username)
                .join(User, Message.sender_id == User.id)
                .where(Message.conversation_id == conversation_id)
                .order_by(Message.created_at, Message.id)
            )
            # Snapshot before the read-receipt UPDATE touches the same rows
            messages = [
                MessageResponse(
                    id=message.id,
                    conversation_id=message.conversation_id,
                    sender_id=message.sender_id,
                    message=message.message,
                    is_read=message.is_read,
                    created_at=message.created_at,
                    sender_name=sender_name,
                )
                for message, sender_name in result.all()
            ]

            if current_user_id is not None:
                await db.execute(
                    update(Message)
                    .where(
                        Message.conversation_id == conversation_id,
                        Message.sender_id != current_user_id,
                    )
                    .values(is_read=True)
                    .execution_options(synchronize_session=False)
                )

            return MessageListResponse(messages=messages)

        except SQLAlchemyError as e:
            logger.error("Database error listing messages for %s: %s", conversation_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve messages. Please try again.",
                context={"conversation_id": conversation_id},
            ) from e

    @staticmethod
    def _latest_message_column(column):
        """Correlated subquery: `column` of the conversation's newest message."""
        return (
            select(column)
            .where(Message.conversation_id == Conversation.id)
            .order_by(desc(Message.created_at), desc(Message.id))
            .limit(1)
            .correlate(Conversation)
            .scalar_subquery()
        )


# ── Singleton Instance ────────────────────────────────────────────────────
conversation_service = ConversationService()
