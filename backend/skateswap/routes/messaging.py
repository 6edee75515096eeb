"""
SkateSwap Backend - Messaging Route Handlers
==============================================

What:  Buyer-seller conversations and messages.

Endpoints:
    POST /api/conversations                      get-or-create a thread
    GET  /api/users/{id}/conversations           inbox, most recent first
    POST /api/messages                           send a message
    GET  /api/conversations/{id}/messages        thread, oldest first
         ?currentUserId=N                        also marks the other side's messages read
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from skateswap.database import get_db_session
from skateswap.schemas.common import ErrorResponse
from skateswap.schemas.conversation import (
    ConversationListResponse,
    ConversationResponse,
    ConversationStart,
    MessageCreate,
    MessageListResponse,
    MessageResponse,
)
from skateswap.services.conversation_service import conversation_service


router = APIRouter(prefix="/api", tags=["Messaging"])


@router.post(
    "/conversations",
    response_model=ConversationResponse,
    responses={404: {"description": "Listing not found", "model": ErrorResponse}},
    summary="Start (or resume) a conversation about a listing",
)
async def start_conversation(
    data: ConversationStart,
    db: AsyncSession = Depends(get_db_session),
) -> ConversationResponse:
    return await conversation_service.start_conversation(db=db, data=data)


@router.get(
    "/users/{user_id}/conversations",
    response_model=ConversationListResponse,
    summary="A user's inbox",
)
async def list_conversations(
    user_id: int = Path(..., gt=0),
    db: AsyncSession = Depends(get_db_session),
) -> ConversationListResponse:
    return await conversation_service.list_conversations(db=db, user_id=user_id)


@router.post(
    "/messages",
    status_code=201,
    response_model=MessageResponse,
    responses={
        400: {"description": "Message is empty", "model": ErrorResponse},
        404: {"description": "Conversation or sender not found", "model": ErrorResponse},
    },
    summary="Send a message",
)
async def send_message(
    data: MessageCreate,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await conversation_service.send_message(db=db, data=data)


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=MessageListResponse,
    summary="Messages in a conversation",
)
async def list_messages(
    conversation_id: int = Path(..., gt=0),
    current_user_id: Optional[int] = Query(
        default=None,
        alias="currentUserId",
        description="Reader's user id; messages from the other participant are marked read",
    ),
    db: AsyncSession = Depends(get_db_session),
) -> MessageListResponse:
    return await conversation_service.list_messages(
        db=db,
        conversation_id=conversation_id,
        current_user_id=current_user_id,
    )
