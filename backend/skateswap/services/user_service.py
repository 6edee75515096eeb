"""
SkateSwap Backend - User Service
==================================

What:  Registration, login and per-user profile stats.
Who:   Called by the user routes; `get_user_by_email` also by dev seeding.

Duplicate detection is left to the unique constraints on users.username
and users.email: the INSERT is flushed and an IntegrityError becomes a
400 "Username or email already exists".
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from skateswap.exceptions import (
    AuthenticationError,
    DatabaseError,
    SkateSwapError,
    ValidationError,
)
from skateswap.models.conversation import Conversation
from skateswap.models.listing import Listing
from skateswap.models.user import User
from skateswap.schemas.user import (
    LoginResponse,
    RegisterResponse,
    UserPublic,
    UserRegister,
    UserStatsResponse,
)
from skateswap.services.auth_service import (
    create_access_token,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)


class UserService:
    """
    Business logic for user accounts.

    Error Handling Strategy:
        Credential failures raise AuthenticationError with one message for
        both "no such email" and "wrong password". SQLAlchemy errors other
        than the duplicate-key case are wrapped in DatabaseError.
    """

    async def register(self, db: AsyncSession, data: UserRegister) -> RegisterResponse:
        """
        Create an account with a bcrypt-hashed password.

        Raises:
            ValidationError: Username or email already taken (→ 400)
            DatabaseError: Insert failed for another reason (→ 500)
        """
        user = User(
            first_name=data.first_name,
            last_name=data.last_name,
            username=data.username,
            email=str(data.email),
            password=hash_password(data.password),
            location=data.location or None,
        )
        try:
            db.add(user)
            await db.flush()
        except IntegrityError as e:
            logger.info("Registration rejected for %s: duplicate username or email", data.username)
            raise ValidationError(
                message="Username or email already exists",
                context={"username": data.username},
            ) from e
        except SQLAlchemyError as e:
            logger.error("Database error registering user: %s", str(e), exc_info=True)
            raise DatabaseError(message="Registration failed. Please try again.") from e

        logger.info("New user registered: %s (id=%s)", user.username, user.id)
        return RegisterResponse(user_id=user.id)

    async def authenticate(self, db: AsyncSession, email: str, password: str) -> LoginResponse:
        """
        Check credentials and issue an access token.

        Raises:
            AuthenticationError: Unknown email or wrong password (→ 401)
            DatabaseError: Lookup failed (→ 500)
        """
        try:
            user = await self.get_user_by_email(db, email)
        except SQLAlchemyError as e:
            logger.error("Database error during login: %s", str(e), exc_info=True)
            raise DatabaseError(message="Login failed. Please try again.") from e

        if user is None or not verify_password(password, user.password):
            logger.info("Failed login attempt for %s", email)
            raise AuthenticationError()

        token = create_access_token(user.id, user.email)
        logger.info("User %s logged in", user.id)
        return LoginResponse(token=token, user=UserPublic.model_validate(user))

    async def get_user_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def get_user_stats(self, db: AsyncSession, user_id: int) -> UserStatsResponse:
        """
        Listing count, conversation count (as buyer or seller) and the
        summed price of the user's listings.

        An unknown user id is not an error: every counter is zero.
        """
        try:
            listing_count = await db.scalar(
                select(func.count(Listing.id)).where(Listing.seller_id == user_id)
            )
            conversation_count = await db.scalar(
                select(func.count(Conversation.id)).where(
                    or_(Conversation.seller_id == user_id, Conversation.buyer_id == user_id)
                )
            )
            total = await db.scalar(
                select(func.coalesce(func.sum(Listing.price), 0)).where(Listing.seller_id == user_id)
            )
        except SQLAlchemyError as e:
            logger.error("Database error fetching stats for user %s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve user stats. Please try again.",
                context={"user_id": user_id},
            ) from e

        return UserStatsResponse(
            listing_count=listing_count or 0,
            conversation_count=conversation_count or 0,
            total_value=f"{Decimal(str(total or 0)):.2f}",
        )


# ── Singleton Instance ────────────────────────────────────────────────────
user_service = UserService()
