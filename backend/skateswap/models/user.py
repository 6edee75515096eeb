"""
SkateSwap Backend - User SQLAlchemy Model
===========================================

What:  ORM model for the `users` table.
Who:   Used by UserService (register/login/stats), ListingService (seller joins)
       and ConversationService (buyer/seller/sender names).

Table Design:
    - Integer primary key: listings and conversations reference users by id,
      and clients send those ids back in request bodies
    - username / email: unique; duplicates surface as IntegrityError on flush
    - password: bcrypt hash, never the raw secret
"""

from datetime import datetime, timezone

from sqlalchemy import Integer, String, TIMESTAMP, text
from sqlalchemy.orm import Mapped, mapped_column

from skateswap.database import Base


class User(Base):
    """A marketplace account. Every user can both sell and buy."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)

    username: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        comment="Public handle shown as seller/buyer/sender name",
    )
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Login identifier",
    )

    password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="bcrypt hash of the user's password",
    )

    location: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
