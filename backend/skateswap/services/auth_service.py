"""
SkateSwap Backend - Password Hashing & Access Tokens
======================================================

What:  bcrypt password hashing and HS256 JWT issuing/decoding.
Who:   UserService (register, authenticate) and the dev seeding routes.

Tokens are issued on login so clients can hold a session, but no endpoint
requires one: requests identify the acting user by id in the body.

bcrypt only looks at the first 72 bytes of a secret (bcrypt>=4.1 raises
instead of truncating), so both hashing and verification cut the UTF-8
encoded password to 72 bytes first.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt

from skateswap.config import settings

logger = logging.getLogger(__name__)

BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """bcrypt hash of `password`, as text suitable for the users.password column."""
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """
    Check `password` against a stored bcrypt hash.

    A stored value that is not a bcrypt hash counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(_password_bytes(password), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def create_access_token(user_id: int, email: str) -> str:
    """HS256 token carrying the user id (as `sub`) and email, valid for JWT_EXPIRE_HOURS."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": now + timedelta(hours=settings.jwt_expire_hours),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Token payload, or None if the token is expired, tampered with or not a JWT."""
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError as e:
        logger.debug("Rejected access token: %s", type(e).__name__)
        return None
