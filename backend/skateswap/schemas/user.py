"""
SkateSwap Backend - User Request/Response Schemas
===================================================

What:  Pydantic models for registration, login and user stats.
How:   Request bodies accept camelCase (`firstName`) or snake_case keys.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class UserRegister(BaseModel):
    """Body of POST /api/register."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    username: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=1)
    location: Optional[str] = Field(default=None, max_length=255)


class RegisterResponse(BaseModel):
    message: str = "Registration successful"
    user_id: int


class LoginRequest(BaseModel):
    """
    Body of POST /api/login.

    email is a plain string here: a malformed address should get the same
    401 as an unknown one, not a 422.
    """
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class UserPublic(BaseModel):
    """The profile fields safe to hand back to the client."""
    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    location: Optional[str] = None

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    message: str = "Login successful"
    token: str = Field(description="HS256 JWT, valid for JWT_EXPIRE_HOURS")
    user: UserPublic


class UserStatsResponse(BaseModel):
    """
    Profile page counters.

    total_value is a two-decimal string ("65.00") summing the user's
    listing prices.
    """
    listing_count: int
    conversation_count: int
    total_value: str
