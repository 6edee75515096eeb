"""
SkateSwap Backend - Shared Response Schemas
=============================================

What:  Error envelope, health check, stats, upload and seeding models.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ErrorResponse(BaseModel):
    """
    Error envelope used by every exception handler.

    Example:
        {
            "error": "permission_denied",
            "message": "Not authorized to edit this listing",
            "request_id": "1f0c2a9b"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    image_host: str = Field(description="Image host status: available, unavailable, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")


class CommunityStatsResponse(BaseModel):
    total_listings: int
    total_users: int
    recent_activity: int = Field(description="Listings created in the last 7 days")


class UserCountResponse(BaseModel):
    count: int


class ImageUploadRequest(BaseModel):
    """Body of POST /api/upload-image."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    image: str = Field(
        min_length=1,
        description="A base64 data URI (data:image/png;base64,...) or an http(s) URL",
    )
    file_name: Optional[str] = Field(default=None, max_length=255)


class ImageUploadResponse(BaseModel):
    image_url: str = Field(description="HTTPS URL of the hosted image")
    public_id: str = Field(description="Image host identifier")


class SetupResponse(BaseModel):
    message: str
    demo_user_created: bool
    demo_email: str
    demo_password: str


class SampleListingsResponse(BaseModel):
    message: str
    listing_ids: List[int]
