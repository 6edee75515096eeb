"""
SkateSwap Backend - Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for each error scenario.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services; caught by global handlers.

Exception Hierarchy:
    SkateSwapError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── AuthenticationError      → 401 Unauthorized
    ├── PermissionDeniedError    → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── ImageHostError           → 503 Service Unavailable (retry later)
    ├── CircuitBreakerOpenError  → 503 Service Unavailable (circuit open)
    ├── DatabaseError            → 500 Internal Server Error
    └── MalformedPersistedValue  → never leaves the image codec
"""

from typing import Any, Dict, Optional


class SkateSwapError(Exception):
    """
    Base exception for all SkateSwap application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only where the handler chooses)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SkateSwapError):
    """
    Raised when client input fails a business rule.

    When:    Duplicate username/email, empty message, unusable image payload.
    HTTP:    400 Bad Request

    Schema-level problems (missing required fields, wrong types) are
    rejected earlier by FastAPI with its own 422 response.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(SkateSwapError):
    """
    Raised when login credentials do not match a user.

    HTTP:    401 Unauthorized
    The same message is used for an unknown email and a wrong password.
    """

    def __init__(
        self,
        message: str = "Invalid email or password",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(SkateSwapError):
    """
    Raised when the requesting identity does not own the resource it tries to change.

    When:    Updating or deleting a listing with another seller's id.
    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "You are not allowed to modify this resource",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(SkateSwapError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing records; services convert that
    None into this exception so the handler can answer 404.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ImageHostError(SkateSwapError):
    """
    Raised when the image host fails after all retries.

    When:    After tenacity retries are exhausted (default: 3 attempts with backoff).
    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "Image upload service is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(SkateSwapError):
    """
    Raised when the image host circuit breaker is OPEN.

    When:    After cb_failure_threshold consecutive upload failures (default: 5).
    HTTP:    503 Service Unavailable, with Retry-After set to the remaining recovery time.
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Image uploads are temporarily unavailable due to repeated failures. "
            f"Please try again in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time


class DatabaseError(SkateSwapError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error
    The message returned to the client is always generic; SQL details are
    logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class MalformedPersistedValue(SkateSwapError):
    """
    Raised inside the image codec when a stored `image_urls` value looks like
    a JSON array but does not parse as one.

    Always caught by the codec itself and turned into an empty image list;
    no exception handler is registered for it.
    """

    def __init__(
        self,
        raw_value: str,
        reason: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["reason"] = reason
        # Keep the sample short; stored values can be arbitrarily long
        ctx["sample"] = raw_value[:80]
        super().__init__(message=f"Malformed image_urls value: {reason}", context=ctx)
        self.raw_value = raw_value
        self.reason = reason
