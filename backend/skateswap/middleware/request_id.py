"""
SkateSwap Backend - Request ID Middleware
===========================================

What:  Gives every request a short correlation ID and echoes it back in
       the X-Request-ID response header.
How:   The ID is kept in a ContextVar so log lines and exception handlers
       anywhere in the request can read it, and in request.state for
       route handlers.

A client may send its own X-Request-ID; it is reused so a frontend error
report can be matched to backend logs.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one thread each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns (or accepts) a request ID and returns it as X-Request-ID."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
