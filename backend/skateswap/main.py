"""
SkateSwap Backend - FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers and routers.
Who:   Loaded by uvicorn (uvicorn skateswap.main:app).

Application Architecture:
    ┌───────────────────────────────────────────────────────────┐
    │                       FastAPI App                         │
    │                                                           │
    │  Middleware Chain:                                        │
    │  ┌──────────┐ ┌──────────┐ ┌──────┐ ┌──────┐              │
    │  │ Req ID   │→│ Logging  │→│ GZip │→│ CORS │              │
    │  └──────────┘ └──────────┘ └──────┘ └──────┘              │
    │                                                           │
    │  Routes:                                                  │
    │  listings · users · messaging · uploads · stats · health  │
    │  (+ dev seeding when ENABLE_DEV_ROUTES=true)              │
    │                                                           │
    │  Exception Handlers:                                      │
    │  Validation→400 │ Auth→401 │ Permission→403 │ NotFound→404 │
    │  ImageHost/Circuit→503 │ Database→500 │ anything else→500 │
    └───────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, report configuration problems, log URLs
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from skateswap import __version__
from skateswap.config import settings
from skateswap.database import dispose_engine
from skateswap.exceptions import (
    AuthenticationError,
    CircuitBreakerOpenError,
    DatabaseError,
    ImageHostError,
    NotFoundError,
    PermissionDeniedError,
    SkateSwapError,
    ValidationError,
)
from skateswap.middleware.logging import RequestLoggingMiddleware
from skateswap.middleware.request_id import RequestIDMiddleware, request_id_var
from skateswap.routes import dev, health, listings, messaging, stats, uploads, users

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once at startup.

    Format: 2024-01-15T12:00:00 [INFO] skateswap.services.listing_service: ...
    Output goes to stdout for the container runtime to collect.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries that log every operation at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("SkateSwap Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Listings and messaging work without Cloudinary; keep serving
        logger.error("Configuration error: %s", str(e))

    if settings.enable_dev_routes:
        logger.warning("Development routes enabled (/api/setup-db, /api/create-sample-posts)")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("SkateSwap Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(status_code: int, error: str, message: str, details=None, headers=None):
    content = {
        "error": error,
        "message": message,
        "request_id": request_id_var.get(""),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to HTTP responses.

    Handler hierarchy:
        ValidationError         → 400 Bad Request
        AuthenticationError     → 401 Unauthorized
        PermissionDeniedError   → 403 Forbidden
        NotFoundError           → 404 Not Found
        CircuitBreakerOpenError → 503 Service Unavailable (Retry-After)
        ImageHostError          → 503 Service Unavailable
        DatabaseError           → 500 Internal Server Error (generic message)
        SkateSwapError (base)   → 500 Internal Server Error
        Exception (fallback)    → 500 Internal Server Error

    Response bodies never carry stack traces or SQL; those are logged.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc.message, details=exc.context)

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return _error_response(401, "authentication_failed", exc.message)

    @app.exception_handler(PermissionDeniedError)
    async def handle_permission_denied(request: Request, exc: PermissionDeniedError):
        return _error_response(403, "permission_denied", exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc.message)

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        logger.warning("[%s] Circuit breaker open: %s", request_id_var.get(""), exc.message)
        return _error_response(
            503,
            "service_unavailable",
            exc.message,
            details={"recovery_time": exc.recovery_time},
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(ImageHostError)
    async def handle_image_host_error(request: Request, exc: ImageHostError):
        logger.error("[%s] Image host error: %s", request_id_var.get(""), exc.message)
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        return _error_response(
            503, "image_host_error", exc.message, details=exc.context, headers=headers
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error(
            "[%s] Database error: %s | Context: %s",
            request_id_var.get(""), exc.message, exc.context,
        )
        return _error_response(
            500, "server_error", "An internal error occurred. Please try again later."
        )

    @app.exception_handler(SkateSwapError)
    async def handle_application_error(request: Request, exc: SkateSwapError):
        logger.error(
            "[%s] Unhandled application error %s: %s",
            request_id_var.get(""), type(exc).__name__, exc.message,
        )
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="SkateSwap API",
        description=(
            "Backend for SkateSwap, a marketplace for used skateboard gear: "
            "listings with image galleries, buyer-seller messaging and image uploads."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Executes in reverse order of addition: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(listings.router)
    app.include_router(users.router)
    app.include_router(messaging.router)
    app.include_router(uploads.router)
    app.include_router(stats.router)
    app.include_router(health.router)
    if settings.enable_dev_routes:
        app.include_router(dev.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
