"""
SkateSwap Backend - Health Check Route
========================================

What:  Health check endpoint for monitoring and load balancer checks.
How:   Checks the database and the image host and returns an aggregate status.
Who:   Called by Docker health checks, load balancers, and monitoring systems.

Status levels:
    - healthy:   All dependencies operational
    - degraded:  Image host down or circuit open; listings and messaging still work
    - unhealthy: Database unreachable
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text

from skateswap import __version__
from skateswap.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description=(
        "Returns the health status of the backend service and its dependencies "
        "(database and image host)."
    ),
)
async def health_check() -> HealthResponse:
    """
    Check the health of the service and its dependencies.

    Check details:
        Database:   SELECT 1 on a pooled connection
        Image host: a Cloudinary ping (fed to the circuit breaker), then the
                    breaker state; an open circuit is reported as circuit_open
    """
    db_status = "connected"
    image_host_status = "available"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        from skateswap.database import engine
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Check Image Host ──────────────────────────────────────────────────
    try:
        from skateswap.services.cloudinary_service import cloudinary_service
        # Ping first: a good ping moves an OPEN breaker to HALF_OPEN
        reachable = await cloudinary_service.health_check()
        if cloudinary_service.circuit_breaker.state == cloudinary_service.circuit_breaker.OPEN:
            image_host_status = "circuit_open"
            overall = "degraded" if overall != "unhealthy" else overall
        elif not reachable:
            image_host_status = "unavailable"
            overall = "degraded" if overall != "unhealthy" else overall
    except Exception as e:
        image_host_status = "unavailable"
        overall = "degraded" if overall != "unhealthy" else overall
        logger.warning("Health check: image host unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        image_host=image_host_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
