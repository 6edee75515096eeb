"""
SkateSwap Backend - Cloudinary Image Host
===========================================

What:  ImageHost implementation backed by the Cloudinary upload API.
How:   The blocking Cloudinary SDK runs in Starlette's threadpool. Calls are
       wrapped in a tenacity retry and a circuit breaker.
Who:   Instantiated once at import; used by ImageUploadService and /health.

Resilience Strategy:
    1. Tenacity retry with exponential backoff + jitter for transient
       failures (Cloudinary GeneralError/RateLimited, connection errors)
    2. Circuit breaker fed only by outages that outlast the retries, so a
       Cloudinary outage fails uploads instantly instead of tying up every
       request in retries
    3. Host rejections (bad file, bad credentials) are not retried and
       count as proof that Cloudinary is up
    4. The /health ping can end the breaker's cooldown early

Upload options (same as the web app):
    folder=CLOUDINARY_FOLDER, quality=auto, fetch_format=auto,
    resource_type=image
"""

import logging
import math
import time
import uuid
from typing import Callable, Optional

import cloudinary
import cloudinary.api
import cloudinary.exceptions
import cloudinary.uploader
from starlette.concurrency import run_in_threadpool
from tenacity import (
    RetryError,
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from skateswap.config import settings
from skateswap.exceptions import CircuitBreakerOpenError, ImageHostError, ValidationError
from skateswap.services.image_host_base import ImageHost, UploadedImage

logger = logging.getLogger(__name__)

# Worth another attempt; everything else from the SDK is a rejection
TRANSIENT_ERRORS = (
    cloudinary.exceptions.GeneralError,
    cloudinary.exceptions.RateLimited,
    ConnectionError,
    TimeoutError,
)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Tracks whether Cloudinary is reachable and stops uploads while it isn't.

    Only host outages trip the breaker: a transient error (TRANSIENT_ERRORS)
    that survived every retry. Any real answer from Cloudinary, including a
    rejected image or bad credentials, proves the host is up and counts as a
    healthy response.

        CLOSED ──threshold consecutive outages──▶ OPEN
        OPEN ──cooldown over, or /health ping ok──▶ HALF_OPEN
        HALF_OPEN ──trial upload answered──▶ CLOSED
        HALF_OPEN ──trial upload hit an outage──▶ OPEN (cooldown restarts)

    HALF_OPEN lets exactly one trial upload through at a time; concurrent
    uploads are turned away until the trial finishes. State only changes on
    the event loop, so plain attributes are enough.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.clock = clock
        self.state = self.CLOSED
        self.consecutive_outages = 0
        self.opened_at: Optional[float] = None
        self.trial_in_flight = False

    def retry_after(self) -> int:
        """Whole seconds left in the cooldown; 0 unless OPEN."""
        if self.state != self.OPEN or self.opened_at is None:
            return 0
        remaining = self.recovery_timeout - (self.clock() - self.opened_at)
        return max(0, math.ceil(remaining))

    def before_upload(self) -> None:
        """
        Gate for one upload.

        Raises:
            CircuitBreakerOpenError: Cooling down, or a trial upload is
                already in flight.
        """
        if self.state == self.OPEN:
            wait = self.retry_after()
            if wait > 0:
                raise CircuitBreakerOpenError(recovery_time=wait)
            self._half_open("cooldown elapsed")

        if self.state == self.HALF_OPEN:
            if self.trial_in_flight:
                raise CircuitBreakerOpenError(recovery_time=1)
            self.trial_in_flight = True

    def record_host_response(self) -> None:
        """Cloudinary answered (uploaded or rejected): the host is up."""
        if self.state != self.CLOSED:
            logger.info("Image host answered; circuit CLOSED")
        self.state = self.CLOSED
        self.consecutive_outages = 0
        self.opened_at = None
        self.trial_in_flight = False

    def record_outage(self, error: Optional[BaseException]) -> None:
        """Count a failed upload, if `error` says the host was unreachable."""
        self.trial_in_flight = False
        if not isinstance(error, TRANSIENT_ERRORS):
            return

        self.consecutive_outages += 1
        if self.state == self.HALF_OPEN:
            self._open("trial upload failed")
        elif self.consecutive_outages >= self.failure_threshold:
            self._open(f"{self.consecutive_outages} consecutive outages")

    def record_ping(self, reachable: bool) -> None:
        """
        Feed a /health ping result in. A successful ping ends the cooldown
        early; the next upload is the trial.
        """
        if reachable and self.state == self.OPEN:
            self._half_open("health ping succeeded")

    def release_trial(self) -> None:
        self.trial_in_flight = False

    def _open(self, reason: str) -> None:
        logger.warning("Image host circuit OPEN (%s); cooling down %ds", reason, self.recovery_timeout)
        self.state = self.OPEN
        self.opened_at = self.clock()
        self.trial_in_flight = False

    def _half_open(self, reason: str) -> None:
        logger.info("Image host circuit HALF_OPEN (%s)", reason)
        self.state = self.HALF_OPEN
        self.trial_in_flight = False


# ══════════════════════════════════════════════════════════════════════════
# Cloudinary Service
# ══════════════════════════════════════════════════════════════════════════

class CloudinaryService(ImageHost):
    """
    Cloudinary-backed image host.

    Error Handling Chain:
        SDK call fails transiently → tenacity retries (RETRY_MAX_ATTEMPTS)
        → All retries fail → breaker counts an outage → ImageHostError
        → Threshold reached → future uploads rejected instantly
        → Cooldown over or /health ping ok → one trial upload (HALF_OPEN)
        SDK rejects the image → ValidationError, breaker sees a live host
    """

    def __init__(self):
        if settings.cloudinary_configured:
            cloudinary.config(
                cloud_name=settings.cloudinary_cloud_name,
                api_key=settings.cloudinary_api_key,
                api_secret=settings.cloudinary_api_secret,
                secure=True,
            )

        self.folder = settings.cloudinary_folder
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "CloudinaryService initialized with folder=%s, configured=%s, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            self.folder,
            settings.cloudinary_configured,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    async def upload(self, source: str, label: str = "") -> UploadedImage:
        """
        Upload one image to Cloudinary.

        Flow:
            1. Circuit breaker gate → may raise CircuitBreakerOpenError
            2. Upload with retry (transient errors only)
            3. Report the outcome to the breaker: an answer from Cloudinary
               (stored or rejected) or an outage
        """
        request_id = str(uuid.uuid4())[:8]
        breaker = self.circuit_breaker

        breaker.before_upload()

        logger.info("[%s] Uploading image %s to Cloudinary", request_id, label or "(unnamed)")

        try:
            result = await self._upload_with_retry(source, request_id)
        except RetryError as e:
            last_error = e.last_attempt.exception() if e.last_attempt else None
            breaker.record_outage(last_error)
            logger.error("[%s] All Cloudinary retries exhausted: %s", request_id, last_error)
            raise ImageHostError(
                message="Image upload failed after multiple attempts. Please try again later.",
                retry_after=breaker.retry_after() or None,
                context={"request_id": request_id, "attempts": settings.retry_max_attempts},
            ) from e
        except cloudinary.exceptions.Error as e:
            # Not transient: bad image, bad credentials, quota
            breaker.record_host_response()
            logger.warning("[%s] Cloudinary rejected image: %s", request_id, str(e))
            raise ValidationError(
                message=f"Image upload was rejected: {e}",
                field="image",
                context={"request_id": request_id},
            ) from e
        finally:
            # Unexpected errors must not leave a HALF_OPEN trial slot taken
            breaker.release_trial()

        breaker.record_host_response()

        image_url = result.get("secure_url") or result.get("url")
        public_id = result.get("public_id")
        if not image_url or not public_id:
            raise ImageHostError(
                message="Image host returned an incomplete response.",
                context={"request_id": request_id},
            )

        logger.info("[%s] Image uploaded: %s", request_id, image_url)
        return UploadedImage(image_url=image_url, public_id=public_id)

    @retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
    async def _upload_with_retry(self, source: str, request_id: str) -> dict:
        """
        The retried unit: one SDK upload call.

        Kept apart from upload() so the circuit breaker check runs once per
        request, not once per attempt.
        """
        start_time = time.time()
        try:
            result = await run_in_threadpool(
                cloudinary.uploader.upload,
                source,
                folder=self.folder,
                quality="auto",
                fetch_format="auto",
                resource_type="image",
            )
        except TRANSIENT_ERRORS as e:
            logger.warning(
                "[%s] Cloudinary call failed after %.0fms: %s",
                request_id,
                (time.time() - start_time) * 1000,
                str(e),
            )
            raise

        logger.debug(
            "[%s] Cloudinary call completed in %.0fms",
            request_id,
            (time.time() - start_time) * 1000,
        )
        return result

    async def health_check(self) -> bool:
        """
        Cloudinary admin API ping (no upload quota used).

        The result is passed to the circuit breaker, so a good ping while
        OPEN lets the next upload through as the trial.
        """
        if not settings.cloudinary_configured:
            return False
        try:
            response = await run_in_threadpool(cloudinary.api.ping)
            reachable = response.get("status") == "ok"
        except Exception as e:
            logger.warning("Cloudinary health check failed: %s", str(e))
            reachable = False

        self.circuit_breaker.record_ping(reachable)
        return reachable


# ── Singleton Instance ────────────────────────────────────────────────────
# One breaker shared by every request
cloudinary_service = CloudinaryService()
