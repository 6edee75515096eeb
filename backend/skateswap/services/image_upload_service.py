"""
SkateSwap Backend - Image Upload Service
==========================================

What:  Validates an image sent by the "sell an item" form and hands it to
       the image host.
How:   Data URIs are decoded and checked (base64, size, magic bytes) before
       any network call; remote http(s) URLs go to the host as-is and
       the host fetches them.
Who:   Called by POST /api/upload-image.

Validation order (cheapest first):
    1. Shape check   data:...;base64,... or http(s)://...
    2. Size estimate from the base64 length, before decoding
    3. base64 decode (strict alphabet) and exact size check
    4. MIME type from the decoded bytes via libmagic

Only the original `image` string is sent to the host; the decoded bytes
exist for validation.
"""

import base64
import binascii
import logging
import re
from typing import Optional, Tuple

from skateswap.config import settings
from skateswap.exceptions import ValidationError
from skateswap.schemas.common import ImageUploadResponse
from skateswap.services.cloudinary_service import cloudinary_service

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
    "image/png",
    "image/jpeg",
    "image/gif",
    "image/webp",
}

DATA_URI_PATTERN = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w.+-]+=[^;,]*)*;base64,(?P<data>.*)$",
    re.DOTALL | re.IGNORECASE,
)

REMOTE_URL_PATTERN = re.compile(r"^https?://\S+$", re.IGNORECASE)


class ImageUploadService:
    """
    Validation in front of the image host.

    Every check raises ValidationError (→ 400) with `field="image"`;
    host failures propagate from the host unchanged.
    """

    def parse_data_uri(self, image: str) -> Tuple[Optional[str], str]:
        """
        Split a data URI into (declared MIME type, base64 payload).

        Raises:
            ValidationError: Not a base64 data URI.
        """
        match = DATA_URI_PATTERN.match(image.strip())
        if match is None:
            raise ValidationError(
                message="Image must be a base64 data URI or an http(s) URL",
                field="image",
            )
        mime = match.group("mime")
        return (mime.lower() if mime else None), match.group("data")

    def decode_payload(self, payload: str) -> bytes:
        """
        Decode the base64 part of a data URI.

        The size limit is checked twice: first from the encoded length, so an
        oversized payload is never decoded, then on the decoded bytes.
        """
        # Line breaks are legal in MIME base64; the strict decoder rejects them
        compact = "".join(payload.split())
        if not compact:
            raise ValidationError(message="No image data provided", field="image")

        max_mb = settings.max_image_size / (1024 * 1024)
        estimated_size = len(compact) * 3 // 4
        if estimated_size > settings.max_image_size + 2:
            raise ValidationError(
                message=f"Image exceeds maximum size of {max_mb:.0f}MB. Please upload a smaller image.",
                field="image",
                context={"max_size_mb": max_mb, "estimated_size": estimated_size},
            )

        try:
            content = base64.b64decode(compact, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValidationError(
                message="Image data is not valid base64",
                field="image",
            ) from e

        if not content:
            raise ValidationError(message="No image data provided", field="image")

        if len(content) > settings.max_image_size:
            raise ValidationError(
                message=(
                    f"Image size ({len(content) / (1024 * 1024):.1f}MB) exceeds "
                    f"maximum of {max_mb:.0f}MB."
                ),
                field="image",
                context={"max_size_mb": max_mb, "actual_size": len(content)},
            )
        return content

    def validate_mime_type(self, content: bytes, declared_mime: Optional[str]) -> str:
        """
        Detect the real content type from the image's leading bytes.

        Returns:
            Detected MIME type (e.g. "image/webp").

        Raises:
            ValidationError: Not one of png/jpeg/gif/webp.
        """
        try:
            import magic
            mime_type = magic.from_buffer(content, mime=True)
        except ImportError:
            # python-magic not installed (e.g., in CI without libmagic)
            logger.warning(
                "python-magic not available - falling back to the declared data URI type. "
                "Install libmagic for production security."
            )
            mime_type = "image/jpeg" if declared_mime == "image/jpg" else (declared_mime or "")

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"Image content type '{mime_type or 'unknown'}' is not supported. "
                    f"Upload a PNG, JPEG, GIF or WebP image."
                ),
                field="image",
                context={"detected_mime": mime_type, "allowed": sorted(ALLOWED_MIME_TYPES)},
            )
        return mime_type

    async def upload(self, image: str, file_name: Optional[str] = None) -> ImageUploadResponse:
        """
        Validate `image` and upload it.

        Raises:
            ValidationError: Unusable image payload, or the host refused it (→ 400)
            ImageHostError: Host failed after retries (→ 503)
            CircuitBreakerOpenError: Host circuit is open (→ 503)
        """
        image = image.strip()
        if not image:
            raise ValidationError(message="No image data provided", field="image")

        if REMOTE_URL_PATTERN.match(image):
            logger.info("Forwarding remote image URL to the image host")
        else:
            declared_mime, payload = self.parse_data_uri(image)
            content = self.decode_payload(payload)
            mime_type = self.validate_mime_type(content, declared_mime)
            logger.info(
                "Image %s validated: %s, %d bytes",
                file_name or "(unnamed)",
                mime_type,
                len(content),
            )

        uploaded = await cloudinary_service.upload(image, label=file_name or "")
        return ImageUploadResponse(image_url=uploaded.image_url, public_id=uploaded.public_id)


# ── Singleton Instance ────────────────────────────────────────────────────
image_upload_service = ImageUploadService()
