"""
SkateSwap Backend - Image Upload Route
========================================

What:  POST /api/upload-image for the "sell an item" form.
How:   The form reads a photo as a data URI and posts it as JSON; the
       returned image_url is later sent in the listing's imageUrls.

Request Flow:
    1. JSON body {image, fileName?}
    2. ImageUploadService validates (base64, size, MIME)
    3. Image host stores the image (retry + circuit breaker)
    4. 201 with {image_url, public_id}
"""

from fastapi import APIRouter

from skateswap.schemas.common import ErrorResponse, ImageUploadRequest, ImageUploadResponse
from skateswap.services.image_upload_service import image_upload_service


router = APIRouter(prefix="/api", tags=["Uploads"])


@router.post(
    "/upload-image",
    status_code=201,
    response_model=ImageUploadResponse,
    responses={
        201: {"description": "Image hosted", "model": ImageUploadResponse},
        400: {"description": "Invalid image data, type or size", "model": ErrorResponse},
        503: {"description": "Image host unavailable", "model": ErrorResponse},
    },
    summary="Upload a listing photo",
    description=(
        "Accepts a base64 data URI (PNG, JPEG, GIF or WebP, up to MAX_IMAGE_SIZE) "
        "or a remote http(s) image URL and returns the hosted HTTPS URL."
    ),
)
async def upload_image(data: ImageUploadRequest) -> ImageUploadResponse:
    return await image_upload_service.upload(image=data.image, file_name=data.file_name)
