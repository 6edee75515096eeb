"""
SkateSwap Backend - Abstract Image Host Interface
===================================================

What:  Contract for the service that stores listing photos and hands back
       a public URL.
How:   Concrete hosts inherit from ImageHost and implement upload() and
       health_check().
Who:   Called by ImageUploadService; checked by the health endpoint.

The rest of the backend only ever sees `UploadedImage.image_url`, which is
what clients later put into a listing's image_urls.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class UploadedImage:
    """Where the host put an image."""
    image_url: str
    public_id: str


class ImageHost(ABC):
    """
    Abstract interface for hosted image storage.

    Contract:
        - upload() accepts a base64 data URI or a remote http(s) URL
        - Implementations handle their own retry logic and error translation
        - Host-side rejections of the image become ValidationError; outages
          become ImageHostError or CircuitBreakerOpenError

    Implementations:
        - CloudinaryService: Cloudinary upload API (default)
    """

    @abstractmethod
    async def upload(self, source: str, label: str = "") -> UploadedImage:
        """
        Store one image.

        Args:
            source: data:image/...;base64,... URI or http(s) URL.
            label:  Client-side file name, used for logging only.

        Raises:
            ValidationError: The host refused the image.
            ImageHostError: The host failed after all retries.
            CircuitBreakerOpenError: Too many recent host failures.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """True if the host is reachable and the credentials are accepted."""
        ...
