"""
Media upload gateway.

Forwards a data-URI encoded image to Cloudinary and returns the durable URL.
Images are normalised to webp with automatic quality on the way in. No retry
is attempted here; callers upload one image per request.
"""
import hashlib
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

import httpx

from .config import MEDIA_ENV_VARS, Settings
from .errors import (
    MediaTransientError,
    PayloadTooLarge,
    UnsupportedFormat,
    UpstreamAuthFailure,
    UpstreamRejected,
)
from .models import UploadedMedia

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 10 * 1024 * 1024
DATA_URI_PREFIX = "data:image/"
UPLOAD_FORMAT = "webp"
UPLOAD_TRANSFORMATION = "q_auto:good/f_webp"


def estimate_decoded_size(data_uri: str) -> int:
    return int(len(data_uri) * 0.75)


def check_image_payload(image: Any) -> int:
    """Reject payloads that are not image data URIs or exceed the size limit.

    Returns the estimated decoded size in bytes.
    """
    if not image or not isinstance(image, str):
        raise UnsupportedFormat("Image field is required and must be a base64 string")
    if not image.startswith(DATA_URI_PREFIX):
        raise UnsupportedFormat("Image must be a valid base64 data URI (data:image/...)")
    size = estimate_decoded_size(image)
    if size > MAX_IMAGE_BYTES:
        raise PayloadTooLarge("Image exceeds 10MB limit")
    return size


class MediaGateway(ABC):
    @abstractmethod
    async def upload_image(self, image: str, filename: Optional[str] = None) -> UploadedMedia:
        ...


class CloudinaryGateway(MediaGateway):
    UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/image/upload"

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str = "fabian-products",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder
        self.timeout = timeout
        self.transport = transport
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "CloudinaryGateway":
        settings.require(MEDIA_ENV_VARS)
        return cls(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            folder=settings.cloudinary_folder,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    @property
    def upload_url(self) -> str:
        return self.UPLOAD_URL.format(cloud_name=self.cloud_name)

    def sign(self, params: Dict[str, str]) -> str:
        """Cloudinary request signature: sorted key=value pairs, secret appended, SHA-1."""
        to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] != "")
        return hashlib.sha1((to_sign + self.api_secret).encode("utf-8")).hexdigest()

    async def upload_image(self, image: str, filename: Optional[str] = None) -> UploadedMedia:
        size = check_image_payload(image)
        logger.info("Uploading image: filename=%s, size=%dKB", filename or "unknown", size // 1024)

        params = {
            "folder": self.folder,
            "format": UPLOAD_FORMAT,
            "timestamp": str(int(self.clock())),
            "transformation": UPLOAD_TRANSFORMATION,
        }
        form = dict(params, api_key=self.api_key, signature=self.sign(params), file=image)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.upload_url, data=form)
        except httpx.RequestError as exc:
            logger.error("Cloudinary request failed: %s", exc)
            raise MediaTransientError("Failed to upload image to Cloudinary", detail=str(exc))

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.status_code >= 400:
            error = body.get("error")
            message = (error or {}).get("message") if isinstance(error, dict) else None
            message = message or response.text or "Unknown error"
            logger.error("Cloudinary error: http_code=%s message=%s", response.status_code, message)
            if response.status_code in (401, 403):
                raise UpstreamAuthFailure("Cloudinary authentication failed - check API credentials", response.status_code, message)
            if "Invalid image file" in message:
                raise UpstreamRejected("Invalid image file format", response.status_code, message)
            raise MediaTransientError("Failed to upload image to Cloudinary", response.status_code, message)

        if not body.get("secure_url") or not body.get("public_id"):
            raise MediaTransientError("Failed to upload image to Cloudinary", response.status_code, "response missing secure_url")

        logger.info("Upload successful: url=%s, publicId=%s", body["secure_url"], body["public_id"])
        return UploadedMedia(url=body["secure_url"], public_id=body["public_id"])
