"""Validate untrusted image uploads and hand them to the media host."""

from __future__ import annotations

import hashlib
import io
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from src.media_storage import MediaHost

logger = logging.getLogger(__name__)

MEDIA_NAMESPACE = "portfolio"
# Server ceiling. The editor page refuses anything above EDITOR_MAX_UPLOAD_BYTES
# before sending, so in practice the editor never reaches this one.
MAX_UPLOAD_BYTES = 10 * 1024 * 1024
EDITOR_MAX_UPLOAD_BYTES = 5 * 1024 * 1024

ALLOWED_MIME_TYPES: Dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}
# Applied by the media host on upload: automatic quality, then automatic delivery format.
OPTIMIZATION_TRANSFORMATIONS: Tuple[Dict[str, str], ...] = (
    {"quality": "auto:good"},
    {"fetch_format": "auto"},
)

MISSING_FILE_MESSAGE = "No image file provided"
INVALID_TYPE_MESSAGE = "Invalid file type. Only JPEG, PNG, GIF, and WebP are allowed."
UNREADABLE_IMAGE_MESSAGE = "Uploaded file is not a readable image."


def _too_large_message(limit: int) -> str:
    return f"File too large. Maximum size is {limit // (1024 * 1024)}MB."


class MediaValidationError(ValueError):
    pass


class MediaIngestionError(RuntimeError):
    def __init__(self, details: str) -> None:
        super().__init__(details)
        self.details = details


@dataclass(frozen=True)
class MediaReference:
    url: str
    public_id: str
    file_name: str
    file_size: int
    width: int
    height: int

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "imageUrl": self.url,
            "publicId": self.public_id,
            "fileName": self.file_name,
            "fileSize": self.file_size,
            "width": self.width,
            "height": self.height,
        }


def check_type_and_size(
    mime_type: Optional[str],
    byte_size: int,
    *,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> None:
    if (mime_type or "").lower() not in ALLOWED_MIME_TYPES:
        raise MediaValidationError(INVALID_TYPE_MESSAGE)
    if byte_size > max_bytes:
        raise MediaValidationError(_too_large_message(max_bytes))


def validate_upload(
    data: Optional[bytes],
    mime_type: Optional[str],
    byte_size: Optional[int],
    *,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> None:
    if not data:
        raise MediaValidationError(MISSING_FILE_MESSAGE)
    size = len(data) if byte_size is None else int(byte_size)
    check_type_and_size(mime_type, size, max_bytes=max_bytes)


def _read_dimensions(data: bytes) -> tuple[int, int]:
    try:
        with Image.open(io.BytesIO(data)) as image:
            width, height = image.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise MediaValidationError(UNREADABLE_IMAGE_MESSAGE) from exc
    if width <= 0 or height <= 0:
        raise MediaValidationError(UNREADABLE_IMAGE_MESSAGE)
    return width, height


def object_name_for(data: bytes, mime_type: str) -> str:
    digest = hashlib.sha256(data).hexdigest()
    return f"{MEDIA_NAMESPACE}/{digest}{ALLOWED_MIME_TYPES[mime_type.lower()]}"


def ingest(
    data: Optional[bytes],
    mime_type: Optional[str],
    byte_size: Optional[int],
    *,
    file_name: str,
    host: MediaHost,
) -> MediaReference:
    """
    Validate the upload, push it to `host` and return the hosted reference.

    Raises MediaValidationError before any network call for missing, disallowed,
    oversize or undecodable files, and MediaIngestionError when the host fails.
    """
    validate_upload(data, mime_type, byte_size)
    width, height = _read_dimensions(data)
    normalized_type = mime_type.lower()
    object_name = object_name_for(data, normalized_type)

    logger.info(
        "Uploading %s (%s, %.2f KB, %dx%d) as %s",
        file_name,
        normalized_type,
        len(data) / 1024,
        width,
        height,
        object_name,
    )
    try:
        hosted = host.upload(
            data,
            object_name,
            content_type="image/jpeg" if normalized_type == "image/jpg" else normalized_type,
            transformations=OPTIMIZATION_TRANSFORMATIONS,
        )
    except Exception as exc:
        logger.error("Media host upload failed for %s: %s", object_name, exc, exc_info=True)
        raise MediaIngestionError(str(exc) or exc.__class__.__name__) from exc

    return MediaReference(
        url=hosted.url,
        public_id=hosted.public_id,
        file_name=file_name,
        file_size=int(byte_size) if byte_size is not None else len(data),
        width=hosted.width or width,
        height=hosted.height or height,
    )
