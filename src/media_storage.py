from __future__ import annotations

import io
import os
import posixpath
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping, Optional, Protocol, Sequence
from urllib.parse import quote

import cloudinary.uploader
from google.cloud import storage
from google.oauth2 import service_account

from src.secrets import get_secret


# Defaults can be overridden via env vars without touching code
DEFAULT_BUCKET = os.getenv("BUCKET_NAME", "portfolio-media")
DEFAULT_KEYFILE = os.getenv("API_BUCKET_KEY_FILE", "secrets/media_bucket_key.json")
DEFAULT_PUBLIC_BASE_URL = os.getenv("MEDIA_PUBLIC_BASE_URL", "https://storage.googleapis.com")
CACHE_SECONDS = 31536000


@dataclass(frozen=True)
class HostedObject:
    url: str
    public_id: str
    # Filled in by hosts that inspect the stored image.
    width: Optional[int] = None
    height: Optional[int] = None


class MediaHost(Protocol):
    def upload(
        self,
        data: bytes,
        object_name: str,
        *,
        content_type: str,
        transformations: Sequence[Mapping[str, str]],
    ) -> HostedObject: ...


@dataclass(frozen=True)
class CloudinaryCredentials:
    cloud_name: str
    api_key: str
    api_secret: str

    def as_options(self) -> dict[str, str]:
        return {"cloud_name": self.cloud_name, "api_key": self.api_key, "api_secret": self.api_secret}


def load_cloudinary_credentials() -> Optional[CloudinaryCredentials]:
    cloud_name = get_secret("CLOUDINARY_CLOUD_NAME", default="")
    if not cloud_name:
        return None
    return CloudinaryCredentials(
        cloud_name=cloud_name,
        api_key=get_secret("CLOUDINARY_API_KEY"),
        api_secret=get_secret("CLOUDINARY_API_SECRET"),
    )


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class CloudinaryMediaHost:
    """
    Uploads images to Cloudinary with incoming transformations applied.

    Cloudinary re-encodes the stored asset according to `transformations`
    (quality and delivery format) and reports the resulting dimensions.
    """

    def __init__(self, credentials: CloudinaryCredentials) -> None:
        self.credentials = credentials

    def upload(
        self,
        data: bytes,
        object_name: str,
        *,
        content_type: str,
        transformations: Sequence[Mapping[str, str]],
    ) -> HostedObject:
        # portfolio/<digest>.png -> folder "portfolio", public id "<digest>"
        folder, _, name = posixpath.splitext(object_name)[0].rpartition("/")
        stream = io.BytesIO(data)
        stream.name = posixpath.basename(object_name)
        result = cloudinary.uploader.upload(
            stream,
            folder=folder or None,
            public_id=name,
            resource_type="image",
            overwrite=False,
            transformation=[dict(step) for step in transformations],
            **self.credentials.as_options(),
        )
        return HostedObject(
            url=result["secure_url"],
            public_id=result["public_id"],
            width=_as_int(result.get("width")),
            height=_as_int(result.get("height")),
        )


def _credentials():
    """
    Prefer an explicit service-account key file; return None to fall back to
    Application Default Credentials when the file is missing.
    """
    path = DEFAULT_KEYFILE
    if path and os.path.exists(path):
        return service_account.Credentials.from_service_account_file(path)
    return None


@lru_cache(maxsize=1)
def storage_client() -> storage.Client:
    creds = _credentials()
    if creds is not None:
        return storage.Client(credentials=creds, project=creds.project_id)
    return storage.Client()  # ADC


def public_url(bucket_name: str, object_name: str, *, base_url: str = DEFAULT_PUBLIC_BASE_URL) -> str:
    normalized = str(object_name or "").strip().lstrip("/")
    return f"{base_url.rstrip('/')}/{bucket_name}/{quote(normalized, safe='/')}"


class GcsMediaHost:
    """
    Stores the original bytes in a Cloud Storage bucket served over HTTPS.

    A bucket has no image pipeline: `transformations` are not applied and the
    caller keeps its locally read dimensions.
    """

    def __init__(self, bucket_name: Optional[str] = None, *, base_url: str = DEFAULT_PUBLIC_BASE_URL) -> None:
        self.bucket_name = bucket_name or DEFAULT_BUCKET
        self.base_url = base_url

    def upload(
        self,
        data: bytes,
        object_name: str,
        *,
        content_type: str,
        transformations: Sequence[Mapping[str, str]],
    ) -> HostedObject:
        bucket = storage_client().bucket(self.bucket_name)
        blob = bucket.blob(object_name)
        # Object names are content addressed, so the payload never changes.
        blob.cache_control = f"public, max-age={CACHE_SECONDS}, immutable"
        blob.upload_from_string(data, content_type=content_type)
        return HostedObject(
            url=public_url(self.bucket_name, blob.name, base_url=self.base_url),
            public_id=blob.name,
        )


def default_media_host() -> MediaHost:
    """Cloudinary when its credentials are configured, else the storage bucket."""
    credentials = load_cloudinary_credentials()
    if credentials is not None:
        return CloudinaryMediaHost(credentials)
    return GcsMediaHost()
