import asyncio
import random
import re
import string
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta

import google.api_core.exceptions
import google.auth.exceptions
from google.cloud import storage

from vertex_processor.storage.exceptions import InvalidObjectUriError, ObjectStoreError

_GS_URI = re.compile(r"^gs://([^/]+)/(.+)$")
_BASE36 = string.digits + string.ascii_lowercase

MIN_SIGNED_URL_TTL_SECONDS = 60
MAX_SIGNED_URL_TTL_SECONDS = 7 * 24 * 60 * 60


@dataclass(frozen=True)
class StoredObject:
    """An uploaded object."""

    uri: str
    content_type: str
    size_bytes: int


@dataclass(frozen=True)
class SignedUrl:
    url: str
    expires_ms: int


def parse_gs_uri(uri: str) -> tuple[str, str]:
    """Split ``gs://bucket/path`` into bucket and object name.

    Raises:
        InvalidObjectUriError: if ``uri`` does not have that form.
    """
    match = _GS_URI.match(uri or "")
    if not match:
        raise InvalidObjectUriError(f"Invalid object URI: {uri!r}")
    return match.group(1), match.group(2)


def clamp_signed_url_ttl(ttl_seconds: int) -> int:
    return min(MAX_SIGNED_URL_TTL_SECONDS, max(MIN_SIGNED_URL_TTL_SECONDS, ttl_seconds))


def generate_destination(
    prefix: str,
    record_id: str | None,
    extension: str,
    *,
    now_ms: int | None = None,
    suffix: str | None = None,
) -> str:
    """Fresh object path ``uploads/<prefix>/<record>-<millis>-<6 base36 chars>.<ext>``."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    if suffix is None:
        suffix = "".join(random.choices(_BASE36, k=6))
    return f"uploads/{prefix}/{record_id or 'doc'}-{now_ms}-{suffix}.{extension}"


class BaseObjectStore(ABC):
    """Contract for blob storage."""

    @abstractmethod
    async def upload(
        self, bucket: str, path: str, data: bytes, content_type: str
    ) -> StoredObject:
        """Store ``data`` and return its URI.

        Raises:
            ObjectStoreError: if the upload fails.
        """

    @abstractmethod
    async def signed_url(self, uri: str, ttl_seconds: int) -> SignedUrl:
        """Return a time-limited read URL for ``uri``.

        Raises:
            InvalidObjectUriError: if ``uri`` is malformed.
            ObjectStoreError: if signing fails.
        """


class GcsObjectStore(BaseObjectStore):
    """Google Cloud Storage via the client library.

    The client is blocking, so every call runs in a worker thread.
    """

    def __init__(self, project_id: str | None = None, client: storage.Client | None = None) -> None:
        self._project_id = project_id or None
        self._client = client

    def _get_client(self) -> storage.Client:
        if self._client is None:
            self._client = storage.Client(project=self._project_id)
        return self._client

    async def upload(
        self, bucket: str, path: str, data: bytes, content_type: str
    ) -> StoredObject:
        def _upload() -> None:
            blob = self._get_client().bucket(bucket).blob(path)
            blob.upload_from_string(data, content_type=content_type)

        try:
            await asyncio.to_thread(_upload)
        except (
            google.api_core.exceptions.GoogleAPIError,
            google.auth.exceptions.GoogleAuthError,
        ) as exc:
            raise ObjectStoreError(f"Upload to gs://{bucket}/{path} failed: {exc}") from exc
        return StoredObject(
            uri=f"gs://{bucket}/{path}", content_type=content_type, size_bytes=len(data)
        )

    async def signed_url(self, uri: str, ttl_seconds: int) -> SignedUrl:
        bucket, name = parse_gs_uri(uri)
        ttl_seconds = clamp_signed_url_ttl(ttl_seconds)
        expires_ms = int(time.time() * 1000) + ttl_seconds * 1000

        def _sign() -> str:
            blob = self._get_client().bucket(bucket).blob(name)
            return blob.generate_signed_url(
                version="v4",
                expiration=timedelta(seconds=ttl_seconds),
                method="GET",
            )

        try:
            url = await asyncio.to_thread(_sign)
        except (
            google.api_core.exceptions.GoogleAPIError,
            google.auth.exceptions.GoogleAuthError,
            AttributeError,
        ) as exc:
            # Credentials without a private key raise AttributeError when signing.
            raise ObjectStoreError(f"Signing {uri} failed: {exc}") from exc
        return SignedUrl(url=url, expires_ms=expires_ms)
