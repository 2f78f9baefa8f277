from dataclasses import dataclass

from vertex_processor.database.cache import SIGNED_URL_CACHE_COLLECTION, BestEffortCache, hash_id
from vertex_processor.database.models import utc_now_iso
from vertex_processor.storage.object_store import (
    BaseObjectStore,
    clamp_signed_url_ttl,
    parse_gs_uri,
)

REUSE_MARGIN_MS = 60 * 1000


@dataclass(frozen=True)
class SignedUrlResult:
    url: str
    expires: int
    cached: bool
    cached_at: str | None = None


class SignedUrlService:
    """Signed read URLs, reused from cache while more than a minute of validity remains."""

    def __init__(
        self,
        *,
        object_store: BaseObjectStore,
        cache: BestEffortCache,
        default_ttl_seconds: int = 600,
    ) -> None:
        self._object_store = object_store
        self._cache = cache
        self._default_ttl_seconds = default_ttl_seconds

    async def signed_url(self, object_uri: str, ttl_seconds: int | None = None) -> SignedUrlResult:
        parse_gs_uri(object_uri)
        ttl = clamp_signed_url_ttl(ttl_seconds or self._default_ttl_seconds)
        key = hash_id(object_uri)
        now_ms = int(self._cache.now() * 1000)
        cached = await self._cache.read(SIGNED_URL_CACHE_COLLECTION, key)
        if cached and cached.get("url") and isinstance(cached.get("expires"), (int, float)):
            if cached["expires"] - now_ms > REUSE_MARGIN_MS:
                return SignedUrlResult(
                    url=cached["url"],
                    expires=int(cached["expires"]),
                    cached=True,
                    cached_at=cached.get("updatedAt") or cached.get("createdAt"),
                )
        signed = await self._object_store.signed_url(object_uri, ttl)
        await self._cache.write(
            SIGNED_URL_CACHE_COLLECTION,
            key,
            {
                "objectUri": object_uri,
                "url": signed.url,
                "expires": signed.expires_ms,
                "createdAt": utc_now_iso(),
            },
        )
        return SignedUrlResult(url=signed.url, expires=signed.expires_ms, cached=False)
