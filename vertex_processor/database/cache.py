import hashlib
import time
from collections.abc import Callable
from typing import Any

from vertex_processor.database.base import BaseDocumentStore
from vertex_processor.database.models import utc_now_iso
from vertex_processor.logging.logger import Log

URL_CACHE_COLLECTION = "urlCache"
PROCESS_CACHE_COLLECTION = "processCache"
SUMMARY_CACHE_COLLECTION = "summaryCache"
SIGNED_URL_CACHE_COLLECTION = "signedUrlCache"


def hash_id(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def url_cache_key(source_url: str) -> str:
    return hash_id(source_url)


def process_cache_key(stored_object_uri: str, model: str, prompt: str) -> str:
    return hash_id(f"{stored_object_uri}|{model}|{prompt}")


class BestEffortCache:
    """Cache reads and writes that never fail the caller.

    Failures are logged at warning level and reported as a miss or as an
    unsuccessful write.
    """

    def __init__(
        self,
        store: BaseDocumentStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    async def read(self, collection: str, key: str) -> dict[str, Any] | None:
        try:
            return await self._store.get(collection, key)
        except Exception as exc:
            Log.warning(
                "Cache read failed", collection=collection, error_type=type(exc).__name__, error=str(exc)
            )
            return None

    async def write(self, collection: str, key: str, data: dict[str, Any]) -> bool:
        try:
            await self._store.upsert(collection, key, {**data, "updatedAt": utc_now_iso()})
        except Exception as exc:
            Log.warning(
                "Cache write failed", collection=collection, error_type=type(exc).__name__, error=str(exc)
            )
            return False
        return True

    async def read_fresh(
        self, collection: str, key: str, ttl_seconds: float
    ) -> dict[str, Any] | None:
        """Return the cached entry when it was stored less than ``ttl_seconds`` ago.

        Entries carry their store time as ``cachedAt`` in epoch milliseconds.
        """
        entry = await self.read(collection, key)
        if not entry:
            return None
        cached_at = entry.get("cachedAt")
        if isinstance(cached_at, bool) or not isinstance(cached_at, (int, float)):
            return None
        if self.now() * 1000 - cached_at >= ttl_seconds * 1000:
            return None
        return entry

    async def write_timestamped(self, collection: str, key: str, data: dict[str, Any]) -> int:
        """Store ``data`` stamped with ``cachedAt`` and return that timestamp."""
        cached_at = int(self.now() * 1000)
        await self.write(collection, key, {**data, "cachedAt": cached_at})
        return cached_at
