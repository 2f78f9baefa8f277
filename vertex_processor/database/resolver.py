from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

from vertex_processor.database.base import BaseDocumentStore
from vertex_processor.database.exceptions import StoreUnavailableError
from vertex_processor.database.models import StoredDocument
from vertex_processor.logging.logger import Log

T = TypeVar("T")


class StoreResolver(BaseDocumentStore):
    """Tries an ordered list of stores, moving on only when a database is missing.

    Typically the named Firestore database first and the default one second.
    Any error other than StoreUnavailableError propagates from the first store.
    """

    def __init__(self, stores: Sequence[BaseDocumentStore]) -> None:
        if not stores:
            raise ValueError("StoreResolver needs at least one store")
        self._stores = list(stores)

    async def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        return await self._first_available(lambda s: s.get(collection, document_id))

    async def list(self, collection: str, page_size: int = 300) -> list[StoredDocument]:
        return await self._first_available(lambda s: s.list(collection, page_size))

    async def upsert(self, collection: str, document_id: str, data: dict[str, Any]) -> None:
        await self._first_available(lambda s: s.upsert(collection, document_id, data))

    async def aclose(self) -> None:
        for store in self._stores:
            await store.aclose()

    async def _first_available(self, call: Callable[[BaseDocumentStore], Awaitable[T]]) -> T:
        last_error: StoreUnavailableError | None = None
        for index, store in enumerate(self._stores):
            try:
                return await call(store)
            except StoreUnavailableError as exc:
                Log.info("Document store unavailable, trying next", store_index=index, error=str(exc))
                last_error = exc
        raise last_error or StoreUnavailableError("No document store configured")
