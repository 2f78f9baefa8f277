from abc import ABC, abstractmethod
from typing import Any

from vertex_processor.database.models import StoredDocument


class BaseDocumentStore(ABC):
    """Contract for a keyed JSON document store grouped in collections."""

    @abstractmethod
    async def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        """Return the document data, or None when it does not exist.

        Raises:
            StoreUnavailableError: when the database itself is missing.
            DocumentStoreError: on any other failure.
        """

    @abstractmethod
    async def list(self, collection: str, page_size: int = 300) -> list[StoredDocument]:
        """Return every document in ``collection``, fetched ``page_size`` at a time."""

    @abstractmethod
    async def upsert(self, collection: str, document_id: str, data: dict[str, Any]) -> None:
        """Create or fully overwrite a document."""

    async def aclose(self) -> None:
        return None
