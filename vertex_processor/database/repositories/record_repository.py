from vertex_processor.database.base import BaseDocumentStore
from vertex_processor.database.models import ExtractionRecord, utc_now_iso


class RecordRepository:
    """Persistence for extraction records in the sampling collection."""

    def __init__(self, store: BaseDocumentStore, collection: str = "Sampling") -> None:
        self._store = store
        self._collection = collection

    @property
    def collection(self) -> str:
        return self._collection

    async def get(self, record_id: str) -> ExtractionRecord | None:
        data = await self._store.get(self._collection, record_id)
        if data is None:
            return None
        return ExtractionRecord.from_document(record_id, data)

    async def upsert(self, record: ExtractionRecord) -> ExtractionRecord:
        """Overwrite the stored record, keeping the first ``createdAt`` it was given.

        Concurrent upserts for the same record id are last-write-wins.
        """
        now = utc_now_iso()
        if record.created_at is None:
            existing = await self._store.get(self._collection, record.record_id)
            if existing and existing.get("createdAt"):
                record.created_at = existing["createdAt"]
            else:
                record.created_at = now
        record.updated_at = now
        await self._store.upsert(self._collection, record.record_id, record.to_document())
        return record

    async def update_average(self, record: ExtractionRecord, avg: float) -> None:
        record.avg_confidence_score = avg
        record.updated_at = utc_now_iso()
        await self._store.upsert(self._collection, record.record_id, record.to_document())

    async def list_by_tag(self, tag: str, page_size: int = 300) -> list[ExtractionRecord]:
        return [r for r in await self.list(page_size) if r.tag == tag]

    async def list(self, page_size: int = 300) -> list[ExtractionRecord]:
        documents = await self._store.list(self._collection, page_size)
        return [ExtractionRecord.from_document(d.id, d.data) for d in documents]
