from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from vertex_processor.database.base import BaseDocumentStore
from vertex_processor.database.connection import get_connection
from vertex_processor.database.exceptions import DocumentStoreError
from vertex_processor.database.models import StoredDocument


class PostgresDocumentStore(BaseDocumentStore):
    """Document store backed by one JSONB table keyed by (collection, id)."""

    async def ensure_schema(self) -> None:
        """Create the documents table if it does not exist yet."""
        try:
            async with get_connection() as conn:
                await conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS documents (
                        collection TEXT NOT NULL,
                        id TEXT NOT NULL,
                        data JSONB NOT NULL,
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                        PRIMARY KEY (collection, id)
                    )
                    """
                )
                await conn.commit()
        except psycopg.Error as exc:
            raise DocumentStoreError(f"Failed to create documents table: {exc}") from exc

    async def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        try:
            async with get_connection() as conn:
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(
                        "SELECT data FROM documents WHERE collection = %s AND id = %s",
                        (collection, document_id),
                    )
                    row = await cur.fetchone()
        except psycopg.Error as exc:
            raise DocumentStoreError(f"Failed to read {collection}/{document_id}: {exc}") from exc

        if row is None:
            return None
        return row["data"]

    async def list(self, collection: str, page_size: int = 300) -> list[StoredDocument]:
        documents: list[StoredDocument] = []
        last_id = ""
        try:
            async with get_connection() as conn:
                while True:
                    async with conn.cursor(row_factory=dict_row) as cur:
                        await cur.execute(
                            """
                            SELECT id, data
                            FROM documents
                            WHERE collection = %s AND id > %s
                            ORDER BY id
                            LIMIT %s
                            """,
                            (collection, last_id, page_size),
                        )
                        rows = await cur.fetchall()
                    documents.extend(StoredDocument(id=r["id"], data=r["data"]) for r in rows)
                    if len(rows) < page_size:
                        break
                    last_id = rows[-1]["id"]
        except psycopg.Error as exc:
            raise DocumentStoreError(f"Failed to list {collection}: {exc}") from exc
        return documents

    async def upsert(self, collection: str, document_id: str, data: dict[str, Any]) -> None:
        try:
            async with get_connection() as conn:
                await conn.execute(
                    """
                    INSERT INTO documents (collection, id, data, updated_at)
                    VALUES (%s, %s, %s, NOW())
                    ON CONFLICT (collection, id)
                    DO UPDATE SET data = EXCLUDED.data, updated_at = NOW()
                    """,
                    (collection, document_id, Jsonb(data)),
                )
                await conn.commit()
        except psycopg.Error as exc:
            raise DocumentStoreError(f"Failed to write {collection}/{document_id}: {exc}") from exc
