import io
from typing import Any

import pytest
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from vertex_processor.database.base import BaseDocumentStore
from vertex_processor.database.models import StoredDocument


class MemoryDocumentStore(BaseDocumentStore):
    """Dict-backed document store for tests."""

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.writes: list[tuple[str, str]] = []

    async def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        return self.collections.get(collection, {}).get(document_id)

    async def list(self, collection: str, page_size: int = 300) -> list[StoredDocument]:
        docs = self.collections.get(collection, {})
        return [StoredDocument(id=key, data=value) for key, value in sorted(docs.items())]

    async def upsert(self, collection: str, document_id: str, data: dict[str, Any]) -> None:
        self.writes.append((collection, document_id))
        self.collections.setdefault(collection, {})[document_id] = dict(data)


@pytest.fixture()
def memory_store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a one-page tax invoice PDF."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.drawString(72, 780, "TAX INVOICE")
    c.drawString(72, 760, "Invoice No: INV-2024-001")
    c.drawString(72, 740, "Seller GSTIN: 27AAAAA0000A1Z5")
    c.drawString(72, 720, "CGST: 90.00  SGST: 90.00")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def blank_pdf_bytes() -> bytes:
    """Generate a valid PDF with a blank page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.showPage()
    c.save()
    return buf.getvalue()
