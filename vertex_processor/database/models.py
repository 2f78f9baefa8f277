from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class StoredDocument:
    """A document as returned by a store listing."""

    id: str
    data: dict[str, Any]


def _first(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


@dataclass
class ExtractionRecord:
    """One processed document, stored under ``record_id`` in the sampling collection."""

    record_id: str
    tag: str
    origin: str
    stored_object_uri: str | None = None
    display_name: str | None = None
    folder_id: str | None = None
    source_locator: str | None = None
    view_url: str | None = None
    extracted_fields: dict[str, Any] = field(default_factory=dict)
    field_confidence: dict[str, Any] = field(default_factory=dict)
    avg_confidence_score: float | None = None
    usage: dict[str, Any] | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None
    size_bytes: int | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def to_document(self) -> dict[str, Any]:
        return {
            "recordId": self.record_id,
            "tag": self.tag,
            "origin": self.origin,
            "displayName": self.display_name,
            "folderId": self.folder_id,
            "sourceLocator": self.source_locator,
            "viewUrl": self.view_url,
            "storedObjectUri": self.stored_object_uri,
            "extracted": {
                "fields": self.extracted_fields,
                "fields_confidence": self.field_confidence,
            },
            "avg_confidence_score": self.avg_confidence_score,
            "usage": self.usage,
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "sizeBytes": self.size_bytes,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_document(cls, record_id: str, data: dict[str, Any]) -> "ExtractionRecord":
        """Build a record from stored data, accepting the older key names too."""
        extracted = data.get("extracted") if isinstance(data.get("extracted"), dict) else {}
        fields = extracted.get("fields")
        confidence = extracted.get("fields_confidence") or extracted.get("field_confidence")
        usage = _first(data, "usage", "vertex_usage")
        usage = usage if isinstance(usage, dict) else None
        input_tokens = _as_int(data.get("inputTokens"))
        output_tokens = _as_int(data.get("outputTokens"))
        if usage is not None:
            if input_tokens is None:
                input_tokens = _as_int(usage.get("promptTokenCount"))
            if output_tokens is None:
                output_tokens = _as_int(usage.get("candidatesTokenCount"))
        return cls(
            record_id=str(data.get("recordId") or record_id),
            tag=str(data.get("tag") or ""),
            origin=str(data.get("origin") or ""),
            stored_object_uri=_first(data, "storedObjectUri", "gcsUri"),
            display_name=_first(data, "displayName", "driveFileName", "fileName"),
            folder_id=_first(data, "folderId", "driveFolderId", "zohoReportName"),
            source_locator=_first(
                data, "sourceLocator", "fileUrl", "zohoDownloadUrl", "driveViewUrl"
            ),
            view_url=_first(data, "viewUrl", "driveViewUrl"),
            extracted_fields=fields if isinstance(fields, dict) else {},
            field_confidence=confidence if isinstance(confidence, dict) else {},
            avg_confidence_score=_as_float(data.get("avg_confidence_score")),
            usage=usage,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            size_bytes=_as_int(_first(data, "sizeBytes", "size")),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )
