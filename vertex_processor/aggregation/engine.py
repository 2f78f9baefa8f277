"""Confidence aggregation over stored extraction records."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from vertex_processor.database.models import ExtractionRecord
from vertex_processor.extraction.field_schema import FieldSchema
from vertex_processor.extraction.normalizer import record_average

DEFAULT_PRESENCE_FIELD = "Invoice_Number"


class SelectionPolicy(str, Enum):
    """How records without the presence field are treated.

    ZERO_FILL keeps every record and counts a record lacking the presence
    value as 0. EXCLUDE_MISSING drops such records from count and average.
    """

    ZERO_FILL = "zero-fill"
    EXCLUDE_MISSING = "exclude-missing"


@dataclass(frozen=True)
class SummaryFilter:
    tag: str | None = None
    folder_id: str | None = None

    def matches(self, record: ExtractionRecord) -> bool:
        if self.tag and record.tag != self.tag:
            return False
        if self.folder_id and record.folder_id != self.folder_id:
            return False
        return True

    def as_params(self) -> dict[str, str | None]:
        return {"tag": self.tag, "folderId": self.folder_id}


@dataclass(frozen=True)
class SummaryRow:
    record_id: str
    avg_confidence_row: float
    present: bool
    source_locator: str | None = None
    view_url: str | None = None
    display_name: str | None = None
    stored_object_uri: str | None = None
    fields: dict[str, Any] = field(default_factory=dict)
    fields_confidence: dict[str, Any] = field(default_factory=dict)
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "recordId": self.record_id,
            "sourceLocator": self.source_locator,
            "viewUrl": self.view_url,
            "displayName": self.display_name,
            "storedObjectUri": self.stored_object_uri,
            "avg_confidence_row": self.avg_confidence_row,
            "fields": self.fields,
            "fields_confidence": self.fields_confidence,
            "createdAt": self.created_at,
        }


@dataclass(frozen=True)
class SummaryResult:
    overall_avg_confidence: float
    count: int
    rows: list[SummaryRow]
    policy: SelectionPolicy

    def to_dict(self) -> dict[str, Any]:
        return {
            "overallAvgConfidence": self.overall_avg_confidence,
            "count": self.count,
            "policy": self.policy.value,
            "rows": [row.to_dict() for row in self.rows],
        }


def has_presence_value(record: ExtractionRecord, presence_field: str) -> bool:
    value = record.extracted_fields.get(presence_field)
    return value is not None and str(value).strip() != ""


class AggregationEngine:
    """Per-record and corpus-wide confidence averages for the schema fields."""

    def __init__(self, schema: FieldSchema, presence_field: str = DEFAULT_PRESENCE_FIELD) -> None:
        self._schema = schema
        self._presence_field = presence_field

    @property
    def schema(self) -> FieldSchema:
        return self._schema

    def row_average(self, field_confidence: dict[str, Any] | None) -> float:
        return record_average(field_confidence, self._schema.names)

    def summarize(
        self,
        records: Iterable[ExtractionRecord],
        summary_filter: SummaryFilter | None = None,
        policy: SelectionPolicy = SelectionPolicy.ZERO_FILL,
    ) -> SummaryResult:
        summary_filter = summary_filter or SummaryFilter()
        rows: list[SummaryRow] = []
        for record in records:
            if not summary_filter.matches(record):
                continue
            present = has_presence_value(record, self._presence_field)
            if not present and policy is SelectionPolicy.EXCLUDE_MISSING:
                continue
            avg = self.row_average(record.field_confidence) if present else 0.0
            rows.append(
                SummaryRow(
                    record_id=record.record_id,
                    avg_confidence_row=avg,
                    present=present,
                    source_locator=record.source_locator,
                    view_url=record.view_url,
                    display_name=record.display_name,
                    stored_object_uri=record.stored_object_uri,
                    fields=record.extracted_fields,
                    fields_confidence=record.field_confidence,
                    created_at=record.created_at,
                )
            )
        overall = sum(r.avg_confidence_row for r in rows) / len(rows) if rows else 0.0
        return SummaryResult(
            overall_avg_confidence=overall, count=len(rows), rows=rows, policy=policy
        )
