import json

import pytest

from vertex_processor.aggregation.engine import (
    AggregationEngine,
    SelectionPolicy,
    SummaryFilter,
    has_presence_value,
)
from vertex_processor.database.models import ExtractionRecord
from vertex_processor.extraction.field_schema import FieldSchema
from vertex_processor.extraction.normalizer import ResponseNormalizer, average_confidence


def _record(record_id: str, invoice: object, confidence: float, **kwargs: object) -> ExtractionRecord:
    return ExtractionRecord(
        record_id=record_id,
        tag=kwargs.pop("tag", "t"),
        origin="drive",
        extracted_fields={"Invoice_Number": invoice},
        field_confidence={"Invoice_Number": confidence},
        **kwargs,
    )


class TestSelectionPolicies:
    def test_exclude_missing(self) -> None:
        records = [_record("a", "X", 0.9), _record("b", "", 0.5)]
        result = AggregationEngine(FieldSchema()).summarize(records, policy=SelectionPolicy.EXCLUDE_MISSING)
        assert result.count == 1
        assert result.overall_avg_confidence == pytest.approx(0.9)

    def test_zero_fill(self) -> None:
        records = [_record("a", "X", 0.9), _record("b", "", 0.5)]
        result = AggregationEngine(FieldSchema()).summarize(records, policy=SelectionPolicy.ZERO_FILL)
        assert result.count == 2
        assert result.overall_avg_confidence == pytest.approx(0.45)
        assert [r.avg_confidence_row for r in result.rows] == [pytest.approx(0.9), 0.0]

    def test_empty_corpus(self) -> None:
        result = AggregationEngine(FieldSchema()).summarize([])
        assert result.count == 0
        assert result.overall_avg_confidence == 0.0

    def test_policy_from_string(self) -> None:
        assert SelectionPolicy("exclude-missing") is SelectionPolicy.EXCLUDE_MISSING


class TestPresence:
    @pytest.mark.parametrize("value,expected", [("X", True), (0, True), ("  ", False), (None, False)])
    def test_presence_value(self, value: object, expected: bool) -> None:
        assert has_presence_value(_record("a", value, 0.5), "Invoice_Number") is expected


class TestFilters:
    def test_tag_and_folder(self) -> None:
        records = [
            _record("a", "1", 0.5, tag="keep", folder_id="f1"),
            _record("b", "2", 0.5, tag="keep", folder_id="f2"),
            _record("c", "3", 0.5, tag="other", folder_id="f1"),
        ]
        engine = AggregationEngine(FieldSchema())
        assert [r.record_id for r in engine.summarize(records, SummaryFilter(tag="keep")).rows] == ["a", "b"]
        result = engine.summarize(records, SummaryFilter(tag="keep", folder_id="f1"))
        assert [r.record_id for r in result.rows] == ["a"]


class TestRowAverage:
    def test_only_schema_fields_count(self) -> None:
        engine = AggregationEngine(FieldSchema())
        assert engine.row_average({"Invoice_Number": 0.4, "line_items": 1.0}) == pytest.approx(0.4)

    def test_agrees_with_write_time_average_on_schema_maps(self) -> None:
        scores = {"Invoice_Number": 0.9, "Seller_GSTIN": 0.0, "CGST_Amount": 0.6, "IRN_Details": 0.75}
        engine = AggregationEngine(FieldSchema())
        assert engine.row_average(scores) == pytest.approx(average_confidence(scores))

    @pytest.mark.parametrize(
        "scores",
        [
            {"a": 0.8},
            {"Invoice_Number": 0.4, "note": 1.0},
            {"invoice_no": 0.9, "extra": 0.1, "Seller_GSTIN": 0},
            {},
        ],
    )
    def test_agrees_with_write_time_average_on_any_map(self, scores: dict) -> None:
        text = json.dumps({"fields": {}, "fields_confidence": scores})
        written = ResponseNormalizer(FieldSchema()).normalize(
            {"candidates": [{"content": {"parts": [{"text": text}]}}]}
        )
        engine = AggregationEngine(FieldSchema())
        assert engine.row_average(written.fields_confidence) == pytest.approx(written.avg_confidence)

    def test_to_dict(self) -> None:
        result = AggregationEngine(FieldSchema()).summarize([_record("a", "X", 0.9)])
        data = result.to_dict()
        assert data["policy"] == "zero-fill"
        assert data["rows"][0]["recordId"] == "a"
        assert data["rows"][0]["avg_confidence_row"] == pytest.approx(0.9)
