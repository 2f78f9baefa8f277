"""Summary exports: CSV and JSON."""

import csv
import io
import math
from typing import Any

from vertex_processor.aggregation.engine import SummaryResult
from vertex_processor.extraction.field_schema import FieldSchema


def _header(schema: FieldSchema) -> list[str]:
    headers = ["recordId", "sourceLocator", "avg_confidence_row"]
    for name in schema.names:
        headers.extend([name, f"{name}_confidence"])
    return headers


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


def _confidence_cell(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return ""
    return f"{value:.6f}"


def export_csv(result: SummaryResult, schema: FieldSchema) -> str:
    """Render the summary as CSV preceded by an overall-average comment line."""
    buffer = io.StringIO()
    buffer.write(f"# Overall_Avg_Confidence,{result.overall_avg_confidence:.6f}\n")
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(_header(schema))
    for row in result.rows:
        line = [row.record_id, _cell(row.source_locator), f"{row.avg_confidence_row:.6f}"]
        for name in schema.names:
            confidence = row.fields_confidence.get(name)
            line.append(_cell(row.fields.get(name)))
            line.append(_confidence_cell(confidence))
        writer.writerow(line)
    return buffer.getvalue()


def export_json(result: SummaryResult, schema: FieldSchema) -> dict[str, Any]:
    return {
        "success": True,
        "overallAvgConfidence": result.overall_avg_confidence,
        "count": result.count,
        "policy": result.policy.value,
        "fields": schema.names,
        "rows": [
            {
                "recordId": row.record_id,
                "sourceLocator": row.source_locator,
                "avg_confidence_row": row.avg_confidence_row,
                "fields": row.fields,
                "fields_confidence": row.fields_confidence,
            }
            for row in result.rows
        ],
    }
