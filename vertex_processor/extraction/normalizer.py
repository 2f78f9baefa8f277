"""Best-effort repair of model output into the invoice schema."""

import json
import math
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from vertex_processor.extraction.field_schema import FieldSchema
from vertex_processor.extraction.reconciler import FieldReconciler, confidence_map
from vertex_processor.logging.logger import Log

_FENCE_OPEN = re.compile(r"^\s*```[\w+-]*[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\n?[ \t]*```\s*$")
_LINE_ITEM_FIELDS = (
    "description",
    "indent_qty",
    "dispatch_qty",
    "received_qty",
    "quantity",
    "unit_price",
    "amount",
)


def strip_code_fences(text: str) -> str:
    """Remove a leading ``` marker (with optional language tag) and a trailing ```."""
    return _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", text, count=1), count=1)


def parse_json_loose(text: object) -> dict[str, Any] | None:
    """Parse the JSON object embedded in ``text``; None when that is not possible."""
    if not isinstance(text, str) or not text.strip():
        return None
    cleaned = strip_code_fences(text)
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    core = cleaned[start:end + 1] if start >= 0 and end >= start else cleaned
    try:
        parsed = json.loads(core)
    except (ValueError, RecursionError):
        return None
    return parsed if isinstance(parsed, dict) else None


def is_score(value: object) -> bool:
    """True for a finite number above zero; booleans are not scores."""
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value > 0
    )


def average_confidence(
    confidences: dict[str, Any] | None,
    keys: Iterable[str] | None = None,
) -> float:
    """Mean of the positive confidence values, 0.0 when there are none.

    A score of exactly 0 means the field was absent, so it is skipped
    rather than counted. When ``keys`` is given only those entries count.
    """
    if not isinstance(confidences, dict):
        return 0.0
    if keys is None:
        values = list(confidences.values())
    else:
        values = [confidences.get(k) for k in keys]
    scores = [float(v) for v in values if is_score(v)]
    if not scores:
        return 0.0
    return sum(scores) / len(scores)


def record_average(confidences: dict[str, Any] | None, field_names: Iterable[str]) -> float:
    """Per-record average used at write time, by recompute and by summaries.

    Only schema fields are scored. A map naming none of them is scored over
    all of its entries.
    """
    if not isinstance(confidences, dict):
        return 0.0
    present = [name for name in field_names if name in confidences]
    return average_confidence(confidences, present or None)


def extract_text(raw_response: object) -> str | None:
    """First text part of the first candidate in a generateContent response."""
    if isinstance(raw_response, list):
        raw_response = raw_response[0] if raw_response else None
    if not isinstance(raw_response, dict):
        return None
    candidates = raw_response.get("candidates") or []
    if not isinstance(candidates, list) or not candidates:
        return None
    first = candidates[0] if isinstance(candidates[0], dict) else {}
    content = first.get("content") or {}
    parts = content.get("parts") if isinstance(content, dict) else None
    for part in parts or []:
        if isinstance(part, dict) and isinstance(part.get("text"), str):
            return part["text"]
    return None


def with_field_confidence(data: dict[str, Any] | None) -> dict[str, Any] | None:
    """Copy scores from the confidence map onto ``<key>_confidence`` keys."""
    if not isinstance(data, dict):
        return None
    out = dict(data)
    conf = confidence_map(data)
    for key in data:
        if key in ("fields_confidence", "field_confidence", "line_items"):
            continue
        conf_key = f"{key}_confidence"
        if out.get(conf_key) is None and key in conf:
            out[conf_key] = conf[key]
    items = data.get("line_items")
    if isinstance(items, list):
        out["line_items"] = [_line_item_with_confidence(item) for item in items]
    return out


def _line_item_with_confidence(item: Any) -> Any:
    if not isinstance(item, dict):
        return item
    enriched = dict(item)
    base = item.get("confidence")
    if not isinstance(base, (int, float)) or isinstance(base, bool):
        return enriched
    for name in _LINE_ITEM_FIELDS:
        conf_key = f"{name}_confidence"
        if name in enriched and enriched.get(conf_key) is None:
            enriched[conf_key] = base
    return enriched


def _to_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


@dataclass(frozen=True)
class NormalizedExtraction:
    """Structured view of one inference response."""

    text: str | None
    parsed: dict[str, Any] | None
    with_confidence: dict[str, Any] | None
    fields: dict[str, Any] = field(default_factory=dict)
    fields_confidence: dict[str, Any] = field(default_factory=dict)
    avg_confidence: float = 0.0
    usage: dict[str, Any] | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None

    @property
    def extracted(self) -> dict[str, Any]:
        return {"fields": self.fields, "fields_confidence": self.fields_confidence}


class ResponseNormalizer:
    """Turns a raw inference response into a NormalizedExtraction. Never raises."""

    def __init__(self, schema: FieldSchema) -> None:
        self._schema = schema
        self._reconciler = FieldReconciler(schema)

    @property
    def reconciler(self) -> FieldReconciler:
        return self._reconciler

    def normalize(self, raw_response: object) -> NormalizedExtraction:
        text = extract_text(raw_response)
        parsed = parse_json_loose(text)
        if parsed is None:
            Log.warning("Model output could not be parsed as JSON")
        usage = self._usage(raw_response)

        fields, fields_confidence = self._fields_and_confidence(parsed)
        return NormalizedExtraction(
            text=text,
            parsed=parsed,
            with_confidence=with_field_confidence(parsed),
            fields=fields,
            fields_confidence=fields_confidence,
            avg_confidence=record_average(fields_confidence, self._schema.names),
            usage=usage,
            input_tokens=_to_int((usage or {}).get("promptTokenCount")),
            output_tokens=_to_int((usage or {}).get("candidatesTokenCount")),
        )

    def _fields_and_confidence(
        self, parsed: dict[str, Any] | None
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        if parsed is None:
            return {}, {}
        nested = parsed.get("fields")
        conf = confidence_map(parsed)
        if isinstance(nested, dict):
            fields = self._reconciler.canonicalize(nested)
        else:
            fields = dict(self._reconciler.reconcile(parsed).values)
        if conf:
            return fields, self._reconciler.canonicalize(conf)
        reconciled = self._reconciler.reconcile(parsed)
        scores = {k: v for k, v in reconciled.confidences.items() if v is not None}
        return fields, scores

    @staticmethod
    def _usage(raw_response: object) -> dict[str, Any] | None:
        if isinstance(raw_response, list):
            raw_response = raw_response[0] if raw_response else None
        if not isinstance(raw_response, dict):
            return None
        usage = raw_response.get("usageMetadata")
        return usage if isinstance(usage, dict) else None
