"""Maps loosely named model output keys onto the canonical invoice fields."""

import re
from dataclasses import dataclass, field
from typing import Any

from vertex_processor.extraction.field_schema import FieldSchema

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_CONFIDENCE_MAP_KEYS = ("fields_confidence", "field_confidence")


def normalize_key(key: object) -> str:
    """Lower-case and collapse every run of non-alphanumerics to one underscore."""
    return _NON_ALNUM.sub("_", str(key or "").strip().lower()).strip("_")


def confidence_map(data: dict[str, Any] | None) -> dict[str, Any]:
    """Return the secondary per-field confidence mapping, or an empty dict."""
    if not isinstance(data, dict):
        return {}
    for key in _CONFIDENCE_MAP_KEYS:
        value = data.get(key)
        if isinstance(value, dict):
            return value
    return {}


@dataclass(frozen=True)
class ReconciledFields:
    """Canonical values and confidences, one entry per schema field."""

    values: dict[str, Any] = field(default_factory=dict)
    confidences: dict[str, Any] = field(default_factory=dict)

    def publish_payload(self, schema: FieldSchema) -> dict[str, Any]:
        """Flat payload with values under field names and scores under published names."""
        payload: dict[str, Any] = {}
        for spec in schema:
            payload[spec.name] = self.values.get(spec.name)
        for spec in schema:
            payload[spec.confidence_name] = self.confidences.get(spec.name)
        return payload


class FieldReconciler:
    """Resolves each canonical field against a model response.

    Resolution is total: every field resolves to a value or None.
    """

    def __init__(self, schema: FieldSchema) -> None:
        self._schema = schema

    def reconcile(self, data: dict[str, Any] | None) -> ReconciledFields:
        if not isinstance(data, dict):
            return ReconciledFields(
                values={name: None for name in self._schema.names},
                confidences={name: None for name in self._schema.names},
            )
        primary = self._normalized_map(data)
        secondary = {normalize_key(k): v for k, v in confidence_map(data).items()}
        values = {}
        confidences = {}
        for spec in self._schema:
            values[spec.name] = self._first_existing(primary, (spec.name, *spec.synonyms))
            confidences[spec.name] = self._confidence_for(primary, secondary, spec.name)
        return ReconciledFields(values=values, confidences=confidences)

    def value_for(self, data: dict[str, Any], field_name: str) -> Any:
        spec = self._schema.get(field_name)
        return self._first_existing(self._normalized_map(data), (spec.name, *spec.synonyms))

    def confidence_for(self, data: dict[str, Any], field_name: str) -> Any:
        secondary = {normalize_key(k): v for k, v in confidence_map(data).items()}
        return self._confidence_for(self._normalized_map(data), secondary, field_name)

    def canonicalize(self, mapping: dict[str, Any]) -> dict[str, Any]:
        """Rename keys that name a schema field, directly or by synonym, to that field.

        For each field the canonical name is tried first, then each synonym in
        order. Keys that match no field are kept as given.
        """
        by_normal: dict[str, str] = {}
        for key in mapping:
            by_normal.setdefault(normalize_key(key), key)
        out: dict[str, Any] = {}
        claimed: set[str] = set()
        for spec in self._schema:
            for alias in (spec.name, *spec.synonyms):
                source = by_normal.get(normalize_key(alias))
                if source is not None and source not in claimed:
                    claimed.add(source)
                    out[spec.name] = mapping[source]
                    break
        for key, value in mapping.items():
            if key not in claimed:
                out.setdefault(key, value)
        return out

    def _confidence_for(
        self,
        primary: dict[str, Any],
        secondary: dict[str, Any],
        field_name: str,
    ) -> Any:
        spec = self._schema.get(field_name)
        candidates = [
            f"{spec.name}_Confidence",
            f"{spec.name}_confidence",
            f"{spec.name}Confidence",
            *(f"{alias}_confidence" for alias in spec.synonyms),
        ]
        key = self._first_key(primary, candidates)
        if key is not None:
            return primary[key]
        return self._first_existing(secondary, (spec.name, *spec.synonyms))

    @staticmethod
    def _normalized_map(data: dict[str, Any]) -> dict[str, Any]:
        normalized: dict[str, Any] = {}
        for key, value in data.items():
            if key in _CONFIDENCE_MAP_KEYS:
                continue
            normalized.setdefault(normalize_key(key), value)
        nested = data.get("fields")
        if isinstance(nested, dict):
            for key, value in nested.items():
                normalized.setdefault(normalize_key(key), value)
        return normalized

    @staticmethod
    def _first_key(normalized: dict[str, Any], keys: Any) -> str | None:
        for key in keys:
            nk = normalize_key(key)
            if nk in normalized:
                return nk
        return None

    @classmethod
    def _first_existing(cls, normalized: dict[str, Any], keys: Any) -> Any:
        key = cls._first_key(normalized, keys)
        return None if key is None else normalized[key]
