from vertex_processor.extraction.field_schema import FieldSchema, FieldSpec, load_field_schema
from vertex_processor.extraction.normalizer import (
    NormalizedExtraction,
    ResponseNormalizer,
    average_confidence,
    parse_json_loose,
)
from vertex_processor.extraction.reconciler import FieldReconciler, ReconciledFields

__all__ = [
    "FieldReconciler",
    "FieldSchema",
    "FieldSpec",
    "NormalizedExtraction",
    "ReconciledFields",
    "ResponseNormalizer",
    "average_confidence",
    "load_field_schema",
    "parse_json_loose",
]
