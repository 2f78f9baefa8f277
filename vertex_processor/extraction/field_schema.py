"""Fixed GST invoice field schema and its synonym table."""

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from vertex_processor.extraction.exceptions import SchemaConfigError

TEXT = "text"
NUMERIC = "numeric"


@dataclass(frozen=True)
class FieldSpec:
    """One canonical invoice field."""

    name: str
    kind: str
    confidence_name: str
    synonyms: tuple[str, ...] = field(default_factory=tuple)

    @property
    def empty_value(self) -> str | int:
        return 0 if self.kind == NUMERIC else ""


INVOICE_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec(
        "Invoice_Number", TEXT, "Invoice_Number_Confidence",
        ("invoice_number", "invoice_no", "invoiceid", "invoice_id", "inv_no"),
    ),
    FieldSpec(
        "Invoice_Date", TEXT, "Invoice_Date_Confidence",
        ("invoice_date", "date_of_invoice", "inv_date", "invoice_dt", "date"),
    ),
    FieldSpec(
        "Seller_GSTIN", TEXT, "Seller_GST_Confidence",
        ("seller_gstin", "supplier_gstin", "seller_gst", "supplier_gst"),
    ),
    FieldSpec("Seller_PAN", TEXT, "Seller_PAN_Confidence", ("seller_pan", "supplier_pan")),
    FieldSpec("Seller_Name", TEXT, "Seller_Name_Confidence", ("seller_name", "supplier_name")),
    FieldSpec(
        "Buyer_GSTIN", TEXT, "Buyer_GSTIN_Confidence",
        ("buyer_gstin", "recipient_gstin", "bill_to_gstin"),
    ),
    FieldSpec(
        "Buyer_Name", TEXT, "Buyer_Name_Confidence",
        ("buyer_name", "recipient_name", "bill_to_name"),
    ),
    FieldSpec("Buyer_PAN", TEXT, "Buyer_PAN_Confidence", ("buyer_pan", "recipient_pan")),
    FieldSpec(
        "Ship_to_GSTIN", TEXT, "Ship_to_GSTIN_Confidence",
        ("ship_to_gstin", "shipping_gstin", "consignee_gstin"),
    ),
    FieldSpec(
        "Ship_to_Name", TEXT, "Ship_to_Name_Confidence",
        ("ship_to_name", "shipping_name", "consignee_name"),
    ),
    FieldSpec(
        "Sub_Total_Amount", NUMERIC, "Sub_Total_Amount_Confidence",
        ("sub_total_amount", "subtotal_amount", "sub_total", "taxable_value", "taxable_amount"),
    ),
    FieldSpec("Discount_Amount", NUMERIC, "Discount_Amount_Confidence", ("discount_amount", "discount")),
    FieldSpec("CGST_Amount", NUMERIC, "CGST_Amount_Confidence", ("cgst_amount", "cgst")),
    FieldSpec("SGST_Amount", NUMERIC, "SGST_Amount_Confidence", ("sgst_amount", "sgst")),
    FieldSpec("IGST_Amount", NUMERIC, "IGST_Amount_Confidence", ("igst_amount", "igst")),
    FieldSpec("CESS_Amount", NUMERIC, "CESS_Amount_Confidence", ("cess_amount", "cess")),
    FieldSpec(
        "Additional_Cess_Amount", NUMERIC, "Additional_cess_Amount_Confidence",
        ("additional_cess_amount", "additionalcessamount", "cess_additional_amount"),
    ),
    FieldSpec("Total_Tax_Amount", NUMERIC, "Total_Tax_Amount_Confidence", ("total_tax_amount", "total_tax")),
    FieldSpec(
        "IRN_Details", TEXT, "IRN_Details_Confidence",
        ("irn_details", "irn", "ack_no", "irn_number"),
    ),
)


class FieldSchema:
    """Ordered, read-only view over the invoice fields.

    The synonym lists can be extended (never replaced) from a JSON file of
    the form ``{"Seller_GSTIN": ["vendor_gstin"], ...}``.
    """

    def __init__(self, fields: tuple[FieldSpec, ...] = INVOICE_FIELDS) -> None:
        self._fields = fields
        self._by_name = {spec.name: spec for spec in fields}

    def __iter__(self):
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    @property
    def names(self) -> list[str]:
        return [spec.name for spec in self._fields]

    def get(self, name: str) -> FieldSpec:
        try:
            return self._by_name[name]
        except KeyError as exc:
            raise SchemaConfigError(f"Unknown schema field: {name}") from exc

    def with_extra_synonyms(self, extra: dict[str, list[str]]) -> "FieldSchema":
        """Return a new schema whose synonym lists are extended by ``extra``."""
        unknown = set(extra) - set(self._by_name)
        if unknown:
            raise SchemaConfigError(f"Synonyms given for unknown fields: {sorted(unknown)}")
        updated = []
        for spec in self._fields:
            aliases = extra.get(spec.name, [])
            merged = spec.synonyms + tuple(a for a in aliases if a not in spec.synonyms)
            updated.append(replace(spec, synonyms=merged))
        return FieldSchema(tuple(updated))

    def skeleton(self) -> dict[str, dict[str, Any]]:
        """Empty ``fields`` / ``fields_confidence`` document used in the prompt."""
        return {
            "fields": {spec.name: spec.empty_value for spec in self._fields},
            "fields_confidence": {spec.name: 0 for spec in self._fields},
        }


def load_field_schema(synonyms_path: Path | None = None) -> FieldSchema:
    """Build the invoice schema, merging an optional synonym file.

    Raises:
        SchemaConfigError: if the file cannot be read or has the wrong shape.
    """
    schema = FieldSchema()
    if synonyms_path is None:
        return schema
    try:
        raw = json.loads(synonyms_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise SchemaConfigError(f"Failed to load synonym table: {exc}") from exc
    if not isinstance(raw, dict) or not all(
        isinstance(v, list) and all(isinstance(a, str) for a in v) for v in raw.values()
    ):
        raise SchemaConfigError("Synonym table must map field names to lists of strings")
    return schema.with_extra_synonyms(raw)
