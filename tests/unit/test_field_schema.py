import json
from pathlib import Path

import pytest

from vertex_processor.extraction.exceptions import SchemaConfigError
from vertex_processor.extraction.field_schema import INVOICE_FIELDS, FieldSchema, load_field_schema


class TestFieldSchema:
    def test_has_all_invoice_fields_in_order(self) -> None:
        schema = FieldSchema()
        assert len(schema) == 19
        assert schema.names[0] == "Invoice_Number"
        assert schema.names[-1] == "IRN_Details"

    def test_published_confidence_names_keep_irregular_spelling(self) -> None:
        schema = FieldSchema()
        assert schema.get("Seller_GSTIN").confidence_name == "Seller_GST_Confidence"
        assert schema.get("Additional_Cess_Amount").confidence_name == "Additional_cess_Amount_Confidence"

    def test_unknown_field_raises(self) -> None:
        with pytest.raises(SchemaConfigError, match="Unknown schema field"):
            FieldSchema().get("Nope")

    def test_extra_synonyms_extend_not_replace(self) -> None:
        schema = FieldSchema().with_extra_synonyms({"Seller_GSTIN": ["vendor_gstin", "seller_gst"]})
        synonyms = schema.get("Seller_GSTIN").synonyms
        assert synonyms[: len(INVOICE_FIELDS[2].synonyms)] == INVOICE_FIELDS[2].synonyms
        assert synonyms.count("seller_gst") == 1
        assert synonyms[-1] == "vendor_gstin"

    def test_extra_synonyms_for_unknown_field_raise(self) -> None:
        with pytest.raises(SchemaConfigError, match="unknown fields"):
            FieldSchema().with_extra_synonyms({"Bogus": ["x"]})

    def test_original_schema_unchanged(self) -> None:
        schema = FieldSchema()
        schema.with_extra_synonyms({"Buyer_PAN": ["purchaser_pan"]})
        assert "purchaser_pan" not in schema.get("Buyer_PAN").synonyms


class TestLoadFieldSchema:
    def test_without_path_returns_defaults(self) -> None:
        assert load_field_schema().names == FieldSchema().names

    def test_merges_file(self, tmp_path: Path) -> None:
        path = tmp_path / "synonyms.json"
        path.write_text(json.dumps({"Buyer_Name": ["customer_name"]}))
        schema = load_field_schema(path)
        assert "customer_name" in schema.get("Buyer_Name").synonyms

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(SchemaConfigError, match="Failed to load synonym table"):
            load_field_schema(tmp_path / "missing.json")

    def test_wrong_shape_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "synonyms.json"
        path.write_text(json.dumps({"Buyer_Name": "customer_name"}))
        with pytest.raises(SchemaConfigError, match="must map field names"):
            load_field_schema(path)
