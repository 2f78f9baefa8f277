from vertex_processor.extraction.field_schema import FieldSchema
from vertex_processor.extraction.reconciler import FieldReconciler, confidence_map, normalize_key


class TestNormalizeKey:
    def test_collapses_separators(self) -> None:
        assert normalize_key(" Invoice  No. ") == "invoice_no"
        assert normalize_key("Seller-GSTIN") == "seller_gstin"

    def test_none_is_empty(self) -> None:
        assert normalize_key(None) == ""


class TestConfidenceMap:
    def test_prefers_fields_confidence(self) -> None:
        data = {"fields_confidence": {"a": 1}, "field_confidence": {"b": 2}}
        assert confidence_map(data) == {"a": 1}

    def test_legacy_key(self) -> None:
        assert confidence_map({"field_confidence": {"b": 2}}) == {"b": 2}

    def test_missing(self) -> None:
        assert confidence_map({"fields_confidence": "x"}) == {}
        assert confidence_map(None) == {}


class TestFieldReconciler:
    def test_resolves_every_field(self) -> None:
        result = FieldReconciler(FieldSchema()).reconcile({})
        assert set(result.values) == set(FieldSchema().names)
        assert all(v is None for v in result.values.values())

    def test_canonical_name_beats_synonym(self) -> None:
        data = {"invoice_no": "SYN", "Invoice_Number": "CANON"}
        assert FieldReconciler(FieldSchema()).value_for(data, "Invoice_Number") == "CANON"

    def test_synonym_lookup(self) -> None:
        data = {"Supplier GSTIN": "27ABCDE1234F1Z5", "discount": 10}
        result = FieldReconciler(FieldSchema()).reconcile(data)
        assert result.values["Seller_GSTIN"] == "27ABCDE1234F1Z5"
        assert result.values["Discount_Amount"] == 10

    def test_nested_fields_are_searched(self) -> None:
        data = {"fields": {"igst": 18}}
        assert FieldReconciler(FieldSchema()).reconcile(data).values["IGST_Amount"] == 18

    def test_confidence_from_suffixed_key(self) -> None:
        data = {"Invoice_Number": "1", "Invoice_NumberConfidence": 0.6}
        assert FieldReconciler(FieldSchema()).confidence_for(data, "Invoice_Number") == 0.6

    def test_confidence_from_secondary_map_synonym(self) -> None:
        data = {"fields_confidence": {"seller_gst": 0.7}}
        result = FieldReconciler(FieldSchema()).reconcile(data)
        assert result.confidences["Seller_GSTIN"] == 0.7

    def test_non_dict_input(self) -> None:
        result = FieldReconciler(FieldSchema()).reconcile(None)
        assert result.values["Invoice_Number"] is None
        assert result.confidences["Invoice_Number"] is None

    def test_publish_payload_uses_published_names(self) -> None:
        schema = FieldSchema()
        result = FieldReconciler(schema).reconcile(
            {"Seller_GSTIN": "G", "fields_confidence": {"Seller_GSTIN": 0.5}}
        )
        payload = result.publish_payload(schema)
        assert payload["Seller_GSTIN"] == "G"
        assert payload["Seller_GST_Confidence"] == 0.5
        assert len(payload) == 2 * len(schema)

    def test_null_suffixed_confidence_wins_over_map(self) -> None:
        data = {"Invoice_Number_confidence": None, "fields_confidence": {"Invoice_Number": 0.5}}
        assert FieldReconciler(FieldSchema()).confidence_for(data, "Invoice_Number") is None

    def test_null_value_key_is_kept(self) -> None:
        data = {"Invoice_Number": None, "invoice_no": "SYN"}
        assert FieldReconciler(FieldSchema()).value_for(data, "Invoice_Number") is None


class TestCanonicalize:
    def test_renames_synonyms(self) -> None:
        out = FieldReconciler(FieldSchema()).canonicalize({"invoice_no": "A1", "igst": 18})
        assert out == {"Invoice_Number": "A1", "IGST_Amount": 18}

    def test_keeps_unknown_keys(self) -> None:
        out = FieldReconciler(FieldSchema()).canonicalize({"a": 1, "Invoice Number": "X"})
        assert out == {"Invoice_Number": "X", "a": 1}

    def test_canonical_name_claims_first(self) -> None:
        out = FieldReconciler(FieldSchema()).canonicalize({"invoice_no": "SYN", "Invoice_Number": "CANON"})
        assert out["Invoice_Number"] == "CANON"
        assert out["invoice_no"] == "SYN"

    def test_already_canonical_is_unchanged(self) -> None:
        mapping = {"Invoice_Number": "A1", "Seller_GSTIN": None}
        assert FieldReconciler(FieldSchema()).canonicalize(mapping) == mapping
