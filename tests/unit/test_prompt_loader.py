"""Tests for prompt template loading and rendering."""

import json
from pathlib import Path

import pytest

from vertex_processor.extraction.exceptions import PromptLoadError
from vertex_processor.extraction.field_schema import FieldSchema
from vertex_processor.extraction.prompt_loader import build_invoice_prompt, load_prompt_template


class TestLoadPromptTemplate:
    def test_loads_default_template(self) -> None:
        template = load_prompt_template()
        assert "{json_schema}" in template

    def test_loads_custom_template(self, tmp_path: Path) -> None:
        custom = tmp_path / "custom.txt"
        custom.write_text("Extract {json_schema}")
        assert load_prompt_template(custom) == "Extract {json_schema}"

    def test_missing_file_raises_error(self) -> None:
        with pytest.raises(PromptLoadError, match="Failed to load prompt"):
            load_prompt_template(Path("/nonexistent/file.txt"))


class TestBuildInvoicePrompt:
    def test_embeds_schema_skeleton(self) -> None:
        prompt = build_invoice_prompt(FieldSchema())
        start = prompt.index("{")
        end = prompt.index("Instructions:")
        skeleton = json.loads(prompt[start:end])
        assert list(skeleton) == ["fields", "fields_confidence"]
        assert skeleton["fields"]["Invoice_Number"] == ""
        assert skeleton["fields"]["CGST_Amount"] == 0
        assert skeleton["fields_confidence"]["IRN_Details"] == 0

    def test_custom_template(self) -> None:
        prompt = build_invoice_prompt(FieldSchema(), template="  X {json_schema}  ")
        assert prompt.startswith("X {")
