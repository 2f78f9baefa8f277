import base64

import pytest

from vertex_processor.inference.exceptions import InvalidInferenceRequestError
from vertex_processor.inference.models import InferenceRequest


class TestInferenceRequestValidation:
    def test_requires_uri_and_mime(self) -> None:
        with pytest.raises(InvalidInferenceRequestError):
            InferenceRequest(prompt="p", gs_uri="gs://b/o.pdf")

    def test_inline_requires_mime(self) -> None:
        with pytest.raises(InvalidInferenceRequestError, match="inline_mime_type"):
            InferenceRequest(prompt="p", inline_data_base64="AAAA")

    def test_inline_only_is_valid(self) -> None:
        request = InferenceRequest(prompt="p", inline_data_base64="AAAA", inline_mime_type="image/png")
        assert request.is_inline


class TestToBody:
    def test_file_reference_body(self) -> None:
        request = InferenceRequest(prompt="extract", gs_uri="gs://b/o.pdf", mime_type="application/pdf")
        body = request.to_body()
        assert body == {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": "extract"},
                        {"fileData": {"fileUri": "gs://b/o.pdf", "mimeType": "application/pdf"}},
                    ],
                }
            ]
        }

    def test_with_inline_replaces_reference(self) -> None:
        request = InferenceRequest(prompt="p", gs_uri="gs://b/o.pdf", mime_type="application/pdf")
        inline = request.with_inline(b"%PDF", "application/pdf")
        part = inline.to_body()["contents"][0]["parts"][1]
        assert part == {
            "inlineData": {
                "mimeType": "application/pdf",
                "data": base64.b64encode(b"%PDF").decode("ascii"),
            }
        }
        assert not request.is_inline

    def test_disable_thinking_sends_both_spellings(self) -> None:
        request = InferenceRequest(
            prompt="p",
            gs_uri="gs://b/o.pdf",
            mime_type="application/pdf",
            generation_config={"temperature": 0},
        )
        config = request.to_body(disable_thinking=True)["generationConfig"]
        assert config["temperature"] == 0
        assert config["thinkingConfig"] == {"thinkingBudget": 0, "includeThoughts": False}
        assert config["thinking_config"] == {"thinking_budget": 0}

    def test_system_instruction(self) -> None:
        instruction = {"parts": [{"text": "be strict"}]}
        request = InferenceRequest(
            prompt="p", gs_uri="gs://b/o", mime_type="image/png", system_instruction=instruction
        )
        assert request.to_body()["systemInstruction"] == instruction
