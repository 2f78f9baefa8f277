import base64
from dataclasses import dataclass, replace
from typing import Any

from vertex_processor.inference.exceptions import InvalidInferenceRequestError


@dataclass(frozen=True)
class InferenceRequest:
    """One document + instruction pair sent to the model.

    Either ``gs_uri`` with ``mime_type`` or ``inline_data_base64`` with
    ``inline_mime_type`` must be set; inline data wins when both are.
    """

    prompt: str
    gs_uri: str | None = None
    mime_type: str | None = None
    inline_data_base64: str | None = None
    inline_mime_type: str | None = None
    generation_config: dict[str, Any] | None = None
    system_instruction: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.inline_data_base64:
            if not self.inline_mime_type:
                raise InvalidInferenceRequestError("Inline request missing inline_mime_type")
            return
        if not (self.gs_uri and self.mime_type):
            raise InvalidInferenceRequestError(
                "Request needs either gs_uri+mime_type or inline data"
            )

    @property
    def is_inline(self) -> bool:
        return bool(self.inline_data_base64)

    def with_inline(self, data: bytes, mime_type: str) -> "InferenceRequest":
        return replace(
            self,
            inline_data_base64=base64.b64encode(data).decode("ascii"),
            inline_mime_type=mime_type,
        )

    def to_body(self, *, disable_thinking: bool = False) -> dict[str, Any]:
        """Build a generateContent request body."""
        parts: list[dict[str, Any]] = [{"text": self.prompt or ""}]
        if self.inline_data_base64:
            parts.append(
                {"inlineData": {"mimeType": self.inline_mime_type, "data": self.inline_data_base64}}
            )
        else:
            parts.append({"fileData": {"fileUri": self.gs_uri, "mimeType": self.mime_type}})

        body: dict[str, Any] = {"contents": [{"role": "user", "parts": parts}]}
        generation_config = dict(self.generation_config or {})
        if disable_thinking:
            # The provider renamed this field; both spellings are sent.
            generation_config["thinkingConfig"] = {
                **generation_config.get("thinkingConfig", {}),
                "thinkingBudget": 0,
                "includeThoughts": False,
            }
            generation_config["thinking_config"] = {
                **generation_config.get("thinking_config", {}),
                "thinking_budget": 0,
            }
        if generation_config:
            body["generationConfig"] = generation_config
        if self.system_instruction:
            body["systemInstruction"] = self.system_instruction
        return body
