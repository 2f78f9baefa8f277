from typing import Any

import httpx
import openai

from vertex_processor.inference.client_base import BaseInferenceClient
from vertex_processor.inference.exceptions import (
    BatchUnavailableError,
    InferenceError,
    InferenceNetworkError,
    ModelNotFoundError,
)


class OpenAICompatibleClientAdapter(BaseInferenceClient):
    """Inference adapter built on an OpenAI-compatible chat API.

    Gemini-shaped request bodies are translated to chat messages and the
    answer is wrapped back into generateContent shape, so the invoker and
    the normalizer do not need to know which provider ran.
    """

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )

    async def generate_content(
        self,
        *,
        model: str,
        location: str,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        _ = location
        kwargs: dict[str, Any] = {"model": model, "messages": self._messages(body)}
        generation_config = body.get("generationConfig") or {}
        if "temperature" in generation_config:
            kwargs["temperature"] = generation_config["temperature"]
        if "thinkingConfig" in generation_config:
            kwargs["extra_body"] = {
                "extra_body": {
                    "google": {
                        "thinking_config": {"thinking_budget": 0, "include_thoughts": False}
                    }
                }
            }
        try:
            response = await self._client.chat.completions.create(**kwargs)
        except openai.NotFoundError as exc:
            raise ModelNotFoundError(model, str(exc)) from exc
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise InferenceNetworkError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise InferenceError(f"AI provider API error: {exc}") from exc

        if not response.choices:
            raise InferenceError("AI returned no choices")
        content = response.choices[0].message.content
        if content is None:
            raise InferenceError("AI returned empty response")
        result: dict[str, Any] = {
            "candidates": [{"content": {"role": "model", "parts": [{"text": content}]}}],
            "modelVersion": response.model,
        }
        if response.usage is not None:
            result["usageMetadata"] = {
                "promptTokenCount": response.usage.prompt_tokens,
                "candidatesTokenCount": response.usage.completion_tokens,
                "totalTokenCount": response.usage.total_tokens,
            }
        return result

    async def batch_generate_content(
        self,
        *,
        model: str,
        location: str,
        bodies: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        _ = location, bodies
        raise BatchUnavailableError(model, "batch generation is not offered by chat endpoints")

    async def aclose(self) -> None:
        await self._client.close()

    @staticmethod
    def _messages(body: dict[str, Any]) -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = []
        system = body.get("systemInstruction") or {}
        system_text = " ".join(
            part["text"] for part in system.get("parts", []) if isinstance(part.get("text"), str)
        )
        if system_text:
            messages.append({"role": "system", "content": system_text})
        for content in body.get("contents", []):
            parts: list[dict[str, Any]] = []
            for part in content.get("parts", []):
                if "text" in part:
                    parts.append({"type": "text", "text": part["text"]})
                elif "inlineData" in part:
                    inline = part["inlineData"]
                    parts.append(
                        {
                            "type": "file",
                            "file": {
                                "filename": "document.pdf",
                                "file_data": f"data:{inline['mimeType']};base64,{inline['data']}",
                            },
                        }
                    )
                elif "fileData" in part:
                    parts.append(
                        {"type": "image_url", "image_url": {"url": part["fileData"]["fileUri"]}}
                    )
            messages.append({"role": "user", "content": parts})
        return messages
