import re
from typing import Any

import httpx

from vertex_processor.auth.token_provider import CLOUD_PLATFORM_SCOPE, TokenProvider
from vertex_processor.inference.client_base import BaseInferenceClient
from vertex_processor.inference.exceptions import (
    BatchUnavailableError,
    InferenceError,
    InferenceNetworkError,
    ModelNotFoundError,
)

_NOT_FOUND = re.compile(r"not\s*found", re.IGNORECASE)
_UNIMPLEMENTED = re.compile(r"unimplemented", re.IGNORECASE)


class VertexClientAdapter(BaseInferenceClient):
    """Vertex AI publisher-model client over REST."""

    def __init__(
        self,
        *,
        project_id: str,
        token_provider: TokenProvider,
        timeout_seconds: int,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._project_id = project_id
        self._token_provider = token_provider
        self._http = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    async def generate_content(
        self,
        *,
        model: str,
        location: str,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        url = f"{await self._model_url(model, location)}:generateContent"
        status, data = await self._post(url, body)
        if 200 <= status < 300:
            return data
        message = _error_message(data, status)
        if status == 404 or _NOT_FOUND.search(message):
            raise ModelNotFoundError(model, message)
        raise InferenceError(message)

    async def batch_generate_content(
        self,
        *,
        model: str,
        location: str,
        bodies: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        url = f"{await self._model_url(model, location)}:batchGenerateContent"
        status, data = await self._post(url, {"requests": bodies})
        if 200 <= status < 300:
            responses = data.get("responses")
            return responses if isinstance(responses, list) else []
        message = _error_message(data, status)
        if status in (400, 404) or _NOT_FOUND.search(message) or _UNIMPLEMENTED.search(message):
            raise BatchUnavailableError(model, message)
        raise InferenceError(message)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _model_url(self, model: str, location: str) -> str:
        project_id = self._project_id or await self._token_provider.get_project_id()
        if not project_id:
            raise InferenceError("GCP project id is not configured")
        return (
            f"https://{location}-aiplatform.googleapis.com/v1/projects/{project_id}"
            f"/locations/{location}/publishers/google/models/{model}"
        )

    async def _post(self, url: str, payload: dict[str, Any]) -> tuple[int, dict[str, Any]]:
        token = await self._token_provider.get_token([CLOUD_PLATFORM_SCOPE])
        try:
            response = await self._http.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {token}"},
            )
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            raise InferenceNetworkError(f"Vertex network error: {exc}") from exc
        try:
            data = response.json()
        except ValueError:
            data = {}
        return response.status_code, data if isinstance(data, dict) else {}


def _error_message(data: dict[str, Any], status: int) -> str:
    error = data.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return f"Vertex request failed with status {status}"
