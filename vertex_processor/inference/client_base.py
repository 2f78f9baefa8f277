from abc import ABC, abstractmethod
from typing import Any


class BaseInferenceClient(ABC):
    """Contract for provider-specific document-understanding clients.

    Responses are returned in generateContent shape
    (``candidates[].content.parts[].text`` plus ``usageMetadata``).
    """

    @abstractmethod
    async def generate_content(
        self,
        *,
        model: str,
        location: str,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        """Run one request.

        Raises:
            ModelNotFoundError: when the provider does not know ``model``.
            InferenceError: on any other failure.
        """

    @abstractmethod
    async def batch_generate_content(
        self,
        *,
        model: str,
        location: str,
        bodies: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        """Run several requests in one call.

        Raises:
            BatchUnavailableError: when batching is not offered for ``model``.
            InferenceError: on any other failure.
        """

    async def aclose(self) -> None:
        return None
