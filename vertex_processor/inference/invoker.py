import re
from collections.abc import Sequence
from typing import Any

from vertex_processor.inference.client_base import BaseInferenceClient
from vertex_processor.inference.exceptions import (
    AllModelsFailedError,
    BatchUnavailableError,
    InferenceError,
    ModelNotFoundError,
)
from vertex_processor.inference.models import InferenceRequest
from vertex_processor.logging.logger import Log

INLINE_RETRY_PATTERN = re.compile(
    r"Service agents are being provisioned|Permission|not\s*found",
    re.IGNORECASE,
)


class InferenceInvoker:
    """Runs inference requests across an ordered list of candidate models.

    A model reported as not found moves on to the next candidate; any other
    failure propagates unchanged.
    """

    def __init__(
        self,
        *,
        client: BaseInferenceClient,
        default_model: str,
        default_location: str,
        fallback_models: Sequence[str] = (),
        thinking_patterns: Sequence[str] = (),
        prefer_inline: bool = False,
    ) -> None:
        self._client = client
        self._default_model = default_model
        self._default_location = default_location
        self._fallback_models = list(fallback_models)
        self._thinking_patterns = [re.compile(p) for p in thinking_patterns]
        self._prefer_inline = prefer_inline

    def candidates(self, preferred: str | None = None) -> list[str]:
        ordered = [preferred or self._default_model, *self._fallback_models]
        return list(dict.fromkeys(m for m in ordered if m))

    def disables_thinking(self, model: str) -> bool:
        return any(p.search(model) for p in self._thinking_patterns)

    async def invoke(
        self,
        requests: Sequence[InferenceRequest],
        *,
        model: str | None = None,
        location: str | None = None,
        use_batch: bool = True,
    ) -> list[dict[str, Any]]:
        """Return one raw response per request, in request order.

        Raises:
            AllModelsFailedError: when every candidate model was not found.
            InferenceError: on any other provider failure.
        """
        location = location or self._default_location
        last_error: InferenceError | None = None
        for candidate in self.candidates(model):
            bodies = [
                r.to_body(disable_thinking=self.disables_thinking(candidate)) for r in requests
            ]
            if use_batch:
                try:
                    return await self._client.batch_generate_content(
                        model=candidate, location=location, bodies=bodies
                    )
                except BatchUnavailableError as exc:
                    Log.info(
                        "Batch endpoint unavailable, falling back to single calls",
                        model=candidate,
                    )
                    last_error = exc
            try:
                responses = []
                for body in bodies:
                    responses.append(
                        await self._client.generate_content(
                            model=candidate, location=location, body=body
                        )
                    )
                return responses
            except ModelNotFoundError as exc:
                Log.warning("Model unavailable, trying next candidate", model=candidate)
                last_error = exc
        detail = f": {last_error}" if last_error is not None else ""
        raise AllModelsFailedError(f"All model attempts failed{detail}")

    async def invoke_one(
        self,
        request: InferenceRequest,
        *,
        model: str | None = None,
        location: str | None = None,
        use_batch: bool = True,
    ) -> dict[str, Any]:
        responses = await self.invoke([request], model=model, location=location, use_batch=use_batch)
        if not responses:
            raise InferenceError("Provider returned no responses")
        return responses[0]

    async def invoke_with_inline_fallback(
        self,
        request: InferenceRequest,
        inline_data: bytes | None,
        *,
        model: str | None = None,
        location: str | None = None,
        use_batch: bool = True,
    ) -> dict[str, Any]:
        """Invoke by storage reference, retrying once inline on access errors.

        When inline input is preferred and the bytes are at hand, the
        storage reference is skipped altogether.
        """
        inline_mime = request.mime_type or "application/pdf"
        if inline_data is not None and self._prefer_inline and not request.is_inline:
            request = request.with_inline(inline_data, inline_mime)
        try:
            return await self.invoke_one(request, model=model, location=location, use_batch=use_batch)
        except InferenceError as exc:
            if request.is_inline or inline_data is None or not INLINE_RETRY_PATTERN.search(str(exc)):
                raise
            Log.info("Storage reference rejected, retrying with inline data", error=str(exc))
        return await self.invoke_one(
            request.with_inline(inline_data, inline_mime),
            model=model,
            location=location,
            use_batch=use_batch,
        )
