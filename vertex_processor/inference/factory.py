from typing import ClassVar

from vertex_processor.auth.token_provider import TokenProvider
from vertex_processor.config.settings import Settings
from vertex_processor.inference.client_base import BaseInferenceClient
from vertex_processor.inference.example_client_adapter import ExampleClientAdapter
from vertex_processor.inference.invoker import InferenceInvoker
from vertex_processor.inference.openai_client_adapter import OpenAICompatibleClientAdapter
from vertex_processor.inference.vertex_client_adapter import VertexClientAdapter


class InferenceClientFactory:
    """Creates the configured inference client and invoker."""

    SUPPORTED_PROVIDERS: ClassVar[tuple[str, ...]] = ("example", "openai_compatible", "vertex")

    @classmethod
    def create(cls, settings: Settings, token_provider: TokenProvider) -> BaseInferenceClient:
        """Create a configured inference client from application settings."""
        provider = settings.inference_provider.lower()
        if provider == "example":
            return ExampleClientAdapter()
        if provider == "vertex":
            return VertexClientAdapter(
                project_id=settings.gcp_project_id,
                token_provider=token_provider,
                timeout_seconds=settings.vertex_timeout_seconds,
            )
        if provider == "openai_compatible":
            return OpenAICompatibleClientAdapter(
                api_key=settings.openai_compatible_api_key,
                timeout_seconds=settings.openai_compatible_timeout_seconds,
                base_url=cls._resolve_base_url(settings),
            )
        raise ValueError(
            f"Unknown inference provider '{provider}'. Choose from: {list(cls.SUPPORTED_PROVIDERS)}"
        )

    @classmethod
    def create_invoker(cls, settings: Settings, client: BaseInferenceClient) -> InferenceInvoker:
        return InferenceInvoker(
            client=client,
            default_model=settings.vertex_model,
            default_location=settings.vertex_location,
            fallback_models=settings.vertex_fallback_models,
            thinking_patterns=settings.vertex_thinking_model_patterns,
            prefer_inline=settings.vertex_input.lower() == "inline",
        )

    @classmethod
    def _resolve_base_url(cls, settings: Settings) -> str:
        url = (settings.openai_compatible_base_url or "").strip()
        if not url:
            raise ValueError(
                "openai_compatible_base_url is required for inference_provider=openai_compatible"
            )
        return url
