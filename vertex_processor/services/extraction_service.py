from dataclasses import dataclass
from typing import Any

from vertex_processor.database.cache import (
    PROCESS_CACHE_COLLECTION,
    URL_CACHE_COLLECTION,
    BestEffortCache,
    process_cache_key,
    url_cache_key,
)
from vertex_processor.database.models import utc_now_iso
from vertex_processor.extraction.normalizer import ResponseNormalizer
from vertex_processor.inference.invoker import InferenceInvoker
from vertex_processor.inference.models import InferenceRequest
from vertex_processor.logging.logger import Log
from vertex_processor.processor.steps import resolve_mime_type
from vertex_processor.publishing.zoho_publisher import ZohoPublisher, extract_zoho_file_id
from vertex_processor.services.exceptions import InvalidRequestError
from vertex_processor.sources.base import PDF_MIME_TYPE
from vertex_processor.sources.http_source import HttpFileSource, validate_url
from vertex_processor.storage.object_store import BaseObjectStore, generate_destination


@dataclass(frozen=True)
class ExtractOneResult:
    stored_object_uri: str
    extracted: dict[str, Any] | None
    extracted_raw: dict[str, Any] | None
    raw_inference: Any
    cached: bool
    cached_at: str | None = None
    published: Any = None


class ExtractionService:
    """Single-document extraction with URL and result caching.

    Nothing is written to the sampling collection; only the caches are.
    """

    def __init__(
        self,
        *,
        http_source: HttpFileSource,
        object_store: BaseObjectStore,
        bucket: str,
        invoker: InferenceInvoker,
        normalizer: ResponseNormalizer,
        cache: BestEffortCache,
        model: str,
        upload_prefix: str,
        publisher: ZohoPublisher | None = None,
    ) -> None:
        self._http_source = http_source
        self._object_store = object_store
        self._bucket = bucket
        self._invoker = invoker
        self._normalizer = normalizer
        self._cache = cache
        self._model = model
        self._upload_prefix = upload_prefix
        self._publisher = publisher

    async def extract_one(
        self,
        *,
        file_url: str | None,
        prompt: str | None,
        location: str | None = None,
        use_batch: bool = True,
        reset: bool = False,
    ) -> ExtractOneResult:
        if not isinstance(prompt, str) or not prompt.strip():
            raise InvalidRequestError("Missing prompt")
        if not file_url:
            raise InvalidRequestError("Missing fileUrl")
        file_id = extract_zoho_file_id(file_url) if self._publisher else None

        inline_data: bytes | None = None
        if file_url.startswith("gs://"):
            stored_uri = file_url
            content_type = resolve_mime_type(None, file_url)
        else:
            stored_uri, content_type, inline_data = await self._stage(validate_url(file_url))

        cache_key = process_cache_key(stored_uri, self._model, prompt)
        if not reset:
            cached = await self._cache.read(PROCESS_CACHE_COLLECTION, cache_key)
            if cached and any(cached.get(k) for k in ("rawInference", "extracted", "extractedRaw")):
                Log.info("Process cache hit", stored_object_uri=stored_uri)
                extracted = cached.get("extracted")
                return ExtractOneResult(
                    stored_object_uri=stored_uri,
                    extracted=extracted,
                    extracted_raw=cached.get("extractedRaw"),
                    raw_inference=cached.get("rawInference"),
                    cached=True,
                    cached_at=cached.get("updatedAt") or cached.get("createdAt"),
                    published=await self._publish(extracted, file_id, stored_uri),
                )

        request = InferenceRequest(prompt=prompt, gs_uri=stored_uri, mime_type=content_type)
        raw = await self._invoker.invoke_with_inline_fallback(
            request, inline_data, model=self._model, location=location, use_batch=use_batch
        )
        normalized = self._normalizer.normalize(raw)
        await self._cache.write(
            PROCESS_CACHE_COLLECTION,
            cache_key,
            {
                "storedObjectUri": stored_uri,
                "model": self._model,
                "prompt": prompt,
                "rawInference": raw,
                "extracted": normalized.with_confidence,
                "extractedRaw": normalized.parsed,
                "createdAt": utc_now_iso(),
            },
        )
        return ExtractOneResult(
            stored_object_uri=stored_uri,
            extracted=normalized.with_confidence,
            extracted_raw=normalized.parsed,
            raw_inference=raw,
            cached=False,
            published=await self._publish(normalized.with_confidence, file_id, stored_uri),
        )

    async def _publish(
        self, extracted: dict[str, Any] | None, file_id: int | None, stored_uri: str
    ) -> Any:
        if self._publisher is None or file_id is None:
            return None
        return await self._publisher.publish(extracted, file_id, stored_uri)

    async def _stage(self, file_url: str) -> tuple[str, str, bytes | None]:
        """Return the stored copy of ``file_url``, uploading it on a cache miss."""
        key = url_cache_key(file_url)
        cached = await self._cache.read(URL_CACHE_COLLECTION, key)
        if cached:
            stored_uri = cached.get("storedObjectUri") or cached.get("gsUri")
            if stored_uri:
                content_type = cached.get("contentType") or resolve_mime_type(None, stored_uri)
                return stored_uri, resolve_mime_type(content_type, stored_uri), None

        downloaded = await self._http_source.download_url(file_url)
        content_type = resolve_mime_type(downloaded.content_type, file_url)
        extension = "pdf" if content_type == PDF_MIME_TYPE else "bin"
        destination = generate_destination(self._upload_prefix, None, extension)
        stored = await self._object_store.upload(
            self._bucket, destination, downloaded.data, content_type
        )
        await self._cache.write(
            URL_CACHE_COLLECTION,
            key,
            {
                "sourceUrl": file_url,
                "storedObjectUri": stored.uri,
                "contentType": content_type,
                "size": downloaded.size_bytes,
                "createdAt": utc_now_iso(),
            },
        )
        return stored.uri, content_type, downloaded.data
