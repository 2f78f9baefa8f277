from collections.abc import Mapping

from vertex_processor.database.models import ExtractionRecord
from vertex_processor.database.repositories.record_repository import RecordRepository
from vertex_processor.extraction.normalizer import ResponseNormalizer
from vertex_processor.inference.invoker import InferenceInvoker
from vertex_processor.inference.models import InferenceRequest
from vertex_processor.logging.logger import Log
from vertex_processor.processor.exceptions import UnsupportedOriginError
from vertex_processor.processor.pipeline import PipelineContext, PipelineStep
from vertex_processor.sources.base import PDF_MIME_TYPE, BaseFileSource, guess_mime_type
from vertex_processor.storage.object_store import BaseObjectStore, generate_destination


def resolve_mime_type(content_type: str | None, name: str | None) -> str:
    """Documents are sent as PDF whenever the header or the name says so."""
    if content_type and "pdf" in content_type.lower():
        return PDF_MIME_TYPE
    return guess_mime_type(name or "")


class DownloadStep(PipelineStep):
    def __init__(self, sources: Mapping[str, BaseFileSource]) -> None:
        self._sources = sources

    async def run(self, context: PipelineContext) -> PipelineContext:
        if context.source_file is None:
            raise ValueError("PipelineContext.source_file must be set before download")
        source = self._sources.get(context.source_file.origin)
        if source is None:
            raise UnsupportedOriginError(f"No file source for origin {context.source_file.origin}")
        context.download = await source.download(context.source_file)
        Log.info(f"Downloaded {context.download.size_bytes} bytes for record {context.record_id}")
        return context


class UploadStep(PipelineStep):
    def __init__(self, object_store: BaseObjectStore, bucket: str) -> None:
        self._object_store = object_store
        self._bucket = bucket

    async def run(self, context: PipelineContext) -> PipelineContext:
        if context.download is None:
            raise ValueError("PipelineContext.download must be set before upload")
        name = context.source_file.display_name if context.source_file else None
        content_type = resolve_mime_type(context.download.content_type, name)
        extension = "pdf" if content_type == PDF_MIME_TYPE else "bin"
        destination = generate_destination(context.upload_prefix, context.record_id, extension)
        context.stored_object = await self._object_store.upload(
            self._bucket, destination, context.download.data, content_type
        )
        Log.info(f"Uploaded record {context.record_id} to {context.stored_object.uri}")
        return context


class InferStep(PipelineStep):
    def __init__(self, invoker: InferenceInvoker, prompt: str) -> None:
        self._invoker = invoker
        self._prompt = prompt

    async def run(self, context: PipelineContext) -> PipelineContext:
        if context.stored_object is None:
            raise ValueError("PipelineContext.stored_object must be set before inference")
        request = InferenceRequest(
            prompt=self._prompt,
            gs_uri=context.stored_object.uri,
            mime_type=context.stored_object.content_type,
        )
        inline_data = context.download.data if context.download else None
        context.raw_response = await self._invoker.invoke_with_inline_fallback(
            request,
            inline_data,
            model=context.model,
            location=context.location,
            use_batch=context.use_batch,
        )
        return context


class NormalizeStep(PipelineStep):
    def __init__(self, normalizer: ResponseNormalizer) -> None:
        self._normalizer = normalizer

    async def run(self, context: PipelineContext) -> PipelineContext:
        context.extraction = self._normalizer.normalize(context.raw_response)
        Log.info(
            f"Normalized record {context.record_id}: "
            f"avg confidence {context.extraction.avg_confidence:.4f}"
        )
        return context


class PersistRecordStep(PipelineStep):
    def __init__(self, record_repo: RecordRepository) -> None:
        self._record_repo = record_repo

    async def run(self, context: PipelineContext) -> PipelineContext:
        if context.extraction is None or context.stored_object is None:
            raise ValueError("PipelineContext.extraction must be set before persist")
        extraction = context.extraction
        record = context.existing_record or self._new_record(context)
        record.stored_object_uri = context.stored_object.uri
        record.extracted_fields = extraction.fields
        record.field_confidence = extraction.fields_confidence
        record.avg_confidence_score = extraction.avg_confidence
        record.usage = extraction.usage
        record.input_tokens = extraction.input_tokens
        record.output_tokens = extraction.output_tokens
        context.record = await self._record_repo.upsert(record)
        return context

    @staticmethod
    def _new_record(context: PipelineContext) -> ExtractionRecord:
        source_file = context.source_file
        if source_file is None:
            raise ValueError("PipelineContext.source_file must be set for a new record")
        size_bytes = source_file.size_bytes
        if size_bytes is None and context.download is not None:
            size_bytes = context.download.size_bytes
        return ExtractionRecord(
            record_id=context.record_id,
            tag=context.tag,
            origin=source_file.origin,
            display_name=source_file.display_name,
            folder_id=source_file.folder_id,
            source_locator=source_file.original_locator,
            view_url=source_file.view_url,
            size_bytes=size_bytes,
        )
