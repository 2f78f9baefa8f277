from collections.abc import Mapping, Sequence

from vertex_processor.database.models import ExtractionRecord
from vertex_processor.database.repositories.record_repository import RecordRepository
from vertex_processor.extraction.normalizer import ResponseNormalizer
from vertex_processor.inference.invoker import InferenceInvoker
from vertex_processor.logging.logger import Log
from vertex_processor.processor.exceptions import MissingStoredObjectError, RecordNotFoundError
from vertex_processor.processor.pipeline import PipelineContext, PipelineStep
from vertex_processor.processor.steps import (
    DownloadStep,
    InferStep,
    NormalizeStep,
    PersistRecordStep,
    UploadStep,
)
from vertex_processor.sources.base import PDF_MIME_TYPE, BaseFileSource, SourceFile
from vertex_processor.storage.object_store import BaseObjectStore, StoredObject


class Processor:
    """Runs one document through the extraction pipeline.

    Pipeline: download -> upload -> infer -> normalize -> persist.
    A retry skips the first two steps and reuses the stored object.
    """

    def __init__(
        self,
        *,
        sources: Mapping[str, BaseFileSource],
        object_store: BaseObjectStore,
        bucket: str,
        invoker: InferenceInvoker,
        normalizer: ResponseNormalizer,
        record_repo: RecordRepository,
        prompt: str,
    ) -> None:
        self._record_repo = record_repo
        infer_steps: list[PipelineStep] = [
            InferStep(invoker, prompt),
            NormalizeStep(normalizer),
            PersistRecordStep(record_repo),
        ]
        self._full_steps: Sequence[PipelineStep] = [
            DownloadStep(sources),
            UploadStep(object_store, bucket),
            *infer_steps,
        ]
        self._retry_steps: Sequence[PipelineStep] = infer_steps

    async def process(
        self,
        source_file: SourceFile,
        *,
        tag: str,
        upload_prefix: str,
        model: str | None = None,
        location: str | None = None,
        use_batch: bool = True,
    ) -> ExtractionRecord:
        Log.info(f"Processing {source_file.origin} file {source_file.source_id}")
        context = PipelineContext(
            record_id=source_file.source_id,
            tag=tag,
            upload_prefix=upload_prefix,
            source_file=source_file,
            model=model,
            location=location,
            use_batch=use_batch,
        )
        return await self._run(self._full_steps, context)

    async def reprocess(
        self,
        record_id: str,
        *,
        model: str | None = None,
        location: str | None = None,
        use_batch: bool = True,
    ) -> ExtractionRecord:
        """Re-run inference for a stored record, overwriting it in place.

        Raises:
            RecordNotFoundError: if the record does not exist.
            MissingStoredObjectError: if the record has no stored object URI.
        """
        record = await self._record_repo.get(record_id)
        if record is None:
            raise RecordNotFoundError(f"Record {record_id} not found")
        if not record.stored_object_uri:
            raise MissingStoredObjectError(f"Record {record_id} is missing its stored object URI")
        Log.info(f"Retrying record {record_id}")
        context = PipelineContext(
            record_id=record_id,
            tag=record.tag,
            existing_record=record,
            stored_object=StoredObject(
                uri=record.stored_object_uri,
                content_type=PDF_MIME_TYPE,
                size_bytes=record.size_bytes or 0,
            ),
            model=model,
            location=location,
            use_batch=use_batch,
        )
        return await self._run(self._retry_steps, context)

    @staticmethod
    async def _run(steps: Sequence[PipelineStep], context: PipelineContext) -> ExtractionRecord:
        for step in steps:
            context = await step.run(context)
        if context.record is None:
            raise ValueError("Pipeline finished without a persisted record")
        return context.record
