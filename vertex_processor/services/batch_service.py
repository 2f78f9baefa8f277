from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from vertex_processor.logging.logger import Log
from vertex_processor.processor.processor import Processor
from vertex_processor.services.exceptions import InvalidRequestError, NoSourceFilesError
from vertex_processor.sources.base import DRIVE, ZOHO, BaseFileSource, SourceFile
from vertex_processor.worker.job_runner import JobRunner


@dataclass(frozen=True)
class OriginDefaults:
    """Per-origin container, count bounds and upload prefix."""

    container_ref: str
    default_count: int
    max_count: int
    upload_prefix: str

    def clamp(self, count: int | None) -> int:
        requested = self.default_count if count is None else count
        return max(1, min(self.max_count, requested))


@dataclass(frozen=True)
class BatchResult:
    processed: int
    failed: int
    avg_confidence_overall: float
    results: list[dict[str, Any]] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)


def detect_origin(container_ref: str | None, origin: str | None) -> str:
    """Explicit origin wins; otherwise Zoho report links are recognised by shape."""
    if origin:
        origin = origin.strip().lower()
        if origin not in (DRIVE, ZOHO):
            raise InvalidRequestError(f"Unsupported origin: {origin}")
        return origin
    ref = (container_ref or "").lower()
    if "zoho" in ref or "privatelink" in ref:
        return ZOHO
    return DRIVE


class BatchService:
    """Lists a source container and processes every file with bounded concurrency."""

    def __init__(
        self,
        *,
        sources: Mapping[str, BaseFileSource],
        processor: Processor,
        runner: JobRunner[SourceFile],
        defaults: Mapping[str, OriginDefaults],
        tag: str,
        retry_model: str | None = None,
    ) -> None:
        self._sources = sources
        self._retry_model = retry_model
        self._processor = processor
        self._runner = runner
        self._defaults = defaults
        self._tag = tag

    async def run_batch(
        self,
        *,
        container_ref: str | None = None,
        origin: str | None = None,
        count: int | None = None,
    ) -> BatchResult:
        origin = detect_origin(container_ref, origin)
        defaults = self._defaults[origin]
        source = self._sources[origin]
        container_ref = (container_ref or "").strip() or defaults.container_ref
        if not container_ref:
            raise InvalidRequestError(f"Missing {origin} folder or report reference")

        files = await source.list_files(container_ref, defaults.clamp(count))
        if not files:
            raise NoSourceFilesError(f"No processable files found in the {origin} source")
        Log.info(f"Listed {len(files)} {origin} files for batch run")

        async def work(source_file: SourceFile) -> dict[str, Any]:
            record = await self._processor.process(
                source_file, tag=self._tag, upload_prefix=defaults.upload_prefix
            )
            return {
                "recordId": record.record_id,
                "avg_confidence_score": record.avg_confidence_score,
                "viewUrl": record.view_url,
            }

        outcomes = await self._runner.run(files, work, lambda f: f.source_id)
        results = [o.payload for o in outcomes if o.ok]
        errors = [o.error_entry() for o in outcomes if not o.ok]
        overall = (
            sum(r["avg_confidence_score"] or 0.0 for r in results) / len(results)
            if results
            else 0.0
        )
        Log.info(
            f"Batch finished: {len(results)} processed, {len(errors)} failed, "
            f"peak concurrency {self._runner.peak_in_flight}"
        )
        return BatchResult(
            processed=len(results),
            failed=len(errors),
            avg_confidence_overall=overall,
            results=results,
            errors=errors,
        )

    async def retry_one(
        self,
        record_id: str | None,
        *,
        model: str | None = None,
        location: str | None = None,
        use_batch: bool = True,
    ) -> dict[str, Any]:
        record_id = (record_id or "").strip()
        if not record_id:
            raise InvalidRequestError("Missing recordId")
        record = await self._processor.reprocess(
            record_id, model=model or self._retry_model, location=location, use_batch=use_batch
        )
        return {
            "recordId": record.record_id,
            "avg": record.avg_confidence_score,
            "usage": record.usage,
        }
