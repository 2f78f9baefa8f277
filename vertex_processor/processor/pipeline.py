from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from vertex_processor.database.models import ExtractionRecord
from vertex_processor.extraction.normalizer import NormalizedExtraction
from vertex_processor.sources.base import DownloadedFile, SourceFile
from vertex_processor.storage.object_store import StoredObject


@dataclass(slots=True)
class PipelineContext:
    record_id: str
    tag: str
    upload_prefix: str = "sampling"
    source_file: SourceFile | None = None
    existing_record: ExtractionRecord | None = None
    model: str | None = None
    location: str | None = None
    use_batch: bool = True
    download: DownloadedFile | None = None
    stored_object: StoredObject | None = None
    raw_response: dict[str, Any] | None = None
    extraction: NormalizedExtraction | None = None
    record: ExtractionRecord | None = None


class PipelineStep(ABC):
    @abstractmethod
    async def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
