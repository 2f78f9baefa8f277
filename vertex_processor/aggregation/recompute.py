from dataclasses import dataclass, field
from typing import Any

from vertex_processor.database.repositories.record_repository import RecordRepository
from vertex_processor.extraction.field_schema import FieldSchema
from vertex_processor.extraction.normalizer import record_average
from vertex_processor.logging.logger import Log

TOLERANCE = 1e-6


@dataclass(frozen=True)
class AverageChange:
    record_id: str
    prev: float
    next: float

    def to_dict(self) -> dict[str, Any]:
        return {"recordId": self.record_id, "prev": self.prev, "next": self.next}


@dataclass(frozen=True)
class RecomputeResult:
    scanned: int
    updated: int
    changes: list[AverageChange] = field(default_factory=list)


async def recompute_averages(
    record_repo: RecordRepository,
    tag: str | None = None,
    tolerance: float = TOLERANCE,
    schema: FieldSchema | None = None,
) -> RecomputeResult:
    """Rewrite stored averages that drifted from their confidence maps.

    Uses the write-time rule, so running it twice in a row updates nothing
    the second time.
    """
    names = (schema or FieldSchema()).names
    records = await (record_repo.list_by_tag(tag) if tag else record_repo.list())
    changes: list[AverageChange] = []
    for record in records:
        avg = record_average(record.field_confidence, names)
        prev = record.avg_confidence_score or 0.0
        if abs(prev - avg) <= tolerance:
            continue
        await record_repo.update_average(record, avg)
        changes.append(AverageChange(record_id=record.record_id, prev=prev, next=avg))
    Log.info(f"Recomputed averages: scanned {len(records)}, updated {len(changes)}")
    return RecomputeResult(scanned=len(records), updated=len(changes), changes=changes)
