"""Cost projection from token, byte and operation counts."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from vertex_processor.database.models import ExtractionRecord

BYTES_PER_GB = 1024 * 1024 * 1024
BYTES_PER_MB = 1024 * 1024


@dataclass(frozen=True)
class PriceTable:
    """Unit prices in USD; None means the category is unpriced."""

    vertex_input_per_1k: float | None = None
    vertex_output_per_1k: float | None = None
    gcs_per_gb_month: float | None = 0.026
    fs_write_per_100k: float | None = 0.18
    fs_read_per_100k: float | None = 0.06

    def to_dict(self) -> dict[str, float | None]:
        return {
            "vertex_in_per_1k_usd": self.vertex_input_per_1k,
            "vertex_out_per_1k_usd": self.vertex_output_per_1k,
            "gcs_per_gb_month_usd": self.gcs_per_gb_month,
            "fs_write_per_100k_usd": self.fs_write_per_100k,
            "fs_read_per_100k_usd": self.fs_read_per_100k,
        }


@dataclass(frozen=True)
class UsageTotals:
    records: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    total_bytes: int = 0
    write_ops: int = 0
    read_ops: int = 0

    @classmethod
    def from_records(cls, records: Iterable[ExtractionRecord]) -> "UsageTotals":
        """One write and one read are assumed per record."""
        count = input_tokens = output_tokens = total_bytes = 0
        for record in records:
            count += 1
            input_tokens += record.input_tokens or 0
            output_tokens += record.output_tokens or 0
            total_bytes += record.size_bytes or 0
        return cls(
            records=count,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_bytes=total_bytes,
            write_ops=count,
            read_ops=count,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "records": self.records,
            "totalInputTokens": self.input_tokens,
            "totalOutputTokens": self.output_tokens,
            "totalMB": self.total_bytes / BYTES_PER_MB,
            "writeOps": self.write_ops,
            "readOps": self.read_ops,
        }


@dataclass(frozen=True)
class CostBreakdown:
    vertex_input_usd: float | None
    vertex_output_usd: float | None
    gcs_monthly_storage_usd: float | None
    firestore_write_usd: float | None
    firestore_read_usd: float | None
    total_usd: float
    unpriced: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "vertex_input_usd": self.vertex_input_usd,
            "vertex_output_usd": self.vertex_output_usd,
            "gcs_monthly_storage_usd": self.gcs_monthly_storage_usd,
            "firestore_write_usd": self.firestore_write_usd,
            "firestore_read_usd": self.firestore_read_usd,
            "total_usd": self.total_usd,
            "unpriced": self.unpriced,
        }


def _line(quantity: float, unit: float, price: float | None) -> float | None:
    if price is None:
        return None
    return quantity / unit * price


class CostEstimator:
    """Itemized cost; an unpriced category yields None, never a fabricated zero."""

    def estimate(self, totals: UsageTotals, prices: PriceTable) -> CostBreakdown:
        lines = {
            "vertex_input_usd": _line(totals.input_tokens, 1000, prices.vertex_input_per_1k),
            "vertex_output_usd": _line(totals.output_tokens, 1000, prices.vertex_output_per_1k),
            "gcs_monthly_storage_usd": _line(totals.total_bytes, BYTES_PER_GB, prices.gcs_per_gb_month),
            "firestore_write_usd": _line(totals.write_ops, 100_000, prices.fs_write_per_100k),
            "firestore_read_usd": _line(totals.read_ops, 100_000, prices.fs_read_per_100k),
        }
        return CostBreakdown(
            **lines,
            total_usd=sum(v for v in lines.values() if v is not None),
            unpriced=[name for name, value in lines.items() if value is None],
        )
