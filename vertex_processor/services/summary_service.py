import json
from dataclasses import dataclass, replace
from typing import Any

from vertex_processor.aggregation.cost import CostBreakdown, CostEstimator, PriceTable, UsageTotals
from vertex_processor.aggregation.engine import (
    AggregationEngine,
    SelectionPolicy,
    SummaryFilter,
    SummaryResult,
)
from vertex_processor.aggregation.recompute import RecomputeResult, recompute_averages
from vertex_processor.database.cache import SUMMARY_CACHE_COLLECTION, BestEffortCache, hash_id
from vertex_processor.database.repositories.record_repository import RecordRepository
from vertex_processor.logging.logger import Log


@dataclass(frozen=True)
class CachedSummary:
    payload: dict[str, Any]
    cached: bool
    cached_at: int | None


@dataclass(frozen=True)
class CostReport:
    totals: UsageTotals
    prices: PriceTable
    costs: CostBreakdown


class SummaryService:
    """Read-side operations over the stored corpus."""

    def __init__(
        self,
        *,
        record_repo: RecordRepository,
        engine: AggregationEngine,
        cache: BestEffortCache,
        cost_estimator: CostEstimator,
        default_prices: PriceTable,
        default_tag: str,
    ) -> None:
        self._record_repo = record_repo
        self._engine = engine
        self._cache = cache
        self._cost_estimator = cost_estimator
        self._default_prices = default_prices
        self._default_tag = default_tag

    async def summarize(
        self,
        summary_filter: SummaryFilter,
        policy: SelectionPolicy = SelectionPolicy.ZERO_FILL,
    ) -> SummaryResult:
        records = await self._record_repo.list()
        return self._engine.summarize(records, summary_filter, policy)

    async def cached_summary(
        self,
        summary_filter: SummaryFilter,
        policy: SelectionPolicy,
        *,
        ttl_seconds: float,
        reset: bool = False,
    ) -> CachedSummary:
        """Serve the summary from cache while it is younger than ``ttl_seconds``."""
        key = hash_id(json.dumps({**summary_filter.as_params(), "policy": policy.value}, sort_keys=True))
        if not reset:
            entry = await self._cache.read_fresh(SUMMARY_CACHE_COLLECTION, key, ttl_seconds)
            if entry and isinstance(entry.get("result"), dict):
                Log.debug("Summary cache hit")
                return CachedSummary(
                    payload=entry["result"], cached=True, cached_at=entry.get("cachedAt")
                )
        result = (await self.summarize(summary_filter, policy)).to_dict()
        cached_at = await self._cache.write_timestamped(
            SUMMARY_CACHE_COLLECTION, key, {"result": result}
        )
        return CachedSummary(payload=result, cached=False, cached_at=cached_at)

    async def recompute(self) -> RecomputeResult:
        return await recompute_averages(
            self._record_repo, tag=self._default_tag, schema=self._engine.schema
        )

    async def cost(self, overrides: dict[str, float | None] | None = None) -> CostReport:
        prices = self._default_prices
        if overrides:
            prices = replace(prices, **{k: v for k, v in overrides.items() if v is not None})
        totals = UsageTotals.from_records(await self._record_repo.list())
        return CostReport(
            totals=totals, prices=prices, costs=self._cost_estimator.estimate(totals, prices)
        )
