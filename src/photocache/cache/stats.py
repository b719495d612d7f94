"""Cache statistics models."""

from __future__ import annotations

from pydantic import BaseModel, Field

_MB = 1024 * 1024


class CacheStatistics(BaseModel):
    """Snapshot of the memory tier, taken after reconciliation."""

    tracked_keys: int = 0
    resident_keys: int = 0
    count_limit: int = 0
    total_cost: int = 0
    total_cost_limit: int = 0
    least_recently_used: list[str] = Field(default_factory=list)

    @property
    def total_cost_limit_mb(self) -> int:
        return self.total_cost_limit // _MB

    @property
    def total_cost_mb(self) -> float:
        return self.total_cost / _MB

    def describe(self) -> str:
        return (
            "Image Cache Statistics:\n"
            f"- Cached images: {self.tracked_keys} / {self.count_limit}\n"
            f"- Memory used: {self.total_cost_mb:.1f}MB / {self.total_cost_limit_mb}MB\n"
            f"- LRU keys: {', '.join(self.least_recently_used)}"
        )


class PipelineStats(BaseModel):
    """Aggregate get-or-produce counters for an ImagePipeline."""

    memory_hits: int = 0
    disk_hits: int = 0
    decodes: int = 0
    failures: int = 0
    coalesced: int = 0

    @property
    def hits(self) -> int:
        return self.memory_hits + self.disk_hits

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.decodes + self.failures
        return self.hits / total if total > 0 else 0.0
