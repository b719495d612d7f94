"""Tests for cache statistics models."""

from photocache.cache.stats import CacheStatistics, PipelineStats


class TestCacheStatistics:
    def test_defaults(self):
        stats = CacheStatistics()
        assert stats.tracked_keys == 0
        assert stats.least_recently_used == []

    def test_mb_conversions(self):
        stats = CacheStatistics(total_cost=3 * 1024 * 1024, total_cost_limit=100 * 1024 * 1024)
        assert stats.total_cost_mb == 3.0
        assert stats.total_cost_limit_mb == 100

    def test_describe(self):
        stats = CacheStatistics(
            tracked_keys=2,
            resident_keys=2,
            count_limit=50,
            total_cost_limit=100 * 1024 * 1024,
            least_recently_used=["a", "b"],
        )
        text = stats.describe()
        assert "Cached images: 2 / 50" in text
        assert "100MB" in text
        assert "LRU keys: a, b" in text


class TestPipelineStats:
    def test_hit_rate(self):
        stats = PipelineStats(memory_hits=6, disk_hits=2, decodes=1, failures=1)
        assert stats.hits == 8
        assert stats.hit_rate == 0.8

    def test_hit_rate_empty(self):
        assert PipelineStats().hit_rate == 0.0

    def test_coalesced_not_counted_in_rate(self):
        stats = PipelineStats(decodes=1, coalesced=5)
        assert stats.hit_rate == 0.0
