"""Tests for the in-memory LRU image cache."""

import threading

import pytest
from PIL import Image

from photocache.cache.memory import EvictionRecord, MemoryCache


def _image(side: int = 10) -> Image.Image:
    return Image.new("RGB", (side, side))


@pytest.fixture
def unbounded():
    """A cache whose backing store never evicts on its own."""
    return MemoryCache(count_limit=0, total_cost_limit=0, max_tracked_keys=3)


class TestEvictionRecord:
    def test_record_and_drain(self):
        record = EvictionRecord()
        record.record("a")
        record.record("b")
        assert len(record) == 2
        assert record.drain() == ["a", "b"]
        assert len(record) == 0
        assert record.drain() == []


class TestMemoryCache:
    def test_get_set(self, small_image):
        cache = MemoryCache()
        cache.set("k1", small_image)
        assert cache.get("k1") is small_image
        assert "k1" in cache
        assert len(cache) == 1

    def test_get_miss(self):
        assert MemoryCache().get("nonexistent") is None

    def test_lru_order(self, small_image):
        cache = MemoryCache()
        for key in ("k1", "k2", "k3"):
            cache.set(key, small_image)
        cache.get("k1")
        assert cache.least_recently_used_keys(200) == ["k2", "k3", "k1"]

    def test_set_existing_key_moves_to_tail(self, small_image):
        cache = MemoryCache()
        for key in ("k1", "k2", "k3"):
            cache.set(key, small_image)
        cache.set("k1", small_image)
        assert cache.tracked_keys() == ["k2", "k3", "k1"]

    def test_least_recently_used_keys_count(self, small_image):
        cache = MemoryCache()
        for key in ("k1", "k2", "k3"):
            cache.set(key, small_image)
        assert cache.least_recently_used_keys(2) == ["k1", "k2"]
        assert cache.least_recently_used_keys(0) == []

    def test_tracked_bound_evicts_least_recently_used(self, unbounded, small_image):
        for key in ("k1", "k2", "k3"):
            unbounded.set(key, small_image)
        unbounded.get("k1")
        unbounded.set("k4", small_image)

        assert unbounded.get("k2") is None
        assert "k2" not in unbounded.store
        assert unbounded.get("k1") is not None
        assert unbounded.tracked_keys() == ["k3", "k4", "k1"]

    def test_tracked_bound_holds_under_churn(self, unbounded, small_image):
        for i in range(50):
            unbounded.set(f"k{i}", small_image)
        assert len(unbounded.tracked_keys()) == 3
        assert len(unbounded) == 3

    def test_store_eviction_reconciled_on_read(self, small_image):
        cache = MemoryCache()
        for i in range(1, 6):
            cache.set(f"k{i}", small_image)

        cache.store.evict("k3")
        assert cache.pending_evictions == 1

        assert cache.get("k3") is None
        assert cache.pending_evictions == 0
        assert cache.tracked_keys() == ["k1", "k2", "k4", "k5"]

    def test_reconcile_before_lru_query(self, small_image):
        cache = MemoryCache()
        for key in ("k1", "k2", "k3"):
            cache.set(key, small_image)
        cache.store.evict("k1")
        assert cache.least_recently_used_keys(1) == ["k2"]

    def test_reinserted_key_survives_reconcile(self, small_image):
        cache = MemoryCache()
        cache.set("k1", small_image)
        cache.store.evict("k1")
        cache.set("k1", small_image)

        assert cache.get("k1") is small_image
        assert cache.tracked_keys() == ["k1"]

    def test_count_limit_eviction_is_tracked(self, small_image):
        cache = MemoryCache(count_limit=2)
        for key in ("a", "b", "c"):
            cache.set(key, small_image)

        assert "a" not in cache
        assert cache.pending_evictions == 1
        assert cache.least_recently_used_keys(10) == ["b", "c"]

    def test_cost_limit_eviction(self):
        # 10x10 images cost 400 bytes each
        cache = MemoryCache(count_limit=0, total_cost_limit=1000)
        for key in ("a", "b", "c"):
            cache.set(key, _image(10))

        assert len(cache) == 2
        assert cache.tracked_keys() == ["b", "c"]
        assert cache.store.total_cost == 800

    def test_image_larger_than_cost_limit(self):
        cache = MemoryCache(total_cost_limit=100)
        cache.set("big", _image(10))
        assert cache.get("big") is None
        assert cache.tracked_keys() == []

    def test_purge_from_another_thread(self, small_image):
        cache = MemoryCache()
        for i in range(10):
            cache.set(f"k{i}", small_image)

        worker = threading.Thread(target=cache.store.purge)
        worker.start()
        worker.join()

        stats = cache.statistics()
        assert stats.tracked_keys == 0
        assert stats.resident_keys == 0

    def test_remove(self, small_image):
        cache = MemoryCache()
        cache.set("k1", small_image)
        cache.remove("k1")
        assert cache.get("k1") is None
        assert cache.tracked_keys() == []
        assert cache.pending_evictions == 0

    def test_remove_missing_key(self):
        cache = MemoryCache()
        cache.remove("nope")
        assert len(cache) == 0

    def test_remove_all_with_prefix(self, small_image):
        cache = MemoryCache()
        cache.set("photo1_downsample_330x360", small_image)
        cache.set("photo1_downsample_1800x1800", small_image)
        cache.set("photo10_downsample_330x360", small_image)
        cache.set("photo2_downsample_330x360", small_image)

        removed = cache.remove_all_with_prefix("photo1_")

        assert removed == 2
        assert cache.tracked_keys() == [
            "photo10_downsample_330x360",
            "photo2_downsample_330x360",
        ]

    def test_remove_all_with_prefix_no_match(self, small_image):
        cache = MemoryCache()
        cache.set("photo2_thumb", small_image)
        assert cache.remove_all_with_prefix("photo1_") == 0
        assert len(cache) == 1

    def test_remove_all_with_prefix_skips_evicted(self, small_image):
        cache = MemoryCache()
        cache.set("photo1_a", small_image)
        cache.set("photo1_b", small_image)
        cache.store.evict("photo1_a")
        assert cache.remove_all_with_prefix("photo1_") == 1
        assert cache.tracked_keys() == []

    def test_remove_all(self, small_image):
        cache = MemoryCache()
        cache.set("k1", small_image)
        cache.set("k2", small_image)
        cache.store.evict("k1")
        cache.remove_all()

        assert len(cache) == 0
        assert cache.tracked_keys() == []
        assert cache.pending_evictions == 0

    def test_remove_all_idempotent(self, small_image):
        cache = MemoryCache()
        cache.set("k1", small_image)
        cache.remove_all()
        cache.remove_all()
        assert cache.statistics().tracked_keys == 0

    def test_limits_adjustable(self, small_image):
        cache = MemoryCache()
        for key in ("a", "b", "c"):
            cache.set(key, small_image)
        cache.count_limit = 1
        assert cache.count_limit == 1
        assert cache.tracked_keys() == ["c"]

        cache.total_cost_limit = 10
        assert cache.total_cost_limit == 10
        assert len(cache) == 0

    def test_statistics(self, small_image):
        cache = MemoryCache(count_limit=50, total_cost_limit=100 * 1024 * 1024)
        for i in range(7):
            cache.set(f"k{i}", small_image)

        stats = cache.statistics()
        assert stats.tracked_keys == 7
        assert stats.resident_keys == 7
        assert stats.count_limit == 50
        assert stats.total_cost == 7 * 400
        assert stats.total_cost_limit_mb == 100
        assert stats.least_recently_used == ["k0", "k1", "k2", "k3", "k4"]
