"""Cache subsystem: two-tier (memory + disk) with content-addressed keys."""

from photocache.cache.disk import DiskCache
from photocache.cache.keys import derive_key, downsample_key, hash_image
from photocache.cache.memory import EvictionRecord, MemoryCache
from photocache.cache.stats import CacheStatistics, PipelineStats
from photocache.cache.store import BoundedStore

__all__ = [
    "BoundedStore",
    "CacheStatistics",
    "DiskCache",
    "EvictionRecord",
    "MemoryCache",
    "PipelineStats",
    "derive_key",
    "downsample_key",
    "hash_image",
]
