"""Pydantic settings model and the process-wide pipeline factory."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from photocache.cache.disk import DiskCache
from photocache.cache.memory import MemoryCache
from photocache.concurrency.pool import DecodePool
from photocache.config import defaults
from photocache.pipeline.engine import ImagePipeline
from photocache.pressure import MemoryPressureMonitor, MiB


class PhotoCacheSettings(BaseModel):
    """Validated view of the merged configuration dict."""

    model_config = {"extra": "ignore"}

    memory_count_limit: int = Field(defaults.DEFAULT_MEMORY_COUNT_LIMIT, ge=0)
    memory_cost_limit: int = Field(defaults.DEFAULT_MEMORY_COST_LIMIT, ge=0)
    max_tracked_keys: int = Field(defaults.DEFAULT_MAX_TRACKED_KEYS, ge=1)
    cache_dir: Path = defaults.DEFAULT_CACHE_DIR
    disk_data_count_limit: int = Field(defaults.DEFAULT_DISK_DATA_COUNT_LIMIT, ge=0)
    disk_data_cost_limit: int = Field(defaults.DEFAULT_DISK_DATA_COST_LIMIT, ge=0)
    jpeg_quality: int = Field(defaults.DEFAULT_JPEG_QUALITY, ge=1, le=95)
    disk_disabled: bool = defaults.DEFAULT_DISK_DISABLED
    decode_workers: int = Field(defaults.DEFAULT_DECODE_WORKERS, ge=1)
    scale: float = Field(defaults.DEFAULT_SCALE, gt=0)
    pressure_threshold_mb: int = Field(defaults.DEFAULT_PRESSURE_THRESHOLD_MB, ge=1)
    log_level: str = defaults.DEFAULT_LOG_LEVEL

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> PhotoCacheSettings:
        return cls(**config)


def build_pipeline(settings: PhotoCacheSettings | None = None) -> ImagePipeline:
    """Construct the single ImagePipeline a process should share."""
    settings = settings or PhotoCacheSettings()
    memory = MemoryCache(
        count_limit=settings.memory_count_limit,
        total_cost_limit=settings.memory_cost_limit,
        max_tracked_keys=settings.max_tracked_keys,
    )
    disk = None
    if not settings.disk_disabled:
        disk = DiskCache(
            directory=settings.cache_dir.expanduser(),
            data_cache_count=settings.disk_data_count_limit,
            data_cache_bytes=settings.disk_data_cost_limit,
        )
    return ImagePipeline(
        memory=memory,
        disk=disk,
        pool=DecodePool(max_workers=settings.decode_workers),
        jpeg_quality=settings.jpeg_quality,
    )


def build_monitor(settings: PhotoCacheSettings | None = None) -> MemoryPressureMonitor:
    """RSS monitor using the configured pressure threshold."""
    settings = settings or PhotoCacheSettings()
    return MemoryPressureMonitor(threshold_bytes=settings.pressure_threshold_mb * MiB)
