"""Package-level default configuration values."""

from __future__ import annotations

from pathlib import Path
from typing import Any

_MB = 1024 * 1024

# Memory tier
DEFAULT_MEMORY_COUNT_LIMIT = 50
DEFAULT_MEMORY_COST_LIMIT = 100 * _MB
DEFAULT_MAX_TRACKED_KEYS = 200

# Disk tier
DEFAULT_CACHE_DIR = Path.home() / ".photocache" / "images"
DEFAULT_DISK_DATA_COUNT_LIMIT = 300
DEFAULT_DISK_DATA_COST_LIMIT = 64 * _MB
DEFAULT_JPEG_QUALITY = 90
DEFAULT_DISK_DISABLED = False

# Decoding
DEFAULT_DECODE_WORKERS = 4
DEFAULT_SCALE = 3.0

# Memory pressure (process RSS)
DEFAULT_PRESSURE_THRESHOLD_MB = 1024

# Log level
DEFAULT_LOG_LEVEL = "WARNING"


def get_defaults() -> dict[str, Any]:
    """Return all defaults as a flat dictionary for merging."""
    return {
        "memory_count_limit": DEFAULT_MEMORY_COUNT_LIMIT,
        "memory_cost_limit": DEFAULT_MEMORY_COST_LIMIT,
        "max_tracked_keys": DEFAULT_MAX_TRACKED_KEYS,
        "cache_dir": str(DEFAULT_CACHE_DIR),
        "disk_data_count_limit": DEFAULT_DISK_DATA_COUNT_LIMIT,
        "disk_data_cost_limit": DEFAULT_DISK_DATA_COST_LIMIT,
        "jpeg_quality": DEFAULT_JPEG_QUALITY,
        "disk_disabled": DEFAULT_DISK_DISABLED,
        "decode_workers": DEFAULT_DECODE_WORKERS,
        "scale": DEFAULT_SCALE,
        "pressure_threshold_mb": DEFAULT_PRESSURE_THRESHOLD_MB,
        "log_level": DEFAULT_LOG_LEVEL,
    }
