"""photocache: memory + disk image cache with a downsampling pipeline."""

from photocache.cache import DiskCache, MemoryCache, derive_key, downsample_key, hash_image
from photocache.config.schema import PhotoCacheSettings, build_pipeline
from photocache.pipeline import ImagePipeline
from photocache.pressure import MemoryPressureMonitor
from photocache.types import ResolveRequest, TargetSize
from photocache.utils.image import downsample

__version__ = "0.1.0"

__all__ = [
    "DiskCache",
    "ImagePipeline",
    "MemoryCache",
    "MemoryPressureMonitor",
    "PhotoCacheSettings",
    "ResolveRequest",
    "TargetSize",
    "build_pipeline",
    "derive_key",
    "downsample",
    "downsample_key",
    "hash_image",
]
