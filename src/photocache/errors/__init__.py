"""Error handling: flat exception hierarchy, caught at tier boundaries."""

from photocache.errors.exceptions import (
    DecodeError,
    DiskCacheError,
    PhotoCacheError,
)

__all__ = [
    "PhotoCacheError",
    "DecodeError",
    "DiskCacheError",
]
