"""Custom exception hierarchy for photocache.

None of these escape ``ImagePipeline.resolve``: they are raised inside a tier
and converted to a miss at that tier's boundary.
"""

from __future__ import annotations

from typing import Any


class PhotoCacheError(Exception):
    """Base exception for all photocache errors."""

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message


class DecodeError(PhotoCacheError):
    """Source bytes could not be turned into a downsampled image.

    Examples: corrupt or non-image bytes, zero/negative target size, a decoder
    that produced no thumbnail.
    """

    def __init__(
        self,
        message: str = "",
        reason: str = "undecodable",
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.original = original


class DiskCacheError(PhotoCacheError):
    """Filesystem failure inside the disk tier (permissions, disk full, ...)."""

    def __init__(
        self,
        message: str = "",
        key: str | None = None,
        operation: str = "write",
        original: OSError | None = None,
    ) -> None:
        super().__init__(message)
        self.key = key
        self.operation = operation
        self.original = original
