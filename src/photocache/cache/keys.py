"""Cache key generation: content-addressed, size-aware."""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from photocache.types import TargetSize

_CONTENT_PREFIX = "image_"
_DEFAULT_HASH_LENGTH = 32  # hex chars = 128 bits of the SHA256 digest


def hash_image(image_bytes: bytes, length: int = _DEFAULT_HASH_LENGTH) -> str:
    """Hash image bytes into a stable, filesystem-safe cache key.

    The key is the SHA256 hex digest truncated to ``length`` characters, so it
    survives process restarts and can name disk entries between launches.
    """
    digest = hashlib.sha256(image_bytes).hexdigest()
    return _CONTENT_PREFIX + digest[:length]


def derive_key(logical_id: str, width: int, height: int) -> str:
    """Combine a logical identifier with output pixel dimensions.

    The same source requested at two sizes gets two keys; every size variant
    of one source shares the ``logical_id`` prefix so they can be dropped
    together.
    """
    return f"{logical_id}_downsample_{width}x{height}"


def pixel_dimensions(target_size: TargetSize, scale: float) -> tuple[int, int]:
    """Pixel width/height for a point size at ``scale``, never below 1."""
    width = int(max(target_size.width * scale, 1))
    height = int(max(target_size.height * scale, 1))
    return width, height


def downsample_key(base: str, target_size: TargetSize, scale: float) -> str:
    """Cache key for ``base`` rendered at ``target_size`` points and ``scale``."""
    width, height = pixel_dimensions(target_size, scale)
    return derive_key(base, width, height)


def hashed_file_name(key: str, extension: str = ".jpg") -> str:
    """Deterministic file name for a cache key (disk layout)."""
    return hashlib.sha256(key.encode("utf-8")).hexdigest() + extension
