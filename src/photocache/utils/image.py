"""Image decoding, downsampling and encoding utilities."""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from PIL import Image, ImageOps

from photocache.config.defaults import DEFAULT_JPEG_QUALITY
from photocache.errors.exceptions import DecodeError

if TYPE_CHECKING:
    from photocache.types import TargetSize

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".tiff", ".tif", ".bmp", ".webp", ".gif"}
_MAX_IMAGE_SIZE_BYTES = 50 * 1024 * 1024  # 50 MB
_BYTES_PER_PIXEL = 4  # RGBA approximation, not the real buffer size
_DECODE_ERRORS = (OSError, ValueError, Image.DecompressionBombError)


def downsample(
    image_bytes: bytes,
    target_size: TargetSize,
    scale: float,
) -> Image.Image | None:
    """Decode ``image_bytes`` straight into a buffer that fits ``target_size``.

    The longest side of the result is at most
    ``int(max(target_size.width, target_size.height) * scale)`` pixels, the
    aspect ratio is preserved and EXIF orientation is applied. Returns None
    instead of raising when the input can't produce a thumbnail.
    """
    try:
        return _downsample(image_bytes, target_size, scale)
    except DecodeError as exc:
        logger.debug("Downsample failed (%s): %s", exc.reason, exc.message)
        return None
    except Exception:
        logger.warning("Unexpected error while downsampling", exc_info=True)
        return None


def decode_image(image_bytes: bytes) -> Image.Image | None:
    """Fully decode already-downsampled bytes (disk tier hits)."""
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except _DECODE_ERRORS as exc:
        logger.debug("Cannot decode %d cached bytes: %s", len(image_bytes), exc)
        return None
    return image


def encode_image(image: Image.Image, quality: int = DEFAULT_JPEG_QUALITY) -> bytes | None:
    """Encode for the disk tier: JPEG, or PNG when JPEG can't hold the image."""
    for fmt, options in (("JPEG", {"quality": quality}), ("PNG", {})):
        buf = io.BytesIO()
        try:
            image.save(buf, format=fmt, **options)
        except (OSError, ValueError, KeyError) as exc:
            logger.debug("%s encode failed for %s image: %s", fmt, image.mode, exc)
            continue
        return buf.getvalue()
    return None


def image_cost(image: Image.Image) -> int:
    """Approximate memory footprint used for the memory tier's cost limit."""
    width, height = image.size
    return width * height * _BYTES_PER_PIXEL


def load_image(path: str | Path) -> bytes:
    """Load an image file and return raw bytes."""
    path = Path(path)
    _validate_path(path)
    return path.read_bytes()


def is_supported(path: str | Path) -> bool:
    return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS


def _downsample(image_bytes: bytes, target_size: TargetSize, scale: float) -> Image.Image:
    if scale <= 0 or target_size.is_degenerate:
        raise DecodeError(
            f"Degenerate target {target_size.width}x{target_size.height} @ {scale}x",
            reason="degenerate_target",
        )
    max_pixels = target_size.max_pixel_size(scale)
    if max_pixels < 1:
        raise DecodeError(f"Target rounds to {max_pixels}px", reason="degenerate_target")

    try:
        with Image.open(io.BytesIO(image_bytes)) as source:
            # JPEG decoders scale by 1/2, 1/4 or 1/8 while decoding
            source.draft(None, (max_pixels, max_pixels))
            image = ImageOps.exif_transpose(source)
    except _DECODE_ERRORS as exc:
        raise DecodeError(str(exc), reason="undecodable", original=exc) from exc

    if image is None or image.width < 1 or image.height < 1:
        raise DecodeError("Decoder returned no thumbnail", reason="no_thumbnail")

    try:
        image.thumbnail((max_pixels, max_pixels), Image.Resampling.LANCZOS)
    except _DECODE_ERRORS as exc:
        raise DecodeError(str(exc), reason="undecodable", original=exc) from exc

    if image.mode not in ("RGB", "RGBA", "L"):
        has_alpha = "A" in image.getbands() or "transparency" in image.info
        image = image.convert("RGBA" if has_alpha else "RGB")
    return image


def _validate_path(path: Path) -> None:
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    if path.is_symlink():
        raise ValueError(f"Symlinks not allowed: {path}")
    if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        raise ValueError(f"Unsupported file type: {path.suffix}")
    size = path.stat().st_size
    if size > _MAX_IMAGE_SIZE_BYTES:
        raise ValueError(f"File too large ({size} bytes, max {_MAX_IMAGE_SIZE_BYTES})")
