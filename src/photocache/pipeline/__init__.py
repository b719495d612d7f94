"""Image pipeline: memory, then disk, then the downsampler."""

from photocache.pipeline.engine import KNOWN_THUMBNAIL_SIZES, ImagePipeline

__all__ = ["ImagePipeline", "KNOWN_THUMBNAIL_SIZES"]
