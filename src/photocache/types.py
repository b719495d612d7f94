"""Shared Pydantic models for photocache."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TargetSize(BaseModel):
    """Requested display footprint in points (multiplied by scale for pixels)."""

    model_config = ConfigDict(frozen=True)

    width: float = Field(allow_inf_nan=False)
    height: float = Field(allow_inf_nan=False)

    @classmethod
    def square(cls, side: float) -> TargetSize:
        return cls(width=side, height=side)

    @classmethod
    def parse(cls, value: str) -> TargetSize:
        """Parse ``"110x120"`` or ``"600"`` (square)."""
        text = value.strip().lower()
        if "x" in text:
            width, _, height = text.partition("x")
            return cls(width=float(width), height=float(height))
        return cls.square(float(text))

    @property
    def is_degenerate(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def max_pixel_size(self, scale: float) -> int:
        """Upper bound for the longest side of the decoded image."""
        return int(max(self.width, self.height) * scale)


class ResolveRequest(BaseModel):
    """One get-or-produce request for ``ImagePipeline.resolve_many``."""

    source: bytes
    cache_key: str
    target_size: TargetSize
    scale: float = 1.0
