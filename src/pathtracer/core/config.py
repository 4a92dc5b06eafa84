"""Render configuration.

All values are fixed before a render starts; nothing is reconfigured while
kernels are running.
"""

from __future__ import annotations

from dataclasses import dataclass

# Preallocated device buffer limits (see pathtracer.core.sampler)
MAX_IMAGE_WIDTH = 4096
MAX_ROWS_PER_BATCH = 64


@dataclass(frozen=True)
class RenderConfig:
    """Image and sampling parameters for one render.

    Attributes:
        image_width: Output width in pixels.
        aspect_ratio: Width divided by height; the height is derived.
        samples_per_pixel: Number of independent samples averaged per pixel.
        max_depth: Maximum number of bounces per path.
        rows_per_batch: Scanlines rendered per kernel launch. Rows are still
            emitted strictly in scan order.
        seed: Seed handed to ``ti.init`` by callers that own initialization,
            and used for BVH construction.
    """

    image_width: int = 400
    aspect_ratio: float = 16.0 / 9.0
    samples_per_pixel: int = 100
    max_depth: int = 50
    rows_per_batch: int = 16
    seed: int = 0

    def __post_init__(self) -> None:
        if self.image_width < 1 or self.image_width > MAX_IMAGE_WIDTH:
            raise ValueError(
                f"image_width = {self.image_width} must be in [1, {MAX_IMAGE_WIDTH}]"
            )
        if not self.aspect_ratio > 0.0:
            raise ValueError(f"aspect_ratio = {self.aspect_ratio} must be positive")
        if self.image_height < 1:
            raise ValueError(
                f"image_width / aspect_ratio gives an empty image ({self.image_width}"
                f" / {self.aspect_ratio})"
            )
        if self.samples_per_pixel < 1:
            raise ValueError(f"samples_per_pixel = {self.samples_per_pixel} must be >= 1")
        if self.max_depth < 0:
            raise ValueError(f"max_depth = {self.max_depth} must be >= 0")
        if self.rows_per_batch < 1 or self.rows_per_batch > MAX_ROWS_PER_BATCH:
            raise ValueError(
                f"rows_per_batch = {self.rows_per_batch} must be in [1, {MAX_ROWS_PER_BATCH}]"
            )

    @property
    def image_height(self) -> int:
        """Output height in pixels, ``int(image_width / aspect_ratio)``."""
        return int(self.image_width / self.aspect_ratio)
