"""Host-side texture descriptions.

A texture maps a surface hit ``(u, v, p)`` to a colour. Textures are plain
Python objects until the scene is loaded, at which point
:func:`pathtracer.textures.registry.register_texture` copies them into the
device texture table and :func:`pathtracer.textures.registry.texture_value`
evaluates them inside kernels.

Example:
    >>> from pathtracer.textures.texture import CheckerTexture
    >>> checker = CheckerTexture((0.2, 0.3, 0.1), (0.9, 0.9, 0.9))
    >>> checker.even.color.tolist()
    [0.2, 0.3, 0.1]
"""

from __future__ import annotations

import abc
import logging
import math
import os
from collections.abc import Sequence

import numpy as np
import numpy.typing as npt
from PIL import Image

logger = logging.getLogger(__name__)

# Colour returned by an image texture whose file could not be decoded
IMAGE_FALLBACK_COLOR = (0.0, 1.0, 1.0)

# Spatial frequency of the checker pattern
DEFAULT_CHECKER_SCALE = 10.0


def as_color(value: Sequence[float], name: str = "color") -> npt.NDArray[np.float64]:
    """Convert a sequence to an RGB array, rejecting non-finite components."""
    color = np.asarray(value, dtype=np.float64).reshape(3)
    if not np.all(np.isfinite(color)):
        raise ValueError(f"{name} = {color.tolist()} must be finite")
    return color


class Texture(abc.ABC):
    """A colour lookup over surface coordinates and position."""


class SolidColor(Texture):
    """A constant colour."""

    def __init__(self, color: Sequence[float]) -> None:
        self.color = as_color(color)

    def __repr__(self) -> str:
        return f"SolidColor({self.color.tolist()})"


def as_texture(value: Texture | Sequence[float]) -> Texture:
    """Wrap a bare colour in a :class:`SolidColor`; pass textures through."""
    if isinstance(value, Texture):
        return value
    return SolidColor(value)


class CheckerTexture(Texture):
    """3D checkerboard alternating between two sub-textures.

    The parity of ``sin(s x) sin(s y) sin(s z)`` selects ``odd`` where it is
    negative and ``even`` elsewhere.

    Args:
        even: Texture or colour of the even cells.
        odd: Texture or colour of the odd cells.
        scale: Spatial frequency ``s``.
    """

    def __init__(
        self,
        even: Texture | Sequence[float],
        odd: Texture | Sequence[float],
        scale: float = DEFAULT_CHECKER_SCALE,
    ) -> None:
        if not (math.isfinite(scale) and scale > 0.0):
            raise ValueError(f"Checker scale = {scale} must be positive and finite")
        self.even = as_texture(even)
        self.odd = as_texture(odd)
        self.scale = float(scale)

    def __repr__(self) -> str:
        return f"CheckerTexture(even={self.even!r}, odd={self.odd!r}, scale={self.scale})"


class NoiseTexture(Texture):
    """Marble-like pattern driven by Perlin turbulence.

    The grey level is ``0.5 * (1 + sin(scale * z + 10 * turb(p)))``.
    """

    def __init__(self, scale: float = 1.0) -> None:
        if not (math.isfinite(scale) and scale > 0.0):
            raise ValueError(f"Noise scale = {scale} must be positive and finite")
        self.scale = float(scale)

    def __repr__(self) -> str:
        return f"NoiseTexture(scale={self.scale})"


class ImageTexture(Texture):
    """Texture sampled from an image file.

    The file is decoded with Pillow at construction. If it cannot be read
    the failure is logged and the texture evaluates to
    :data:`IMAGE_FALLBACK_COLOR` everywhere, so the render still completes.

    Attributes:
        path: The image file.
        pixels: ``(height, width, 3)`` uint8 array in row-major order with
            row 0 at the top, or ``None`` if decoding failed.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = os.fspath(path)
        self.pixels: npt.NDArray[np.uint8] | None = None
        try:
            with Image.open(self.path) as img:
                self.pixels = np.asarray(img.convert("RGB"), dtype=np.uint8)
        except (OSError, ValueError) as exc:
            logger.warning("Could not load texture image file %r: %s", self.path, exc)

    def __repr__(self) -> str:
        return f"ImageTexture({self.path!r}, loaded={self.loaded})"

    @property
    def loaded(self) -> bool:
        """Whether the image was decoded successfully."""
        return self.pixels is not None

    @property
    def width(self) -> int:
        return 0 if self.pixels is None else int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return 0 if self.pixels is None else int(self.pixels.shape[0])
