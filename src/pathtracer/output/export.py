"""Image export utilities for rendered images.

Supported formats:
    - PNG (8-bit, gamma 2 via Pillow)
    - PPM (P3 text, see :mod:`pathtracer.output.ppm`)

Example:
    >>> from pathtracer.output.export import save_image
    >>> image = renderer.render()
    >>> save_image(image, "output.png")
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from pathtracer.output.ppm import quantize_rgb, write_ppm


def image_to_uint8(image: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Convert a linear float image to uint8 for display/export.

    Uses the same gamma-2 quantization as the PPM writer.

    Args:
        image: Linear image array of shape (H, W, 3).

    Returns:
        8-bit image array of shape (H, W, 3) with dtype uint8.
    """
    return quantize_rgb(image).astype(np.uint8)


def save_png(image: npt.NDArray[np.floating], filepath: str | Path) -> None:
    """Save a linear image as an 8-bit PNG file.

    Args:
        image: Linear image array of shape (H, W, 3), top row first.
        filepath: Output file path.
    """
    pil_image = PILImage.fromarray(image_to_uint8(image))
    pil_image.save(filepath)


def save_ppm(image: npt.NDArray[np.floating], filepath: str | Path) -> None:
    """Save a linear image as a P3 PPM file."""
    pixels = image_to_uint8(image)
    height, width = pixels.shape[:2]
    with open(filepath, "w", encoding="ascii") as stream:
        write_ppm(stream, width, height, pixels)


def save_image(image: npt.NDArray[np.floating], filepath: str | Path) -> None:
    """Save a linear image, choosing the format from the file extension.

    Args:
        image: Linear image array of shape (H, W, 3), top row first.
        filepath: Output path ending in ``.ppm`` or ``.png``.

    Raises:
        ValueError: If the extension is not supported.
    """
    suffix = Path(filepath).suffix.lower()
    if suffix == ".ppm":
        save_ppm(image, filepath)
    elif suffix == ".png":
        save_png(image, filepath)
    else:
        raise ValueError(f"Unsupported image format {suffix!r}; use .ppm or .png")

