"""Plain-text PPM (P3) image writer.

The format is a header ``P3``, the width and height, the maximum value
(255), then one ``R G B`` triple per pixel in scan order, top row first.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TextIO

import numpy as np
import numpy.typing as npt

MAX_VALUE = 255


def quantize_rgb(colors: npt.ArrayLike) -> npt.NDArray[np.int32]:
    """Map linear colours to 8-bit display values.

    Applies gamma 2 (square root), clamps to [0, 0.999] and scales by 256,
    so every component lands in [0, 255].

    Args:
        colors: Linear RGB values of any shape ending in 3.

    Returns:
        Integer array of the same shape.
    """
    linear = np.nan_to_num(np.asarray(colors, dtype=np.float64), nan=0.0, posinf=0.0, neginf=0.0)
    gamma = np.sqrt(np.maximum(linear, 0.0))
    return (256.0 * np.clip(gamma, 0.0, 0.999)).astype(np.int32)


def write_ppm_header(stream: TextIO, width: int, height: int) -> None:
    """Write the P3 header."""
    stream.write(f"P3\n{width} {height}\n{MAX_VALUE}\n")


def write_ppm(
    stream: TextIO,
    width: int,
    height: int,
    rows: Iterable[npt.ArrayLike],
) -> None:
    """Write an image as P3, one pixel per line.

    Rows are consumed lazily, so a generator that renders scanlines on
    demand is streamed to the output as each row arrives.

    Args:
        stream: Text stream to write to.
        width: Image width in pixels.
        height: Image height in pixels.
        rows: ``height`` rows, top first, each of shape (width, 3) with
            integer values in [0, 255].

    Raises:
        ValueError: If a row has the wrong shape, a value is out of range,
            or the number of rows does not match ``height``.
    """
    write_ppm_header(stream, width, height)
    count = 0
    for row in rows:
        pixels = np.asarray(row)
        if pixels.shape != (width, 3):
            raise ValueError(f"Row {count} has shape {pixels.shape}, expected ({width}, 3)")
        if pixels.size and (pixels.min() < 0 or pixels.max() > MAX_VALUE):
            raise ValueError(f"Row {count} has values outside [0, {MAX_VALUE}]")
        stream.write("".join(f"{r} {g} {b}\n" for r, g, b in pixels.astype(np.int64).tolist()))
        count += 1
    if count != height:
        raise ValueError(f"Got {count} rows, expected {height}")

