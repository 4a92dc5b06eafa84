"""Scanline renderer with parallel per-pixel sampling.

The image is rendered top row first, in batches of scanlines. Each batch is
one kernel launch with one thread per pixel; every thread draws
``samples_per_pixel`` jittered camera rays, averages their radiance and
writes its own slot of a preallocated row buffer, so no two threads ever
touch the same memory. The host then hands the rows out strictly in scan
order, which lets the PPM writer stream them as they finish.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.core.config import RenderConfig
    >>> from pathtracer.core.sampler import ScanlineRenderer
    >>> # after setup_camera(...) and SceneManager().load_world(...)
    >>> renderer = ScanlineRenderer(RenderConfig(image_width=200, samples_per_pixel=10))
    >>> with open("out.ppm", "w") as stream:
    ...     renderer.render_to_ppm(stream)
"""

import logging
from collections.abc import Callable, Iterator
from typing import TextIO

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from pathtracer.camera.thin_lens import get_ray, is_camera_ready
from pathtracer.core.config import MAX_IMAGE_WIDTH, MAX_ROWS_PER_BATCH, RenderConfig
from pathtracer.core.integrator import radiance, sanitize_sample
from pathtracer.output.ppm import quantize_rgb, write_ppm
from pathtracer.scene.intersection import is_scene_loaded

logger = logging.getLogger(__name__)

vec3 = tm.vec3

# Type alias for progress callback
# Callback receives (rows_done, total_rows)
ProgressCallback = Callable[[int, int], None]

# Linear pixel averages of the current batch, indexed (batch row, column)
_row_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_ROWS_PER_BATCH, MAX_IMAGE_WIDTH))


@ti.kernel
def _render_rows(
    top_row: ti.i32,
    num_rows: ti.i32,
    width: ti.i32,
    height: ti.i32,
    samples_per_pixel: ti.i32,
    max_depth: ti.i32,
):
    """Render ``num_rows`` scanlines starting at ``top_row`` and going down.

    Row index j counts from the bottom of the image (j = 0 is the last
    scanline written).
    """
    x_scale = 1.0 / ti.cast(ti.max(width - 1, 1), ti.f32)
    y_scale = 1.0 / ti.cast(ti.max(height - 1, 1), ti.f32)
    for r, i in ti.ndrange(num_rows, width):
        j = top_row - r
        color = vec3(0.0, 0.0, 0.0)
        for _ in range(samples_per_pixel):
            s = (ti.cast(i, ti.f32) + ti.random(ti.f32)) * x_scale
            t = (ti.cast(j, ti.f32) + ti.random(ti.f32)) * y_scale
            color += sanitize_sample(radiance(get_ray(s, t), max_depth))
        _row_buffer[r, i] = color / ti.cast(samples_per_pixel, ti.f32)


class ScanlineRenderer:
    """Renders the loaded scene through the configured camera.

    The renderer does not own the scene or the camera: load the scene with
    :class:`pathtracer.scene.manager.SceneManager` and configure the camera
    with :func:`pathtracer.camera.thin_lens.setup_camera` first.

    Attributes:
        config: The render configuration.
    """

    def __init__(self, config: RenderConfig) -> None:
        self.config = config

    @property
    def width(self) -> int:
        """Get the image width."""
        return self.config.image_width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self.config.image_height

    def _check_ready(self) -> None:
        if not is_scene_loaded():
            raise RuntimeError("No scene loaded. Call SceneManager.load_world() first.")
        if not is_camera_ready():
            raise RuntimeError("Camera not set up. Call setup_camera() first.")

    def iter_rows(
        self, callback: ProgressCallback | None = None
    ) -> Iterator[tuple[int, npt.NDArray[np.float32]]]:
        """Render the image and yield its rows in scan order.

        Args:
            callback: Optional callback called after each batch with
                (rows_done, total_rows).

        Yields:
            Tuples of (row_index, linear_rgb) where row_index counts from
            the bottom (the first row yielded is ``height - 1``) and
            linear_rgb has shape (width, 3).

        Raises:
            RuntimeError: If the scene or the camera has not been set up.
        """
        self._check_ready()

        cfg = self.config
        width, height = self.width, self.height
        rows_done = 0
        top_row = height - 1
        while top_row >= 0:
            batch = min(cfg.rows_per_batch, top_row + 1)
            logger.debug("Scanlines remaining: %d", top_row + 1)
            _render_rows(top_row, batch, width, height, cfg.samples_per_pixel, cfg.max_depth)
            rows = _row_buffer.to_numpy()[:batch, :width]
            for r in range(batch):
                yield top_row - r, rows[r]
            rows_done += batch
            top_row -= batch
            if callback is not None:
                callback(rows_done, height)
        logger.debug("Rendered %dx%d at %d spp", width, height, cfg.samples_per_pixel)

    def render(self, callback: ProgressCallback | None = None) -> npt.NDArray[np.float32]:
        """Render the whole image.

        Args:
            callback: Optional progress callback, see :meth:`iter_rows`.

        Returns:
            Linear RGB array of shape (height, width, 3), top row first.
        """
        image = np.zeros((self.height, self.width, 3), dtype=np.float32)
        for out_row, (_, row) in enumerate(self.iter_rows(callback)):
            image[out_row] = row
        return image

    def render_to_ppm(self, stream: TextIO, callback: ProgressCallback | None = None) -> None:
        """Render the image and stream it to ``stream`` as a P3 PPM.

        Args:
            stream: Text stream to write to.
            callback: Optional progress callback, see :meth:`iter_rows`.
        """
        rows = (quantize_rgb(row) for _, row in self.iter_rows(callback))
        write_ppm(stream, self.width, self.height, rows)

    def __repr__(self) -> str:
        return (
            f"ScanlineRenderer(width={self.width}, height={self.height}, "
            f"samples={self.config.samples_per_pixel})"
        )
