"""Image output: P3 PPM streaming and PNG export."""

from .export import image_to_uint8, save_image, save_png, save_ppm
from .ppm import quantize_rgb, write_ppm, write_ppm_header

__all__ = [
    "quantize_rgb",
    "write_ppm",
    "write_ppm_header",
    "image_to_uint8",
    "save_png",
    "save_ppm",
    "save_image",
]
