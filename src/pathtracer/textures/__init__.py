"""Textures module.

Components:
    texture: Host texture descriptions (solid, checker, noise, image)
    perlin: Perlin gradient noise and turbulence
    registry: Device texture table and texture_value lookup
"""

from .perlin import init_perlin, perlin_noise, turbulence
from .registry import (
    MAX_TEXELS,
    MAX_TEXTURES,
    TextureKind,
    clear_textures,
    get_texture_count,
    register_texture,
    texture_value,
)
from .texture import (
    DEFAULT_CHECKER_SCALE,
    IMAGE_FALLBACK_COLOR,
    CheckerTexture,
    ImageTexture,
    NoiseTexture,
    SolidColor,
    Texture,
    as_texture,
)

__all__ = [
    "Texture",
    "SolidColor",
    "CheckerTexture",
    "NoiseTexture",
    "ImageTexture",
    "as_texture",
    "IMAGE_FALLBACK_COLOR",
    "DEFAULT_CHECKER_SCALE",
    "init_perlin",
    "perlin_noise",
    "turbulence",
    "TextureKind",
    "MAX_TEXTURES",
    "MAX_TEXELS",
    "clear_textures",
    "get_texture_count",
    "register_texture",
    "texture_value",
]
