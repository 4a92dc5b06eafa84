"""Device texture table.

Every texture of a scene is stored in one tagged table indexed by texture
id. Composite textures (checkers) reference their sub-textures by id; a
child is always registered before its parent, so child ids are strictly
smaller and evaluation can walk the checker chain with a plain loop.

Image texels are packed into a single flat colour field, each image
occupying ``width * height`` consecutive entries starting at its offset.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.textures.registry import clear_textures, register_texture
    >>> from pathtracer.textures.texture import CheckerTexture
    >>> clear_textures()
    >>> tex_id = register_texture(CheckerTexture((0, 0, 0), (1, 1, 1)))
    >>> tex_id
    2
"""

from enum import IntEnum

import numpy as np
import taichi as ti
import taichi.math as tm

from pathtracer.textures.perlin import init_perlin, turbulence
from pathtracer.textures.texture import (
    IMAGE_FALLBACK_COLOR,
    CheckerTexture,
    ImageTexture,
    NoiseTexture,
    SolidColor,
    Texture,
)

vec3 = tm.vec3


class TextureKind(IntEnum):
    """Tag of a texture table entry."""

    SOLID = 0
    CHECKER = 1
    NOISE = 2
    IMAGE = 3


# Maximum number of textures in the scene
MAX_TEXTURES = 4096
# Total image texels across all image textures (e.g. one 2048x1024 map)
MAX_TEXELS = 2**21

texture_kinds = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TEXTURES)
texture_scales = ti.field(dtype=ti.f32, shape=MAX_TEXTURES)
texture_even = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_odd = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_image_offsets = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_image_widths = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_image_heights = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
num_textures = ti.field(dtype=ti.i32, shape=())

texels = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TEXELS)
num_texels = ti.field(dtype=ti.i32, shape=())

# Handles of already registered textures, keyed by object identity
_texture_ids: dict[int, int] = {}
# Keeps registered textures alive so their ids are never reused
_registered: list[Texture] = []


def clear_textures() -> None:
    """Clear all textures and image texels.

    Resets the counts to zero. Existing data in the fields will be
    overwritten when new textures are added.
    """
    num_textures[None] = 0
    num_texels[None] = 0
    _texture_ids.clear()
    _registered.clear()


def get_texture_count() -> int:
    """Get the number of textures in the table."""
    return int(num_textures[None])


def _allocate(kind: TextureKind) -> int:
    idx = num_textures[None]
    if idx >= MAX_TEXTURES:
        raise RuntimeError(f"Maximum number of textures ({MAX_TEXTURES}) exceeded")
    texture_kinds[idx] = int(kind)
    texture_colors[idx] = vec3(0.0, 0.0, 0.0)
    texture_scales[idx] = 0.0
    texture_even[idx] = -1
    texture_odd[idx] = -1
    texture_image_offsets[idx] = 0
    texture_image_widths[idx] = 0
    texture_image_heights[idx] = 0
    num_textures[None] = idx + 1
    return idx


@ti.kernel
def _copy_texels(data: ti.types.ndarray(), offset: ti.i32, count: ti.i32):
    for n in range(count):
        texels[offset + n] = vec3(data[n, 0], data[n, 1], data[n, 2])


def _upload_image(idx: int, texture: ImageTexture) -> None:
    if texture.pixels is None:
        # width 0 marks an image that failed to load
        return
    height, width = texture.height, texture.width
    count = width * height
    offset = num_texels[None]
    if offset + count > MAX_TEXELS:
        raise RuntimeError(
            f"Image {texture.path!r} ({width}x{height}) exceeds the texel budget ({MAX_TEXELS})"
        )
    # Row-major with row 0 at the top, scaled to [0, 1]
    data = np.ascontiguousarray(texture.pixels.reshape(-1, 3), dtype=np.float32) / 255.0
    _copy_texels(data, offset, count)
    num_texels[None] = offset + count
    texture_image_offsets[idx] = offset
    texture_image_widths[idx] = width
    texture_image_heights[idx] = height


def register_texture(texture: Texture) -> int:
    """Copy a texture (and its sub-textures) into the device table.

    Registering the same instance again returns the existing id.

    Args:
        texture: The texture to register.

    Returns:
        The texture id.

    Raises:
        RuntimeError: If the texture or texel capacity is exceeded.
        TypeError: If the texture type is unknown.
    """
    existing = _texture_ids.get(id(texture))
    if existing is not None:
        return existing

    if isinstance(texture, SolidColor):
        idx = _allocate(TextureKind.SOLID)
        texture_colors[idx] = vec3(*texture.color)
    elif isinstance(texture, CheckerTexture):
        even = register_texture(texture.even)
        odd = register_texture(texture.odd)
        idx = _allocate(TextureKind.CHECKER)
        texture_even[idx] = even
        texture_odd[idx] = odd
        texture_scales[idx] = texture.scale
    elif isinstance(texture, NoiseTexture):
        init_perlin()
        idx = _allocate(TextureKind.NOISE)
        texture_scales[idx] = texture.scale
    elif isinstance(texture, ImageTexture):
        idx = _allocate(TextureKind.IMAGE)
        texture_colors[idx] = vec3(*IMAGE_FALLBACK_COLOR)
        _upload_image(idx, texture)
    else:
        raise TypeError(f"Unsupported texture type {type(texture).__name__}")

    _texture_ids[id(texture)] = idx
    _registered.append(texture)
    return idx


@ti.func
def _image_value(tex_id: ti.i32, u: ti.f32, v: ti.f32) -> vec3:
    width = texture_image_widths[tex_id]
    height = texture_image_heights[tex_id]
    result = texture_colors[tex_id]
    if width > 0 and height > 0:
        # Clamp to [0, 1] and flip v to image rows
        uu = tm.clamp(u, 0.0, 1.0)
        vv = 1.0 - tm.clamp(v, 0.0, 1.0)
        i = ti.min(ti.cast(uu * width, ti.i32), width - 1)
        j = ti.min(ti.cast(vv * height, ti.i32), height - 1)
        result = texels[texture_image_offsets[tex_id] + j * width + i]
    return result


@ti.func
def texture_value(tex_id: ti.i32, u: ti.f32, v: ti.f32, p: vec3) -> vec3:
    """Evaluate a registered texture.

    Args:
        tex_id: Texture id from :func:`register_texture`.
        u: First surface coordinate.
        v: Second surface coordinate.
        p: Hit point in world space.

    Returns:
        The texture colour at the hit.
    """
    tid = tex_id
    # Resolve checkers down to a leaf texture
    while texture_kinds[tid] == int(TextureKind.CHECKER):
        s = texture_scales[tid]
        sines = ti.sin(s * p.x) * ti.sin(s * p.y) * ti.sin(s * p.z)
        if sines < 0.0:
            tid = texture_odd[tid]
        else:
            tid = texture_even[tid]

    kind = texture_kinds[tid]
    result = texture_colors[tid]
    if kind == int(TextureKind.NOISE):
        scale = texture_scales[tid]
        grey = 0.5 * (1.0 + ti.sin(scale * p.z + 10.0 * turbulence(p)))
        result = vec3(grey, grey, grey)
    elif kind == int(TextureKind.IMAGE):
        result = _image_value(tid, u, v)
    return result
