"""Diffuse area light.

An emitter never scatters: a path that reaches it terminates and gathers
the emitted colour. Emission is not bounded above, so bright lights are
expressed with components greater than 1.

Example:
    >>> from pathtracer.materials.diffuse_light import DiffuseLight
    >>> lamp = DiffuseLight((15.0, 15.0, 15.0))
"""

from collections.abc import Sequence

import taichi as ti
import taichi.math as tm

from pathtracer.materials.base import Material
from pathtracer.textures.registry import texture_value
from pathtracer.textures.texture import SolidColor, Texture, as_color

vec3 = tm.vec3


class DiffuseLight(Material):
    """Light-emitting surface.

    Args:
        emit: Emission texture, or a non-negative RGB colour.

    Raises:
        ValueError: If an emission colour component is negative.
    """

    def __init__(self, emit: Texture | Sequence[float]) -> None:
        if isinstance(emit, Texture):
            self.emit = emit
        else:
            color = as_color(emit, "Emission")
            if (color < 0.0).any():
                raise ValueError(f"Emission = {color.tolist()} must be non-negative")
            self.emit = SolidColor(color)

    def __repr__(self) -> str:
        return f"DiffuseLight({self.emit!r})"


# Maximum number of light materials in the scene
MAX_DIFFUSE_LIGHT_MATERIALS = 256

diffuse_light_textures = ti.field(dtype=ti.i32, shape=MAX_DIFFUSE_LIGHT_MATERIALS)
num_diffuse_light_materials = ti.field(dtype=ti.i32, shape=())


def clear_diffuse_light_materials() -> None:
    """Clear all light materials."""
    num_diffuse_light_materials[None] = 0


def add_diffuse_light_material(texture_id: int) -> int:
    """Add a light material to the material registry.

    Args:
        texture_id: Registered texture id of the emission.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
    """
    idx = num_diffuse_light_materials[None]
    if idx >= MAX_DIFFUSE_LIGHT_MATERIALS:
        raise RuntimeError(
            f"Maximum number of light materials ({MAX_DIFFUSE_LIGHT_MATERIALS}) exceeded"
        )
    diffuse_light_textures[idx] = texture_id
    num_diffuse_light_materials[None] = idx + 1
    return idx


def get_diffuse_light_material_count() -> int:
    """Get the number of light materials in the registry."""
    return int(num_diffuse_light_materials[None])


@ti.func
def emitted_diffuse_light_by_id(material_idx: ti.i32, u: ti.f32, v: ti.f32, p: vec3) -> vec3:
    """Emission of a light material at a surface point."""
    return texture_value(diffuse_light_textures[material_idx], u, v, p)
