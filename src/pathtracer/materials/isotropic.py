"""Isotropic phase function for participating media.

A ray scattered inside a volume leaves in a uniformly random direction,
attenuated by the medium's albedo texture.
"""

from collections.abc import Sequence

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray, make_ray, random_unit_vector
from pathtracer.geometry.hittable import HitRecord
from pathtracer.materials.base import Material, albedo_texture
from pathtracer.textures.registry import texture_value
from pathtracer.textures.texture import Texture

vec3 = tm.vec3


class Isotropic(Material):
    """Uniform volume scattering.

    Args:
        albedo: Texture, or an RGB colour with components in [0, 1].
    """

    def __init__(self, albedo: Texture | Sequence[float]) -> None:
        self.albedo = albedo_texture(albedo)

    def __repr__(self) -> str:
        return f"Isotropic({self.albedo!r})"


# Maximum number of isotropic materials in the scene
MAX_ISOTROPIC_MATERIALS = 256

isotropic_textures = ti.field(dtype=ti.i32, shape=MAX_ISOTROPIC_MATERIALS)
num_isotropic_materials = ti.field(dtype=ti.i32, shape=())


def clear_isotropic_materials() -> None:
    """Clear all isotropic materials."""
    num_isotropic_materials[None] = 0


def add_isotropic_material(texture_id: int) -> int:
    """Add an isotropic material to the material registry.

    Args:
        texture_id: Registered texture id of the albedo.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
    """
    idx = num_isotropic_materials[None]
    if idx >= MAX_ISOTROPIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of isotropic materials ({MAX_ISOTROPIC_MATERIALS}) exceeded"
        )
    isotropic_textures[idx] = texture_id
    num_isotropic_materials[None] = idx + 1
    return idx


def get_isotropic_material_count() -> int:
    """Get the number of isotropic materials in the registry."""
    return int(num_isotropic_materials[None])


@ti.func
def scatter_isotropic_by_id(material_idx: ti.i32, ray: Ray, rec: HitRecord):
    """Scatter a ray inside a medium in a uniformly random direction.

    Returns:
        A tuple of (scattered_ray, attenuation, did_scatter); always scatters.
    """
    attenuation = texture_value(isotropic_textures[material_idx], rec.u, rec.v, rec.point)
    return make_ray(rec.point, random_unit_vector(), ray.time), attenuation, 1
