"""Lambertian (ideal diffuse) material implementation.

The scattered direction is the surface normal plus a uniformly distributed
random unit vector, which yields a cosine-weighted distribution about the
normal. The attenuation is the albedo texture evaluated at the hit.

Example:
    >>> from pathtracer.materials.lambertian import Lambertian
    >>> from pathtracer.textures.texture import CheckerTexture
    >>> ground = Lambertian(CheckerTexture((0.2, 0.3, 0.1), (0.9, 0.9, 0.9)))
    >>> matte = Lambertian((0.5, 0.5, 0.5))
"""

from collections.abc import Sequence

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray, make_ray, near_zero, random_unit_vector
from pathtracer.geometry.hittable import HitRecord
from pathtracer.materials.base import Material, albedo_texture
from pathtracer.textures.registry import texture_value
from pathtracer.textures.texture import Texture

# Type alias for 3D vectors
vec3 = tm.vec3


class Lambertian(Material):
    """Diffuse material.

    Args:
        albedo: Reflectance texture, or an RGB colour with components in
            [0, 1].

    Raises:
        ValueError: If a colour component is outside [0, 1].
    """

    def __init__(self, albedo: Texture | Sequence[float]) -> None:
        self.albedo = albedo_texture(albedo)

    def __repr__(self) -> str:
        return f"Lambertian({self.albedo!r})"


@ti.func
def scatter_lambertian_direction(normal: vec3) -> vec3:
    """Sample a diffuse bounce direction about ``normal``.

    Args:
        normal: The unit surface normal at the hit point.

    Returns:
        The normalized scattered direction. When the random offset almost
        cancels the normal, the normal itself is returned.
    """
    direction = normal + random_unit_vector()

    # Catch degenerate scatter direction
    if near_zero(direction):
        direction = normal

    return tm.normalize(direction)


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of Lambertian materials in the scene
MAX_LAMBERTIAN_MATERIALS = 1024

# Texture id of each Lambertian material's albedo
lambertian_textures = ti.field(dtype=ti.i32, shape=MAX_LAMBERTIAN_MATERIALS)
num_lambertian_materials = ti.field(dtype=ti.i32, shape=())


def clear_lambertian_materials() -> None:
    """Clear all Lambertian materials.

    Resets the material count to zero. Existing data in the field will be
    overwritten when new materials are added.
    """
    num_lambertian_materials[None] = 0


def add_lambertian_material(texture_id: int) -> int:
    """Add a Lambertian material to the material registry.

    Args:
        texture_id: Registered texture id of the albedo.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
    """
    idx = num_lambertian_materials[None]
    if idx >= MAX_LAMBERTIAN_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Lambertian materials ({MAX_LAMBERTIAN_MATERIALS}) exceeded"
        )

    lambertian_textures[idx] = texture_id
    num_lambertian_materials[None] = idx + 1
    return idx


def get_lambertian_material_count() -> int:
    """Get the number of Lambertian materials in the registry."""
    return int(num_lambertian_materials[None])


@ti.func
def scatter_lambertian_by_id(material_idx: ti.i32, ray: Ray, rec: HitRecord):
    """Scatter a ray off a Lambertian surface by registry index.

    Args:
        material_idx: The index of the material in the registry.
        ray: The incoming ray (only its time is carried over).
        rec: The surface hit.

    Returns:
        A tuple of (scattered_ray, attenuation, did_scatter); diffuse
        surfaces always scatter.
    """
    direction = scatter_lambertian_direction(rec.normal)
    attenuation = texture_value(lambertian_textures[material_idx], rec.u, rec.v, rec.point)
    return make_ray(rec.point, direction, ray.time), attenuation, 1
