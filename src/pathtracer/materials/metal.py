"""Metal (specular reflective) material implementation.

This module implements specular reflection with an optional fuzz radius.
Perfect metals (fuzz=0) produce mirror-like reflections, while fuzzier
metals perturb the mirror direction by a random point inside a sphere of
radius ``fuzz``.

The reflection formula is:
    R = I - 2(I . N)N

where I is the unit incident direction and N is the surface normal.

Example:
    >>> from pathtracer.materials.metal import Metal
    >>> brushed = Metal((0.7, 0.6, 0.5), fuzz=0.3)
"""

from collections.abc import Sequence

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray, make_ray, random_in_unit_sphere, reflect
from pathtracer.geometry.hittable import HitRecord
from pathtracer.materials.base import Material, check_albedo

# Type alias for 3D vectors
vec3 = tm.vec3


def check_fuzz(fuzz: float) -> float:
    """Validate a fuzz radius.

    Raises:
        ValueError: If fuzz is outside [0, 1].
    """
    if not (0.0 <= fuzz <= 1.0):
        raise ValueError(
            f"Fuzz = {fuzz} is outside [0, 1]. "
            "Fuzz must be between 0 (perfect mirror) and 1 (maximum fuzz)."
        )
    return float(fuzz)


class Metal(Material):
    """Reflective material.

    Args:
        albedo: Reflective tint, each component in [0, 1].
        fuzz: Radius of the reflection perturbation in [0, 1].

    Raises:
        ValueError: If the albedo or fuzz is out of range.
    """

    def __init__(self, albedo: Sequence[float], fuzz: float = 0.0) -> None:
        self.albedo = check_albedo(albedo)
        self.fuzz = check_fuzz(fuzz)

    def __repr__(self) -> str:
        return f"Metal({self.albedo.tolist()}, fuzz={self.fuzz})"


@ti.func
def scatter_metal(
    albedo: vec3,
    fuzz: ti.f32,
    incident_direction: vec3,
    normal: vec3,
):
    """Compute scattered ray direction for metal material.

    Reflects the unit incident direction about the surface normal, then
    perturbs the reflected direction by the fuzz. The ray is absorbed if
    the scattered direction ends up below the surface.

    Args:
        albedo: The reflective color (RGB, each component in [0, 1]).
        fuzz: The perturbation radius in [0, 1]. 0 = perfect mirror.
        incident_direction: The incoming ray direction (any length).
        normal: The surface normal (should be normalized).

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter) where:
        - scattered_direction: The perturbed reflected direction.
        - attenuation: The color attenuation (equals albedo for metals).
        - did_scatter: 1 if the ray scattered above surface, 0 if absorbed.
    """
    reflected = reflect(tm.normalize(incident_direction), normal)
    scattered_direction = reflected + fuzz * random_in_unit_sphere()

    did_scatter = 1
    if tm.dot(scattered_direction, normal) <= 0.0:
        did_scatter = 0

    return scattered_direction, albedo, did_scatter


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of metal materials in the scene
MAX_METAL_MATERIALS = 1024

# Storage for metal material properties
metal_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_METAL_MATERIALS)
metal_fuzzes = ti.field(dtype=ti.f32, shape=MAX_METAL_MATERIALS)
num_metal_materials = ti.field(dtype=ti.i32, shape=())


def clear_metal_materials() -> None:
    """Clear all metal materials.

    Resets the material count to zero. Existing data in the field will be
    overwritten when new materials are added.
    """
    num_metal_materials[None] = 0


def add_metal_material(
    albedo: tuple[float, float, float],
    fuzz: float = 0.0,
) -> int:
    """Add a metal material to the material registry.

    Args:
        albedo: The reflective color as (R, G, B) tuple.
            Each component should be in [0, 1].
        fuzz: The perturbation radius in [0, 1]. Default is 0 (perfect mirror).

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any albedo component is outside [0, 1].
        ValueError: If fuzz is outside [0, 1].
    """
    albedo = check_albedo(albedo)
    fuzz = check_fuzz(fuzz)

    idx = num_metal_materials[None]
    if idx >= MAX_METAL_MATERIALS:
        raise RuntimeError(
            f"Maximum number of metal materials ({MAX_METAL_MATERIALS}) exceeded"
        )

    metal_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    metal_fuzzes[idx] = fuzz
    num_metal_materials[None] = idx + 1
    return idx


def get_metal_material_count() -> int:
    """Get the number of metal materials in the registry."""
    return int(num_metal_materials[None])


@ti.func
def scatter_metal_by_id(material_idx: ti.i32, ray: Ray, rec: HitRecord):
    """Scatter a ray off a metal surface by registry index.

    Args:
        material_idx: The index of the material in the registry.
        ray: The incoming ray.
        rec: The surface hit.

    Returns:
        A tuple of (scattered_ray, attenuation, did_scatter).
    """
    direction, attenuation, did_scatter = scatter_metal(
        metal_albedos[material_idx], metal_fuzzes[material_idx], ray.direction, rec.normal
    )
    return make_ray(rec.point, direction, ray.time), attenuation, did_scatter
