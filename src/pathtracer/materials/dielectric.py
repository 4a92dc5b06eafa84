"""Dielectric (glass-like) material implementation.

This module implements dielectric materials like glass and water that both
reflect and refract light. The ratio between reflection and refraction is
determined by the Fresnel equations (approximated using Schlick's formula).

Key physics:
- Snell's law: n1 * sin(theta1) = n2 * sin(theta2)
- Total internal reflection when sin(theta2) > 1
- Fresnel reflectance increases at grazing angles

An index-matched interface (ior = 1) reflects nothing, so rays pass through
it unchanged.

Example:
    >>> from pathtracer.materials.dielectric import Dielectric
    >>> glass = Dielectric(1.5)
    >>> bubble = Dielectric(1.0 / 1.5)
"""

import math

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray, make_ray, reflect, refract, schlick_fresnel
from pathtracer.geometry.hittable import HitRecord
from pathtracer.materials.base import Material

# Type alias for 3D vectors
vec3 = tm.vec3


def check_ior(ior: float) -> float:
    """Validate an index of refraction.

    Raises:
        ValueError: If the index is not a positive finite number.
    """
    if not (math.isfinite(ior) and ior > 0.0):
        raise ValueError(
            f"Index of refraction = {ior} must be a positive finite number."
        )
    return float(ior)


class Dielectric(Material):
    """Clear refractive material.

    Args:
        ior: Index of refraction relative to the surrounding medium. Values
            below 1 model a bubble of lighter medium.

    Raises:
        ValueError: If ior is not positive.
    """

    def __init__(self, ior: float = 1.5) -> None:
        self.ior = check_ior(ior)

    def __repr__(self) -> str:
        return f"Dielectric(ior={self.ior})"


@ti.func
def fresnel_reflectance(cos_theta: ti.f32, refraction_ratio: ti.f32) -> ti.f32:
    """Schlick reflectance of an interface, zero when indices match.

    Args:
        cos_theta: Cosine of the incident angle.
        refraction_ratio: Ratio of refractive indices (n1/n2).

    Returns:
        The probability of reflection in [0, 1].
    """
    reflectance = 0.0
    if refraction_ratio != 1.0:
        reflectance = schlick_fresnel(cos_theta, refraction_ratio)
    return reflectance


@ti.func
def scatter_dielectric(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
):
    """Compute scattered ray direction for dielectric material.

    Args:
        ior: Index of refraction of the material.
        incident_direction: The incoming ray direction (any length).
        normal: The surface normal (normalized, facing the incident ray).
        front_face: 1 if ray is hitting the outside of the surface,
            0 if ray is inside the material hitting from within.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter) where:
        - scattered_direction: The reflected or refracted unit direction.
        - attenuation: The color attenuation (white for clear glass).
        - did_scatter: Always 1 for dielectrics (they always scatter).
    """
    # Dielectrics don't absorb light - attenuation is white
    attenuation = vec3(1.0, 1.0, 1.0)

    # If hitting from outside (front_face=1): eta = 1/ior (air to glass)
    # If hitting from inside (front_face=0): eta = ior (glass to air)
    refraction_ratio = 1.0 / ior
    if front_face == 0:
        refraction_ratio = ior

    unit_direction = tm.normalize(incident_direction)
    cos_theta = tm.min(-tm.dot(unit_direction, normal), 1.0)
    sin_theta = tm.sqrt(tm.max(0.0, 1.0 - cos_theta * cos_theta))

    # Total internal reflection: sin(theta_t) = (n1/n2) * sin(theta_i) > 1
    cannot_refract = refraction_ratio * sin_theta > 1.0

    scattered_direction = vec3(0.0, 0.0, 0.0)
    if cannot_refract or fresnel_reflectance(cos_theta, refraction_ratio) > ti.random(ti.f32):
        scattered_direction = reflect(unit_direction, normal)
    else:
        scattered_direction = refract(unit_direction, normal, refraction_ratio)

    scattered_direction = tm.normalize(scattered_direction)

    return scattered_direction, attenuation, 1


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of dielectric materials in the scene
MAX_DIELECTRIC_MATERIALS = 256

# Storage for dielectric material properties
dielectric_iors = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials.

    Resets the material count to zero. Existing data in the field will be
    overwritten when new materials are added.
    """
    num_dielectric_materials[None] = 0


def add_dielectric_material(ior: float = 1.5) -> int:
    """Add a dielectric material to the material registry.

    Args:
        ior: Index of refraction. Default is 1.5 (typical glass).
            Common values:
            - Air: 1.0
            - Water: 1.33
            - Glass: 1.5
            - Diamond: 2.4

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If IOR is not positive.
    """
    ior = check_ior(ior)

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_iors[idx] = ior
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def scatter_dielectric_by_id(material_idx: ti.i32, ray: Ray, rec: HitRecord):
    """Scatter a ray through a dielectric surface by registry index.

    Args:
        material_idx: The index of the material in the registry.
        ray: The incoming ray.
        rec: The surface hit.

    Returns:
        A tuple of (scattered_ray, attenuation, did_scatter).
    """
    direction, attenuation, did_scatter = scatter_dielectric(
        dielectric_iors[material_idx], ray.direction, rec.normal, rec.front_face
    )
    return make_ray(rec.point, direction, ray.time), attenuation, did_scatter
