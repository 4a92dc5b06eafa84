"""Ray data structure and vector utilities for Taichi path tracing.

This module provides the fundamental Ray dataclass and the vector and
random-sampling helpers shared by geometry, materials and the integrator.
All ``@ti.func`` helpers are meant to be called from inside Taichi kernels.

A ray carries a time value in addition to its origin and direction so that
moving primitives can be evaluated at the instant the ray was emitted by the
camera shutter (motion blur).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.core.ray import Ray, make_ray, ray_at, vec3
    >>> @ti.kernel
    ... def point_along_ray() -> vec3:
    ...     ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, -1.0), 0.0)
    ...     return ray_at(ray, 5.0)
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Ray:
    """A ray with an origin point, direction vector and emission time.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Not required to be
            unit length; intersection code accounts for its magnitude.
        time: The shutter time at which the ray exists, used by moving
            primitives.
    """

    origin: vec3
    direction: vec3
    time: ti.f32


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3, time: ti.f32) -> Ray:
    """Create a ray from origin, direction and time.

    Args:
        origin: The starting point of the ray.
        direction: The direction vector.
        time: The shutter time of the ray.

    Returns:
        A new Ray instance.
    """
    return Ray(origin=origin, direction=direction, time=time)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector.

    Args:
        v: The input vector.

    Returns:
        The squared Euclidean length of the vector.
    """
    return tm.dot(v, v)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The reflected direction vector.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(incident: vec3, normal: vec3, eta: ti.f32) -> vec3:
    """Refract an incident vector through a surface.

    Computes the refracted direction using Snell's law. If total internal
    reflection occurs, returns a zero vector.

    Args:
        incident: The incoming direction vector (should be normalized).
        normal: The surface normal on the incident side (normalized).
        eta: The ratio of refractive indices (n_incident / n_transmitted).

    Returns:
        The refracted direction vector, or zero vector if total internal
        reflection occurs.
    """
    cos_i = tm.min(-tm.dot(incident, normal), 1.0)
    sin2_t = eta * eta * (1.0 - cos_i * cos_i)
    result = vec3(0.0, 0.0, 0.0)
    if sin2_t <= 1.0:
        cos_t = ti.sqrt(1.0 - sin2_t)
        result = eta * incident + (eta * cos_i - cos_t) * normal
    return result


@ti.func
def schlick_fresnel(cosine: ti.f32, ref_idx: ti.f32) -> ti.f32:
    """Compute Fresnel reflectance using Schlick's approximation.

    Args:
        cosine: Cosine of the angle between incident direction and normal.
        ref_idx: Ratio of refractive indices.

    Returns:
        The approximate Fresnel reflectance coefficient.
    """
    r0 = ((1.0 - ref_idx) / (1.0 + ref_idx)) ** 2
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Check if a vector is near zero in all components.

    Args:
        v: The vector to check.

    Returns:
        1 if all components are near zero, 0 otherwise.
    """
    s = 1e-8
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


@ti.func
def vec3_component(v: vec3, axis: ti.i32) -> ti.f32:
    """Select the x, y or z component of a vector by runtime axis index."""
    result = v.x
    if axis == 1:
        result = v.y
    elif axis == 2:
        result = v.z
    return result


# =============================================================================
# Random Sampling Utilities for Monte Carlo
# =============================================================================


@ti.func
def random_in_unit_sphere() -> vec3:
    """Generate a random point inside the unit sphere.

    Uses rejection sampling to generate uniformly distributed points
    within the unit sphere.

    Returns:
        A random point with length < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = False
    # Rejection sampling loop
    for _ in range(100):  # Max iterations to avoid infinite loops
        if not found:
            p = vec3(
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
            )
            if length_squared(p) < 1.0:
                found = True
    return p


@ti.func
def random_unit_vector() -> vec3:
    """Generate a random unit vector uniformly distributed on the sphere.

    Samples the height uniformly in [-1, 1] and the azimuth uniformly in
    [0, 2*pi), which is area-uniform on the sphere and never degenerate.

    Returns:
        A random unit vector.
    """
    z = 2.0 * ti.random(ti.f32) - 1.0
    phi = 2.0 * tm.pi * ti.random(ti.f32)
    r = ti.sqrt(tm.max(0.0, 1.0 - z * z))
    return vec3(r * ti.cos(phi), r * ti.sin(phi), z)


@ti.func
def random_in_unit_disk() -> vec3:
    """Generate a random point inside the unit disk in the xy-plane.

    Used for thin-lens depth-of-field sampling.

    Returns:
        A random point (x, y, 0) with x^2 + y^2 < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = False
    # Rejection sampling loop
    for _ in range(100):  # Max iterations to avoid infinite loops
        if not found:
            p = vec3(
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
                0.0,
            )
            if p.x * p.x + p.y * p.y < 1.0:
                found = True
    return p
