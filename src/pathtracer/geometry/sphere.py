"""Sphere primitives with robust ray-sphere intersection.

This module provides the host-side :class:`Sphere` and :class:`MovingSphere`
descriptions and the device function :func:`hit_sphere` used for both (a
moving sphere is a sphere whose centre is evaluated at the ray's time).

The intersection uses the robust quadratic formula from Ray Tracing Gems to
avoid catastrophic cancellation when b^2 is nearly equal to 4ac.

A negative radius is accepted and produces a hollow shell: the outward
normal ``(p - center) / radius`` points inward, so nested inside a regular
sphere of the same material it models a bubble.

Example:
    >>> from pathtracer.geometry.sphere import Sphere
    >>> from pathtracer.materials.lambertian import Lambertian
    >>> ball = Sphere((0.0, 0.0, -1.0), 0.5, Lambertian((0.5, 0.5, 0.5)))
    >>> ball.bounding_box(0.0, 1.0).maximum.tolist()
    [0.5, 0.5, -0.5]
"""

import math
from collections.abc import Sequence
from typing import TYPE_CHECKING

import numpy as np
import taichi as ti
import taichi.math as tm

from pathtracer.core.aabb import AABB, surrounding_box
from pathtracer.core.errors import GeometryError
from pathtracer.core.ray import Ray, ray_at
from pathtracer.geometry.hittable import HitRecord, Hittable, face_normal, make_miss_record

if TYPE_CHECKING:
    from pathtracer.materials.base import Material

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


def _check_radius(radius: float) -> float:
    radius = float(radius)
    if radius == 0.0 or not math.isfinite(radius):
        raise GeometryError(f"Sphere radius = {radius} must be finite and non-zero")
    return radius


class Sphere(Hittable):
    """A static sphere.

    Attributes:
        center: Centre of the sphere.
        radius: Radius; negative values flip the outward normal.
        material: Material shared by the whole surface.
    """

    def __init__(self, center: Sequence[float], radius: float, material: "Material") -> None:
        self.center = np.asarray(center, dtype=np.float64).reshape(3)
        self.radius = _check_radius(radius)
        self.material = material

    def __repr__(self) -> str:
        return f"Sphere(center={self.center.tolist()}, radius={self.radius})"

    def bounding_box(self, time0: float, time1: float) -> AABB:
        extent = np.full(3, abs(self.radius))
        return AABB(self.center - extent, self.center + extent)


class MovingSphere(Hittable):
    """A sphere whose centre moves linearly between two keyframes.

    The centre is ``center0`` at ``time0`` and ``center1`` at ``time1`` and is
    linearly interpolated (and extrapolated) in between. A zero-length time
    interval keeps the centre fixed at ``center0``.
    """

    def __init__(
        self,
        center0: Sequence[float],
        center1: Sequence[float],
        time0: float,
        time1: float,
        radius: float,
        material: "Material",
    ) -> None:
        if time1 < time0:
            raise GeometryError(f"MovingSphere time interval [{time0}, {time1}] is inverted")
        self.center0 = np.asarray(center0, dtype=np.float64).reshape(3)
        self.center1 = np.asarray(center1, dtype=np.float64).reshape(3)
        self.time0 = float(time0)
        self.time1 = float(time1)
        self.radius = _check_radius(radius)
        self.material = material

    def __repr__(self) -> str:
        return (
            f"MovingSphere(center0={self.center0.tolist()}, center1={self.center1.tolist()}, "
            f"time=[{self.time0}, {self.time1}], radius={self.radius})"
        )

    def center(self, time: float) -> np.ndarray:
        """Centre of the sphere at ``time``."""
        span = self.time1 - self.time0
        if span == 0.0:
            return self.center0.copy()
        return self.center0 + ((time - self.time0) / span) * (self.center1 - self.center0)

    def bounding_box(self, time0: float, time1: float) -> AABB:
        extent = np.full(3, abs(self.radius))
        box0 = AABB(self.center(time0) - extent, self.center(time0) + extent)
        box1 = AABB(self.center(time1) - extent, self.center(time1) + extent)
        return surrounding_box(box0, box1)


# =============================================================================
# Device-side intersection
# =============================================================================


@ti.func
def moving_center(
    center0: vec3, center1: vec3, time0: ti.f32, time1: ti.f32, time: ti.f32
) -> vec3:
    """Evaluate a keyframed sphere centre at ``time``.

    Args:
        center0: Centre at time0.
        center1: Centre at time1.
        time0: Start of the keyframe interval.
        time1: End of the keyframe interval.
        time: Query time (the ray's time).

    Returns:
        The interpolated centre, or center0 for a zero-length interval.
    """
    result = center0
    span = time1 - time0
    if span != 0.0:
        result = center0 + ((time - time0) / span) * (center1 - center0)
    return result


@ti.func
def sphere_uv(p: vec3):
    """Map a point on the unit sphere to (u, v) surface coordinates.

    u follows the angle around the Y axis starting at X=-1, v the angle from
    Y=-1 to Y=+1.

    Args:
        p: A unit-length point (the outward normal at the hit).

    Returns:
        A tuple (u, v), both in [0, 1].
    """
    theta = ti.acos(tm.clamp(-p.y, -1.0, 1.0))
    phi = ti.atan2(-p.z, p.x) + tm.pi
    return phi / (2.0 * tm.pi), theta / tm.pi


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve quadratic equation using robust formula from Ray Tracing Gems.

    Solves a*t^2 + 2*h*t + c = 0 using a numerically stable method.

    Args:
        h: Half of the linear coefficient.
        a: Quadratic coefficient.
        c: Constant term.
        sqrt_d: Square root of discriminant (h^2 - a*c).

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    # Robust quadratic formula: use sign of h to avoid catastrophic cancellation
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0

    if ti.abs(q) < 1e-10:
        # Fall back to standard formula for edge cases
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def hit_sphere(
    ray: Ray,
    center: vec3,
    radius: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-sphere intersection.

    The intersection is found by solving |O + tD - C|^2 = r^2, rewritten as
    a*t^2 + 2*h*t + c = 0 with a = D.D, h = D.(O - C), c = |O - C|^2 - r^2.
    The nearer root inside [t_min, t_max] wins; otherwise the farther root
    is tried.

    Args:
        ray: The incoming ray.
        center: Centre of the sphere at the ray's time.
        radius: Radius of the sphere (may be negative).
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        A HitRecord; material_id is left at -1 for the caller to fill in.
    """
    oc = ray.origin - center

    a = tm.dot(ray.direction, ray.direction)
    h = tm.dot(ray.direction, oc)
    c = tm.dot(oc, oc) - radius * radius

    discriminant = h * h - a * c

    record = make_miss_record()

    if discriminant >= 0.0 and a > 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t0, t1 = _solve_quadratic_robust(h, a, c, sqrt_d)

        t = t0
        valid = t_min <= t and t <= t_max
        if not valid:
            t = t1
            valid = t_min <= t and t <= t_max

        if valid:
            point = ray_at(ray, t)
            outward_normal = (point - center) / radius
            normal, front_face = face_normal(ray.direction, outward_normal)
            u, v = sphere_uv(outward_normal)
            record.hit = 1
            record.t = t
            record.point = point
            record.normal = normal
            record.u = u
            record.v = v
            record.front_face = front_face

    return record
