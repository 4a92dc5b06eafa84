"""Axis-aligned rectangle primitives.

A rectangle lies in a plane perpendicular to one coordinate axis at offset
``k`` and spans ``[a0, a1] x [b0, b1]`` along the two remaining axes. The
three orientations share one device intersection routine, :func:`hit_rect`,
parameterized by the fixed axis:

========  ==========  ===========  =========
class     fixed axis  in-plane a   in-plane b
========  ==========  ===========  =========
XYRect    z (2)       x (0)        y (1)
XZRect    y (1)       x (0)        z (2)
YZRect    x (0)       y (1)        z (2)
========  ==========  ===========  =========

The outward normal is always the positive fixed axis; surface coordinates
are the fractional position inside the rectangle.

Example:
    >>> from pathtracer.geometry.rect import XZRect
    >>> from pathtracer.materials.diffuse_light import DiffuseLight
    >>> light = XZRect(213, 343, 227, 332, 554, DiffuseLight((15, 15, 15)))
"""

from typing import TYPE_CHECKING

import numpy as np
import taichi as ti
import taichi.math as tm

from pathtracer.core.aabb import AABB, AABB_PADDING
from pathtracer.core.errors import GeometryError
from pathtracer.core.ray import Ray, ray_at, vec3_component
from pathtracer.geometry.hittable import HitRecord, Hittable, face_normal, make_miss_record

if TYPE_CHECKING:
    from pathtracer.materials.base import Material

vec3 = tm.vec3
vec4 = tm.vec4

# In-plane axes for each fixed axis
PLANE_AXES = {0: (1, 2), 1: (0, 2), 2: (0, 1)}


class AxisAlignedRect(Hittable):
    """Rectangle perpendicular to ``axis`` at offset ``k``.

    Prefer the :class:`XYRect`, :class:`XZRect` and :class:`YZRect`
    constructors, which take their bounds in the conventional order.

    Attributes:
        axis: Index of the fixed axis (0 = x, 1 = y, 2 = z).
        a0, a1: Bounds along the first in-plane axis.
        b0, b1: Bounds along the second in-plane axis.
        k: Plane offset along the fixed axis.
        material: Surface material.
    """

    def __init__(
        self,
        axis: int,
        a0: float,
        a1: float,
        b0: float,
        b1: float,
        k: float,
        material: "Material",
    ) -> None:
        if axis not in PLANE_AXES:
            raise GeometryError(f"Rectangle axis = {axis} must be 0, 1 or 2")
        if not (a0 < a1 and b0 < b1):
            raise GeometryError(
                f"Rectangle bounds [{a0}, {a1}] x [{b0}, {b1}] must be strictly increasing"
            )
        self.axis = axis
        self.a0 = float(a0)
        self.a1 = float(a1)
        self.b0 = float(b0)
        self.b1 = float(b1)
        self.k = float(k)
        self.material = material

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(a=[{self.a0}, {self.a1}], b=[{self.b0}, {self.b1}], "
            f"k={self.k})"
        )

    def bounding_box(self, time0: float, time1: float) -> AABB:
        a_axis, b_axis = PLANE_AXES[self.axis]
        minimum = np.zeros(3)
        maximum = np.zeros(3)
        minimum[a_axis], maximum[a_axis] = self.a0, self.a1
        minimum[b_axis], maximum[b_axis] = self.b0, self.b1
        minimum[self.axis] = self.k - AABB_PADDING
        maximum[self.axis] = self.k + AABB_PADDING
        return AABB(minimum, maximum)


class XYRect(AxisAlignedRect):
    """Rectangle in the plane z = k."""

    def __init__(self, x0, x1, y0, y1, k, material):
        super().__init__(2, x0, x1, y0, y1, k, material)


class XZRect(AxisAlignedRect):
    """Rectangle in the plane y = k."""

    def __init__(self, x0, x1, z0, z1, k, material):
        super().__init__(1, x0, x1, z0, z1, k, material)


class YZRect(AxisAlignedRect):
    """Rectangle in the plane x = k."""

    def __init__(self, y0, y1, z0, z1, k, material):
        super().__init__(0, y0, y1, z0, z1, k, material)


@ti.func
def _axis_unit(axis: ti.i32) -> vec3:
    result = vec3(1.0, 0.0, 0.0)
    if axis == 1:
        result = vec3(0.0, 1.0, 0.0)
    elif axis == 2:
        result = vec3(0.0, 0.0, 1.0)
    return result


@ti.func
def hit_rect(
    ray: Ray,
    axis: ti.i32,
    bounds: vec4,
    k: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-rectangle intersection.

    1. Compute where the ray crosses the plane ``axis = k``
    2. Reject crossings outside [t_min, t_max] (a ray parallel to the plane
       produces inf or NaN here and is rejected too)
    3. Check the two in-plane coordinates against the bounds

    Args:
        ray: The incoming ray.
        axis: Index of the fixed axis (0 = x, 1 = y, 2 = z).
        bounds: In-plane bounds packed as (a0, a1, b0, b1).
        k: Plane offset along the fixed axis.
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        A HitRecord; material_id is left at -1 for the caller to fill in.
    """
    record = make_miss_record()

    a_axis = 0
    b_axis = 1
    if axis == 0:
        a_axis = 1
        b_axis = 2
    elif axis == 1:
        b_axis = 2

    t = (k - vec3_component(ray.origin, axis)) / vec3_component(ray.direction, axis)

    if t_min <= t and t <= t_max:
        point = ray_at(ray, t)
        a = vec3_component(point, a_axis)
        b = vec3_component(point, b_axis)
        if bounds[0] <= a and a <= bounds[1] and bounds[2] <= b and b <= bounds[3]:
            normal, front_face = face_normal(ray.direction, _axis_unit(axis))
            record.hit = 1
            record.t = t
            record.point = point
            record.normal = normal
            record.u = (a - bounds[0]) / (bounds[1] - bounds[0])
            record.v = (b - bounds[2]) / (bounds[3] - bounds[2])
            record.front_face = front_face

    return record
