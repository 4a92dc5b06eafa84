"""Axis-aligned bounding boxes.

The host-side :class:`AABB` is used while assembling the scene (bounding-box
queries, unions, transformed envelopes, BVH construction). The device-side
:func:`hit_aabb` performs the same slab test inside Taichi kernels during
BVH traversal.

Both implementations divide by the ray direction without guarding against
zero components: IEEE arithmetic produces +/-inf (or NaN for a ray lying in
a slab plane), and the comparisons below treat those values correctly.

Example:
    >>> from pathtracer.core.aabb import AABB, surrounding_box
    >>> a = AABB((0, 0, 0), (1, 1, 1))
    >>> b = AABB((2, 0, 0), (3, 1, 1))
    >>> surrounding_box(a, b).maximum.tolist()
    [3.0, 1.0, 1.0]
"""

from collections.abc import Sequence

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray

vec3 = tm.vec3

# Minimum thickness enforced on every axis of a box
AABB_PADDING = 1e-4


class AABB:
    """An axis-aligned box given by its minimum and maximum corners.

    Attributes:
        minimum: Component-wise minimum corner as a float64 array of shape (3,).
        maximum: Component-wise maximum corner as a float64 array of shape (3,).
    """

    __slots__ = ("minimum", "maximum")

    def __init__(self, minimum: Sequence[float], maximum: Sequence[float]) -> None:
        self.minimum = np.asarray(minimum, dtype=np.float64).reshape(3)
        self.maximum = np.asarray(maximum, dtype=np.float64).reshape(3)

    def __repr__(self) -> str:
        return f"AABB(minimum={self.minimum.tolist()}, maximum={self.maximum.tolist()})"

    def hit(
        self,
        origin: Sequence[float],
        direction: Sequence[float],
        t_min: float,
        t_max: float,
    ) -> bool:
        """Slab test of a ray against the box over the interval [t_min, t_max].

        Args:
            origin: Ray origin.
            direction: Ray direction (components may be zero).
            t_min: Lower bound of the parametric interval.
            t_max: Upper bound of the parametric interval.

        Returns:
            True if the ray overlaps the box somewhere inside the interval.
        """
        origin = np.asarray(origin, dtype=np.float64)
        direction = np.asarray(direction, dtype=np.float64)
        with np.errstate(divide="ignore", invalid="ignore"):
            inv_d = 1.0 / direction
            t0s = (self.minimum - origin) * inv_d
            t1s = (self.maximum - origin) * inv_d
        for axis in range(3):
            t0, t1 = t0s[axis], t1s[axis]
            if inv_d[axis] < 0.0:
                t0, t1 = t1, t0
            t_min = t0 if t0 > t_min else t_min
            t_max = t1 if t1 < t_max else t_max
            if t_max <= t_min:
                return False
        return True

    def union(self, other: "AABB") -> "AABB":
        """Return the smallest box enclosing this box and ``other``."""
        return surrounding_box(self, other)

    def contains(self, other: "AABB") -> bool:
        """Check whether ``other`` lies entirely inside this box."""
        return bool(
            np.all(self.minimum <= other.minimum) and np.all(other.maximum <= self.maximum)
        )

    def padded(self, delta: float = AABB_PADDING) -> "AABB":
        """Return a copy whose every axis is at least ``delta`` thick.

        Axes that are already thick enough are left untouched; thinner axes
        are grown symmetrically around their midpoint.
        """
        minimum = self.minimum.copy()
        maximum = self.maximum.copy()
        thin = (maximum - minimum) < delta
        mid = 0.5 * (minimum + maximum)
        minimum[thin] = mid[thin] - 0.5 * delta
        maximum[thin] = mid[thin] + 0.5 * delta
        return AABB(minimum, maximum)

    def corners(self) -> npt.NDArray[np.float64]:
        """Return the 8 corners of the box as an array of shape (8, 3)."""
        xs = (self.minimum[0], self.maximum[0])
        ys = (self.minimum[1], self.maximum[1])
        zs = (self.minimum[2], self.maximum[2])
        return np.array([(x, y, z) for x in xs for y in ys for z in zs], dtype=np.float64)

    def transformed(
        self,
        linear: npt.ArrayLike,
        offset: npt.ArrayLike = (0.0, 0.0, 0.0),
    ) -> "AABB":
        """Envelope of the box's corners mapped by ``linear @ p + offset``."""
        mapped = self.corners() @ np.asarray(linear, dtype=np.float64).T
        mapped += np.asarray(offset, dtype=np.float64)
        return AABB(mapped.min(axis=0), mapped.max(axis=0))


def surrounding_box(box0: AABB, box1: AABB) -> AABB:
    """Return the axis-wise min/max envelope of two boxes."""
    return AABB(np.minimum(box0.minimum, box1.minimum), np.maximum(box0.maximum, box1.maximum))


@ti.func
def hit_aabb(box_min: vec3, box_max: vec3, ray: Ray, t_min: ti.f32, t_max: ti.f32) -> ti.i32:
    """Slab test of a ray against a box inside a Taichi kernel.

    Narrows [t_min, t_max] axis by axis and rejects as soon as the interval
    becomes empty.

    Args:
        box_min: Minimum corner of the box.
        box_max: Maximum corner of the box.
        ray: The ray to test.
        t_min: Lower bound of the parametric interval.
        t_max: Upper bound of the parametric interval.

    Returns:
        1 if the ray overlaps the box inside the interval, 0 otherwise.
    """
    lo = t_min
    hi = t_max
    result = 1
    for a in ti.static(range(3)):
        inv_d = 1.0 / ray.direction[a]
        t0 = (box_min[a] - ray.origin[a]) * inv_d
        t1 = (box_max[a] - ray.origin[a]) * inv_d
        if inv_d < 0.0:
            swap = t0
            t0 = t1
            t1 = swap
        if t0 > lo:
            lo = t0
        if t1 < hi:
            hi = t1
        if hi <= lo:
            result = 0
    return result
