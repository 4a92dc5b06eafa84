"""Translate and rotate decorators.

A decorator wraps another entity and re-expresses rays in the child's local
frame. Every decorator here is a rigid motion, so it can be written as the
affine world-to-local map::

    local = A @ world + b        (A orthonormal)

whose inverse is ``world = A.T @ (local - b)``. The scene compiler composes
nested decorators into a single map per primitive, and the device helpers
:func:`to_local_ray` and :func:`to_world_hit` apply it around the child's
intersection routine:

- the ray origin and direction are mapped into local space
- the child is intersected in local space (t is unchanged by a rigid map)
- the hit point and normal are mapped back to world space

Example:
    >>> from pathtracer.geometry.box import Box
    >>> from pathtracer.geometry.transform import RotateY, Translate
    >>> from pathtracer.materials.lambertian import Lambertian
    >>> white = Lambertian((0.73, 0.73, 0.73))
    >>> box = Box((0, 0, 0), (165, 330, 165), white)
    >>> placed = Translate(RotateY(box, 15), (265, 0, 295))
"""

import math
from collections.abc import Sequence

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from pathtracer.core.aabb import AABB
from pathtracer.core.ray import Ray, make_ray
from pathtracer.geometry.hittable import HitRecord, Hittable

vec3 = tm.vec3
mat3 = tm.mat3


class Transform(Hittable):
    """Base class for rigid decorators around a child entity.

    Subclasses define :meth:`world_to_local`; the bounding box is derived
    from it.
    """

    def __init__(self, child: Hittable) -> None:
        self.child = child

    def world_to_local(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """Return ``(A, b)`` such that ``local = A @ world + b``."""
        raise NotImplementedError

    def local_to_world_box(self, box: AABB | None) -> AABB | None:
        """Map a child-space box to the envelope of its world-space image."""
        if box is None:
            return None
        linear, offset = self.world_to_local()
        # world = A.T @ local - A.T @ b
        return box.transformed(linear.T, -(linear.T @ offset))


class Translate(Transform):
    """Displace a child entity by ``offset``."""

    def __init__(self, child: Hittable, offset: Sequence[float]) -> None:
        super().__init__(child)
        self.offset = np.asarray(offset, dtype=np.float64).reshape(3)

    def __repr__(self) -> str:
        return f"Translate({self.child!r}, offset={self.offset.tolist()})"

    def world_to_local(self):
        return np.eye(3), -self.offset

    def bounding_box(self, time0: float, time1: float) -> AABB | None:
        box = self.child.bounding_box(time0, time1)
        if box is None:
            return None
        return AABB(box.minimum + self.offset, box.maximum + self.offset)


def rotation_matrix(axis: int, degrees: float) -> npt.NDArray[np.float64]:
    """Right-handed rotation matrix about a coordinate axis.

    Args:
        axis: 0 = x, 1 = y, 2 = z.
        degrees: Rotation angle in degrees.

    Returns:
        A (3, 3) float64 matrix R such that ``R @ p`` rotates ``p``.
    """
    theta = math.radians(degrees)
    c = math.cos(theta)
    s = math.sin(theta)
    if axis == 0:
        return np.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]])
    if axis == 1:
        return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])
    if axis == 2:
        return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])
    raise ValueError(f"Rotation axis = {axis} must be 0, 1 or 2")


class Rotate(Transform):
    """Rotate a child entity about a coordinate axis through the origin.

    The bounding box is computed once at construction, from the eight
    rotated corners of the child's box over ``[time0, time1]``. A child
    without a box yields a decorator without a box.
    """

    def __init__(
        self,
        child: Hittable,
        axis: int,
        degrees: float,
        time0: float = 0.0,
        time1: float = 1.0,
    ) -> None:
        super().__init__(child)
        self.axis = axis
        self.degrees = float(degrees)
        self.rotation = rotation_matrix(axis, degrees)
        self._box = self.local_to_world_box(child.bounding_box(time0, time1))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.child!r}, axis={self.axis}, degrees={self.degrees})"

    def world_to_local(self):
        return self.rotation.T, np.zeros(3)

    def bounding_box(self, time0: float, time1: float) -> AABB | None:
        return self._box


class RotateY(Rotate):
    """Rotate a child entity about the y axis."""

    def __init__(self, child: Hittable, degrees: float, time0: float = 0.0, time1: float = 1.0):
        super().__init__(child, 1, degrees, time0, time1)


def compose(
    outer: tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]],
    inner: tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]],
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Compose two world-to-local maps, ``outer`` applied first.

    Returns:
        ``(A, b)`` with ``A = A_inner @ A_outer`` and
        ``b = A_inner @ b_outer + b_inner``.
    """
    a_outer, b_outer = outer
    a_inner, b_inner = inner
    return a_inner @ a_outer, a_inner @ b_outer + b_inner


# =============================================================================
# Device-side helpers
# =============================================================================


@ti.func
def to_local_ray(ray: Ray, linear: mat3, offset: vec3) -> Ray:
    """Map a world-space ray into a child's local frame.

    Args:
        ray: World-space ray.
        linear: Orthonormal part A of the world-to-local map.
        offset: Translation part b of the world-to-local map.

    Returns:
        The local-space ray with the same time.
    """
    return make_ray(linear @ ray.origin + offset, linear @ ray.direction, ray.time)


@ti.func
def to_world_hit(record: HitRecord, linear: mat3, offset: vec3) -> HitRecord:
    """Map a local-space hit back to world space.

    The normal keeps its orientation relative to the ray because the map is
    rigid, so front_face carries over unchanged.

    Args:
        record: Hit found in local space.
        linear: Orthonormal part A of the world-to-local map.
        offset: Translation part b of the world-to-local map.

    Returns:
        The world-space hit record.
    """
    result = record
    if record.hit == 1:
        inverse = linear.transpose()
        result.point = inverse @ (record.point - offset)
        result.normal = inverse @ record.normal
    return result
