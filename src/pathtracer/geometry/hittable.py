"""Intersectable entity interface and the shared hit record.

Scene entities are described on the host by :class:`Hittable` subclasses.
The only capability the host needs from them is a bounding-box query; the
ray intersection itself runs on the device over the flattened scene tables
(see :mod:`pathtracer.scene.intersection`), and every device intersection
routine produces a :class:`HitRecord`.
"""

import abc

import taichi as ti
import taichi.math as tm

from pathtracer.core.aabb import AABB

vec3 = tm.vec3


@ti.dataclass
class HitRecord:
    """Record of a ray-surface intersection.

    Attributes:
        hit: Whether the ray intersected a surface (1 if hit, 0 if miss).
        t: The parameter value along the ray where intersection occurred.
        point: The 3D point where the ray intersected the surface.
        normal: The unit surface normal, always facing against the ray.
        u: First surface coordinate for texturing, in [0, 1].
        v: Second surface coordinate for texturing, in [0, 1].
        front_face: 1 if the ray arrived from the outward side, 0 otherwise.
        material_id: Unified material handle of the surface (-1 on miss).

    All fields other than ``hit`` are only meaningful when ``hit == 1``.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    u: ti.f32
    v: ti.f32
    front_face: ti.i32
    material_id: ti.i32


@ti.func
def make_miss_record() -> HitRecord:
    """Create a HitRecord indicating no intersection."""
    return HitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        u=0.0,
        v=0.0,
        front_face=0,
        material_id=-1,
    )


@ti.func
def face_normal(ray_direction: vec3, outward_normal: vec3):
    """Orient an outward normal against the incoming ray.

    Args:
        ray_direction: Direction of the incoming ray.
        outward_normal: Unit normal pointing out of the surface.

    Returns:
        A tuple (normal, front_face) where normal faces the ray origin and
        front_face is 1 when the ray hit the outward side.
    """
    front_face = 0
    normal = -outward_normal
    if tm.dot(ray_direction, outward_normal) < 0.0:
        front_face = 1
        normal = outward_normal
    return normal, front_face


class Hittable(abc.ABC):
    """Host-side description of an intersectable entity."""

    @abc.abstractmethod
    def bounding_box(self, time0: float, time1: float) -> AABB | None:
        """Return the box enclosing the entity over [time0, time1].

        Returns ``None`` when the entity has no finite extent (for instance an
        empty aggregate).
        """
