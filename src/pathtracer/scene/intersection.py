"""Scene-level ray intersection over the flattened device tables.

This module owns the Taichi fields that hold a compiled scene (primitives,
rigid transforms, objects and the threaded BVH) and the device routines
that query them:

- :func:`hit_primitive` intersects one primitive in its local frame
- :func:`hit_surface` returns the nearest hit over a primitive range
- :func:`hit_medium` samples a free-flight distance inside a boundary
- :func:`intersect_bvh` walks the stackless hierarchy
- :func:`intersect_linear` scans every object (the flat aggregate)
- :func:`intersect_scene` picks one of the two

Both traversals report the same nearest surface hit; the linear scan exists
for small scenes and for cross-checking the hierarchy.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.scene.intersection import query_hit
    >>> # after SceneManager().load_world(world)
    >>> rec = query_hit((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
"""

from collections.abc import Sequence
from typing import NamedTuple

import numpy as np
import taichi as ti
import taichi.math as tm

from pathtracer.core.aabb import hit_aabb
from pathtracer.core.ray import Ray, make_ray, ray_at
from pathtracer.geometry.hittable import HitRecord, make_miss_record
from pathtracer.geometry.rect import hit_rect
from pathtracer.geometry.sphere import hit_sphere, moving_center
from pathtracer.geometry.transform import to_local_ray, to_world_hit
from pathtracer.scene.compiler import CompiledScene, ObjectKind, PrimitiveKind

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Nearest hits are searched in [T_MIN, T_INFINITY]
T_MIN = 1e-3
T_INFINITY = 1e10
# Offset of the exit search past the entry point of a medium boundary
MEDIUM_EXIT_EPSILON = 1e-4

# Maximum table sizes
MAX_PRIMITIVES = 8192
MAX_OBJECTS = 8192
MAX_BVH_NODES = 2 * MAX_OBJECTS
MAX_TRANSFORMS = 2048

# Primitive storage: Structure of Arrays layout for GPU efficiency
prim_kinds = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
prim_center0 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_center1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_time0 = ti.field(dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_time1 = ti.field(dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_radii = ti.field(dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_axes = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
# Rectangle bounds packed as (a0, a1, b0, b1)
prim_bounds = ti.Vector.field(4, dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_k = ti.field(dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_material_ids = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
prim_transforms = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
num_primitives = ti.field(dtype=ti.i32, shape=())

# World-to-local maps: local = linear @ world + offset
transform_linear = ti.Matrix.field(3, 3, dtype=ti.f32, shape=MAX_TRANSFORMS)
transform_offset = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRANSFORMS)
num_transforms = ti.field(dtype=ti.i32, shape=())

# Object storage
object_kinds = ti.field(dtype=ti.i32, shape=MAX_OBJECTS)
object_prim_start = ti.field(dtype=ti.i32, shape=MAX_OBJECTS)
object_prim_count = ti.field(dtype=ti.i32, shape=MAX_OBJECTS)
object_neg_inv_density = ti.field(dtype=ti.f32, shape=MAX_OBJECTS)
object_phase_material_ids = ti.field(dtype=ti.i32, shape=MAX_OBJECTS)
object_box_min = ti.Vector.field(3, dtype=ti.f32, shape=MAX_OBJECTS)
object_box_max = ti.Vector.field(3, dtype=ti.f32, shape=MAX_OBJECTS)
num_objects = ti.field(dtype=ti.i32, shape=())

# Threaded BVH
bvh_box_min = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BVH_NODES)
bvh_box_max = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BVH_NODES)
bvh_object = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
bvh_miss = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
num_bvh_nodes = ti.field(dtype=ti.i32, shape=())

# 1 to traverse the BVH, 0 to scan objects linearly
use_bvh = ti.field(dtype=ti.i32, shape=())
# 1 once a compiled scene has been uploaded
scene_loaded = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Clear all scene tables.

    Resets the counts to zero. The actual field data is not cleared but
    will be overwritten when a new scene is uploaded.
    """
    num_primitives[None] = 0
    num_transforms[None] = 0
    num_objects[None] = 0
    num_bvh_nodes[None] = 0
    use_bvh[None] = 1
    scene_loaded[None] = 0


def _padded(values: np.ndarray, size: int) -> np.ndarray:
    """Copy ``values`` into a zero array with ``size`` rows."""
    out = np.zeros((size,) + values.shape[1:], dtype=values.dtype)
    out[: values.shape[0]] = values
    return out


def upload_scene(scene: CompiledScene) -> None:
    """Copy a compiled scene into the device tables.

    Args:
        scene: Output of :func:`pathtracer.scene.compiler.compile_scene`.

    Raises:
        RuntimeError: If any table exceeds its capacity.
    """
    n_prims = len(scene.primitives)
    n_objects = len(scene.objects)
    n_transforms = len(scene.transforms)
    n_nodes = 0 if scene.bvh is None else len(scene.bvh)
    for name, count, limit in (
        ("primitives", n_prims, MAX_PRIMITIVES),
        ("objects", n_objects, MAX_OBJECTS),
        ("transforms", n_transforms, MAX_TRANSFORMS),
        ("BVH nodes", n_nodes, MAX_BVH_NODES),
    ):
        if count > limit:
            raise RuntimeError(f"Maximum number of {name} ({limit}) exceeded: {count}")

    prims = scene.primitives.as_arrays()
    prim_kinds.from_numpy(_padded(prims["kinds"], MAX_PRIMITIVES))
    prim_center0.from_numpy(_padded(prims["center0"], MAX_PRIMITIVES))
    prim_center1.from_numpy(_padded(prims["center1"], MAX_PRIMITIVES))
    prim_time0.from_numpy(_padded(prims["time0"], MAX_PRIMITIVES))
    prim_time1.from_numpy(_padded(prims["time1"], MAX_PRIMITIVES))
    prim_radii.from_numpy(_padded(prims["radius"], MAX_PRIMITIVES))
    prim_axes.from_numpy(_padded(prims["axis"], MAX_PRIMITIVES))
    prim_bounds.from_numpy(_padded(prims["bounds"], MAX_PRIMITIVES))
    prim_k.from_numpy(_padded(prims["k"], MAX_PRIMITIVES))
    prim_material_ids.from_numpy(_padded(prims["materials"], MAX_PRIMITIVES))
    prim_transforms.from_numpy(_padded(prims["transforms"], MAX_PRIMITIVES))
    num_primitives[None] = n_prims

    linear, offset = scene.transform_arrays()
    transform_linear.from_numpy(_padded(linear, MAX_TRANSFORMS))
    transform_offset.from_numpy(_padded(offset, MAX_TRANSFORMS))
    num_transforms[None] = n_transforms

    objects = scene.objects.as_arrays()
    object_kinds.from_numpy(_padded(objects["kinds"], MAX_OBJECTS))
    object_prim_start.from_numpy(_padded(objects["prim_start"], MAX_OBJECTS))
    object_prim_count.from_numpy(_padded(objects["prim_count"], MAX_OBJECTS))
    object_neg_inv_density.from_numpy(_padded(objects["neg_inv_density"], MAX_OBJECTS))
    object_phase_material_ids.from_numpy(_padded(objects["phase_materials"], MAX_OBJECTS))
    object_box_min.from_numpy(_padded(objects["box_min"], MAX_OBJECTS))
    object_box_max.from_numpy(_padded(objects["box_max"], MAX_OBJECTS))
    num_objects[None] = n_objects

    if scene.bvh is not None:
        bvh_box_min.from_numpy(_padded(scene.bvh.box_min, MAX_BVH_NODES))
        bvh_box_max.from_numpy(_padded(scene.bvh.box_max, MAX_BVH_NODES))
        bvh_object.from_numpy(_padded(scene.bvh.object, MAX_BVH_NODES))
        bvh_miss.from_numpy(_padded(scene.bvh.miss, MAX_BVH_NODES))
    num_bvh_nodes[None] = n_nodes
    scene_loaded[None] = 1


def set_use_bvh(enabled: bool) -> None:
    """Select BVH traversal (True) or the linear object scan (False)."""
    use_bvh[None] = 1 if enabled else 0


def is_scene_loaded() -> bool:
    """Whether a scene has been uploaded since the last clear."""
    return bool(scene_loaded[None])


def get_primitive_count() -> int:
    """Get the number of primitives in the scene."""
    return int(num_primitives[None])


def get_object_count() -> int:
    """Get the number of objects in the scene."""
    return int(num_objects[None])


def get_bvh_node_count() -> int:
    """Get the number of nodes in the flattened BVH."""
    return int(num_bvh_nodes[None])


# =============================================================================
# Device queries
# =============================================================================


@ti.func
def hit_primitive(prim: ti.i32, ray: Ray, t_min: ti.f32, t_max: ti.f32) -> HitRecord:
    """Intersect one primitive, accounting for its rigid transform.

    Args:
        prim: Primitive index.
        ray: World-space ray.
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        A world-space HitRecord carrying the primitive's material id.
    """
    xform = prim_transforms[prim]
    linear = transform_linear[xform]
    offset = transform_offset[xform]
    local_ray = to_local_ray(ray, linear, offset)

    rec = make_miss_record()
    kind = prim_kinds[prim]
    if kind == int(PrimitiveKind.RECT):
        rec = hit_rect(local_ray, prim_axes[prim], prim_bounds[prim], prim_k[prim], t_min, t_max)
    else:
        center = moving_center(
            prim_center0[prim],
            prim_center1[prim],
            prim_time0[prim],
            prim_time1[prim],
            local_ray.time,
        )
        rec = hit_sphere(local_ray, center, prim_radii[prim], t_min, t_max)

    rec = to_world_hit(rec, linear, offset)
    rec.material_id = prim_material_ids[prim]
    return rec


@ti.func
def hit_surface(start: ti.i32, count: ti.i32, ray: Ray, t_min: ti.f32, t_max: ti.f32) -> HitRecord:
    """Nearest hit over the primitive range [start, start + count).

    The search interval's upper bound tightens with every hit, so the
    result is the closest intersection in [t_min, t_max].
    """
    closest_t = t_max
    result = make_miss_record()
    for n in range(count):
        rec = hit_primitive(start + n, ray, t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = rec
    return result


@ti.func
def hit_medium(obj: ti.i32, ray: Ray, t_min: ti.f32, t_max: ti.f32) -> HitRecord:
    """Sample a scattering event inside a constant-density medium.

    1. Find where the ray enters and leaves the boundary over the whole line
    2. Clip that span to [t_min, t_max] and to t >= 0
    3. Draw a free-flight distance -ln(xi) / density with xi in (0, 1]
    4. Report a hit only if the event happens before the ray leaves

    Args:
        obj: Index of a MEDIUM object.
        ray: World-space ray.
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        A HitRecord with an arbitrary normal, front_face = 1 and the
        medium's isotropic phase material, or a miss.
    """
    start = object_prim_start[obj]
    count = object_prim_count[obj]
    result = make_miss_record()

    rec1 = hit_surface(start, count, ray, -T_INFINITY, T_INFINITY)
    if rec1.hit == 1:
        rec2 = hit_surface(start, count, ray, rec1.t + MEDIUM_EXIT_EPSILON, T_INFINITY)
        if rec2.hit == 1:
            t_enter = tm.max(rec1.t, t_min)
            t_exit = tm.min(rec2.t, t_max)
            if t_enter < t_exit:
                t_enter = tm.max(t_enter, 0.0)
                ray_length = tm.length(ray.direction)
                distance_inside_boundary = (t_exit - t_enter) * ray_length
                hit_distance = object_neg_inv_density[obj] * ti.log(1.0 - ti.random(ti.f32))
                if hit_distance <= distance_inside_boundary:
                    t = t_enter + hit_distance / ray_length
                    result.hit = 1
                    result.t = t
                    result.point = ray_at(ray, t)
                    # Arbitrary: volume events have no surface orientation
                    result.normal = vec3(1.0, 0.0, 0.0)
                    result.front_face = 1
                    result.material_id = object_phase_material_ids[obj]
    return result


@ti.func
def hit_object(obj: ti.i32, ray: Ray, t_min: ti.f32, t_max: ti.f32) -> HitRecord:
    """Intersect one object (surface or medium)."""
    rec = make_miss_record()
    if object_kinds[obj] == int(ObjectKind.MEDIUM):
        rec = hit_medium(obj, ray, t_min, t_max)
    else:
        rec = hit_surface(object_prim_start[obj], object_prim_count[obj], ray, t_min, t_max)
    return rec


@ti.func
def intersect_bvh(ray: Ray, t_min: ti.f32, t_max: ti.f32) -> HitRecord:
    """Nearest hit through the threaded BVH.

    A node whose box the ray misses (within the current closest distance)
    is skipped with its whole subtree by following its miss link.
    """
    closest_t = t_max
    result = make_miss_record()
    n_nodes = num_bvh_nodes[None]
    i = 0
    while i < n_nodes:
        next_i = bvh_miss[i]
        if hit_aabb(bvh_box_min[i], bvh_box_max[i], ray, t_min, closest_t) == 1:
            obj = bvh_object[i]
            if obj < 0:
                next_i = i + 1
            else:
                rec = hit_object(obj, ray, t_min, closest_t)
                if rec.hit == 1:
                    closest_t = rec.t
                    result = rec
        i = next_i
    return result


@ti.func
def intersect_linear(ray: Ray, t_min: ti.f32, t_max: ti.f32) -> HitRecord:
    """Nearest hit by scanning every object in order."""
    closest_t = t_max
    result = make_miss_record()
    for obj in range(num_objects[None]):
        rec = hit_object(obj, ray, t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = rec
    return result


@ti.func
def intersect_scene(ray: Ray, t_min: ti.f32, t_max: ti.f32) -> HitRecord:
    """Nearest hit in the loaded scene."""
    rec = make_miss_record()
    if use_bvh[None] == 1:
        rec = intersect_bvh(ray, t_min, t_max)
    else:
        rec = intersect_linear(ray, t_min, t_max)
    return rec


# =============================================================================
# Host access
# =============================================================================


class QueryHit(NamedTuple):
    """Host copy of a HitRecord returned by :func:`query_hit`."""

    hit: bool
    t: float
    point: tuple[float, float, float]
    normal: tuple[float, float, float]
    u: float
    v: float
    front_face: bool
    material_id: int


query_result = HitRecord.field(shape=())


@ti.kernel
def _query_kernel(origin: vec3, direction: vec3, time: ti.f32, t_min: ti.f32, t_max: ti.f32):
    query_result[None] = intersect_scene(make_ray(origin, direction, time), t_min, t_max)


def query_hit(
    origin: Sequence[float],
    direction: Sequence[float],
    time: float = 0.0,
    t_min: float = T_MIN,
    t_max: float = T_INFINITY,
) -> QueryHit:
    """Intersect one ray with the loaded scene from Python.

    Args:
        origin: Ray origin.
        direction: Ray direction.
        time: Ray time.
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        The nearest hit (``hit`` is False on a miss).
    """
    _query_kernel(vec3(*origin), vec3(*direction), time, t_min, t_max)
    return QueryHit(
        hit=bool(query_result.hit[None]),
        t=float(query_result.t[None]),
        point=tuple(float(c) for c in query_result.point[None]),
        normal=tuple(float(c) for c in query_result.normal[None]),
        u=float(query_result.u[None]),
        v=float(query_result.v[None]),
        front_face=bool(query_result.front_face[None]),
        material_id=int(query_result.material_id[None]),
    )
