"""Geometry module for intersectable entities.

Components:
    hittable: Hit record and the intersectable base class
    sphere: Static and moving spheres
    rect: Axis-aligned rectangles
    box: Six-sided axis-aligned box
    transform: Translate and rotate decorators
    medium: Constant-density participating medium
    hittable_list: Flat aggregate
    bvh: Bounding volume hierarchy

Host classes describe the scene and report bounding boxes; the device
intersection routines run over the tables built by pathtracer.scene.
"""

# hittable must load first: materials import it while this package initializes
from .hittable import HitRecord, Hittable, face_normal, make_miss_record  # isort: skip
from .box import Box
from .bvh import BVHNode, FlatBVH, flatten_bvh
from .hittable_list import HittableList
from .medium import ConstantMedium
from .rect import PLANE_AXES, AxisAlignedRect, XYRect, XZRect, YZRect, hit_rect
from .sphere import MovingSphere, Sphere, hit_sphere, moving_center, sphere_uv
from .transform import (
    Rotate,
    RotateY,
    Transform,
    Translate,
    compose,
    rotation_matrix,
    to_local_ray,
    to_world_hit,
)

__all__ = [
    # Hittable
    "HitRecord",
    "Hittable",
    "face_normal",
    "make_miss_record",
    # Primitives
    "Sphere",
    "MovingSphere",
    "hit_sphere",
    "moving_center",
    "sphere_uv",
    "AxisAlignedRect",
    "XYRect",
    "XZRect",
    "YZRect",
    "PLANE_AXES",
    "hit_rect",
    "Box",
    # Decorators
    "Transform",
    "Translate",
    "Rotate",
    "RotateY",
    "rotation_matrix",
    "compose",
    "to_local_ray",
    "to_world_hit",
    "ConstantMedium",
    # Aggregates
    "HittableList",
    "BVHNode",
    "FlatBVH",
    "flatten_bvh",
]
