"""Core rendering module.

This module contains the fundamental building blocks for ray tracing:

Components:
    ray: Ray data structure, vector and random-sampling utilities
    aabb: Axis-aligned bounding boxes (host and device)
    errors: Exceptions raised for invalid scenes
    config: Render configuration
    integrator: Radiance estimator and material dispatch
    sampler: Scanline renderer with parallel per-pixel sampling
"""

from .aabb import AABB, AABB_PADDING, hit_aabb, surrounding_box
from .config import MAX_IMAGE_WIDTH, MAX_ROWS_PER_BATCH, RenderConfig
from .errors import BoundingBoxError, GeometryError
from .ray import (
    Ray,
    length_squared,
    make_ray,
    near_zero,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_unit_vector,
    ray_at,
    reflect,
    refract,
    schlick_fresnel,
    vec3,
    vec3_component,
)

# Note: integrator and sampler are NOT imported here to avoid circular imports.
# Import directly from pathtracer.core.integrator or pathtracer.core.sampler when needed.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "vec3_component",
    "length_squared",
    "reflect",
    "refract",
    "schlick_fresnel",
    "near_zero",
    "random_in_unit_sphere",
    "random_unit_vector",
    "random_in_unit_disk",
    "AABB",
    "AABB_PADDING",
    "hit_aabb",
    "surrounding_box",
    "GeometryError",
    "BoundingBoxError",
    "RenderConfig",
    "MAX_IMAGE_WIDTH",
    "MAX_ROWS_PER_BATCH",
]
