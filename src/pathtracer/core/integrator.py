"""Radiance estimator for Monte Carlo light transport.

This module estimates the radiance carried back along a ray by following
one random path through the scene. At every vertex the surface may emit
light and its material may scatter the path onward; the estimate is

    L(ray, depth) = emitted + attenuation * L(scattered, depth - 1)

with ``L = 0`` once the depth is exhausted and ``L = background`` when the
ray leaves the scene. Taichi functions cannot recurse, so the expression is
evaluated as a loop carrying the product of attenuations seen so far
(the path throughput); the result is identical to the recursive form.

Key features:
    - Material dispatch (Lambertian, Metal, Dielectric, Isotropic, DiffuseLight)
    - Emission from diffuse lights
    - Sky-gradient or constant background
    - Non-finite and negative samples are zeroed before accumulation

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.core.integrator import set_background, trace_radiance
    >>> # after SceneManager().load_world(world)
    >>> set_background((0.0, 0.0, 0.0))
    >>> color = trace_radiance((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), max_depth=10)
"""

from collections.abc import Sequence

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray, make_ray
from pathtracer.geometry.hittable import HitRecord
from pathtracer.materials.dielectric import scatter_dielectric_by_id
from pathtracer.materials.diffuse_light import emitted_diffuse_light_by_id
from pathtracer.materials.isotropic import scatter_isotropic_by_id
from pathtracer.materials.lambertian import scatter_lambertian_by_id
from pathtracer.materials.metal import scatter_metal_by_id
from pathtracer.scene.intersection import T_INFINITY, T_MIN, intersect_scene, is_scene_loaded
from pathtracer.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Default maximum ray bounces (path length)
MAX_DEPTH = 50

# =============================================================================
# Background
# =============================================================================

# 0 = sky gradient, 1 = constant colour
_background_mode = ti.field(dtype=ti.i32, shape=())
_background_color = ti.Vector.field(3, dtype=ti.f32, shape=())


def set_background(color: Sequence[float] | None = None) -> None:
    """Select what escaping rays see.

    Args:
        color: Constant background radiance, or None for the sky gradient.

    Raises:
        ValueError: If a colour component is negative.
    """
    if color is None:
        _background_mode[None] = 0
        _background_color[None] = [0.0, 0.0, 0.0]
        return
    if len(color) != 3:
        raise ValueError(f"Background must have 3 components, got {len(color)}")
    if min(color) < 0.0:
        raise ValueError(f"Background = {tuple(color)} must be non-negative")
    _background_mode[None] = 1
    _background_color[None] = [float(c) for c in color]


def get_background() -> tuple[float, float, float] | None:
    """Current constant background, or None when the sky gradient is active."""
    if _background_mode[None] == 0:
        return None
    value = _background_color[None]
    return (float(value[0]), float(value[1]), float(value[2]))


@ti.func
def background_color(ray: Ray) -> vec3:
    """Radiance of a ray that left the scene."""
    color = _background_color[None]
    if _background_mode[None] == 0:
        unit_direction = tm.normalize(ray.direction)
        t = 0.5 * (unit_direction.y + 1.0)
        # White at the horizon, light blue at the zenith
        color = (1.0 - t) * vec3(1.0, 1.0, 1.0) + t * vec3(0.5, 0.7, 1.0)
    return color


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def scatter_material(ray: Ray, rec: HitRecord):
    """Dispatch to the scattering function of the hit material.

    Args:
        ray: The incoming ray.
        rec: The surface hit.

    Returns:
        A tuple of (scattered_ray, attenuation, did_scatter) where
        did_scatter is 0 when the path is absorbed or the material is an
        emitter.
    """
    mat_type = get_material_type(rec.material_id)
    type_index = get_material_type_index(rec.material_id)

    # Default values
    scattered = make_ray(rec.point, ray.direction, ray.time)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0

    if mat_type == int(MaterialType.LAMBERTIAN):
        scattered, attenuation, did_scatter = scatter_lambertian_by_id(type_index, ray, rec)

    elif mat_type == int(MaterialType.METAL):
        scattered, attenuation, did_scatter = scatter_metal_by_id(type_index, ray, rec)

    elif mat_type == int(MaterialType.DIELECTRIC):
        scattered, attenuation, did_scatter = scatter_dielectric_by_id(type_index, ray, rec)

    elif mat_type == int(MaterialType.ISOTROPIC):
        scattered, attenuation, did_scatter = scatter_isotropic_by_id(type_index, ray, rec)

    return scattered, attenuation, did_scatter


@ti.func
def emitted_material(rec: HitRecord) -> vec3:
    """Light emitted by the hit material at the hit point; zero for non-emitters."""
    emission = vec3(0.0, 0.0, 0.0)
    if get_material_type(rec.material_id) == int(MaterialType.DIFFUSE_LIGHT):
        emission = emitted_diffuse_light_by_id(
            get_material_type_index(rec.material_id), rec.u, rec.v, rec.point
        )
    return emission


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def radiance(ray: Ray, max_depth: ti.i32) -> vec3:
    """Estimate the radiance arriving along ``ray``.

    Args:
        ray: The primary ray.
        max_depth: Number of surface interactions allowed. A path that
            exhausts it contributes nothing further.

    Returns:
        The estimated radiance (RGB) for this path sample.
    """
    result = vec3(0.0, 0.0, 0.0)

    # Throughput (product of all attenuations along the path)
    throughput = vec3(1.0, 1.0, 1.0)
    current = ray
    depth = max_depth

    # Active flag for path continuation
    active = 1
    while active == 1:
        if depth <= 0:
            active = 0
        else:
            rec = intersect_scene(current, T_MIN, T_INFINITY)
            if rec.hit == 0:
                # Ray escaped
                result += throughput * background_color(current)
                active = 0
            else:
                result += throughput * emitted_material(rec)

                scattered, attenuation, did_scatter = scatter_material(current, rec)
                if did_scatter == 0:
                    active = 0
                else:
                    throughput *= attenuation
                    current = scattered
                    depth -= 1

    return result


@ti.func
def sanitize_sample(color: vec3) -> vec3:
    """Replace NaN, infinite and negative components with zero."""
    out = color
    for c in ti.static(range(3)):
        if tm.isnan(out[c]) or tm.isinf(out[c]) or out[c] < 0.0:
            out[c] = 0.0
    return out


# =============================================================================
# Python access
# =============================================================================

_trace_result = ti.Vector.field(3, dtype=ti.f32, shape=())


@ti.kernel
def _trace_kernel(origin: vec3, direction: vec3, time: ti.f32, max_depth: ti.i32, samples: ti.i32):
    total = vec3(0.0, 0.0, 0.0)
    ti.loop_config(serialize=True)
    for _ in range(samples):
        total += sanitize_sample(radiance(make_ray(origin, direction, time), max_depth))
    _trace_result[None] = total / ti.cast(samples, ti.f32)


def trace_radiance(
    origin: Sequence[float],
    direction: Sequence[float],
    time: float = 0.0,
    max_depth: int = MAX_DEPTH,
    samples: int = 1,
) -> tuple[float, float, float]:
    """Average radiance of ``samples`` paths started along one ray.

    This is a Python-callable function for testing and tooling. For
    production rendering, use :class:`pathtracer.core.sampler.ScanlineRenderer`.

    Args:
        origin: Ray origin.
        direction: Ray direction.
        time: Ray time.
        max_depth: Maximum number of bounces.
        samples: Number of independent paths to average.

    Returns:
        Tuple of (R, G, B) linear radiance.

    Raises:
        RuntimeError: If no scene has been loaded.
        ValueError: If ``samples`` is not positive.
    """
    if not is_scene_loaded():
        raise RuntimeError("No scene loaded. Call SceneManager.load_world() first.")
    if samples < 1:
        raise ValueError(f"samples = {samples} must be >= 1")
    _trace_kernel(vec3(*origin), vec3(*direction), time, max_depth, samples)
    color = _trace_result[None]
    return (float(color[0]), float(color[1]), float(color[2]))
