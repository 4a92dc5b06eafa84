"""Offline Monte Carlo path tracer built on Taichi.

This package renders scenes of spheres, moving spheres, axis-aligned
rectangles, boxes and participating media by tracing random light paths
from a thin-lens camera, with support for:
- Diffuse, metal, glass, isotropic and emissive materials
- Solid, checker, Perlin-noise and image textures
- Instancing through translate and rotate decorators
- A bounding volume hierarchy for ray/scene queries
- Motion blur and depth of field

Subpackages:
    core: Rays, bounding boxes, configuration, radiance estimator and sampler
    geometry: Intersectable entities and the BVH
    textures: Texture descriptions, Perlin noise and the device texture table
    materials: Scattering models and their device registries
    scene: Scene flattening, device scene tables, scene manager, demo scenes
    camera: Thin-lens camera with a shutter interval
    output: PPM and PNG image output
"""

__version__ = "0.1.0"
