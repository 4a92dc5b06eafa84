"""Demo scene builders.

Each builder returns ``(world, settings)``: the root entity to hand to
:meth:`pathtracer.scene.manager.SceneManager.load_world` and a
:class:`SceneSettings` carrying the camera, the background and the
suggested render configuration for that scene.

Scenes:
    - ``random``: a field of small random spheres around three large ones
    - ``two_spheres``: two checkered spheres
    - ``two_perlin_spheres``: Perlin-marbled ground and sphere
    - ``earth``: an image-textured globe
    - ``simple_light``: Perlin spheres lit by a rectangle and a sphere light
    - ``cornell_box``: the classic Cornell box with two rotated boxes
    - ``cornell_smoke``: the Cornell box with the boxes turned into smoke

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.scene.demo_scenes import build_scene
    >>> world, settings = build_scene("cornell_box")
    >>> settings.camera.vfov
    40.0
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

import numpy as np

from pathtracer.camera.thin_lens import Camera
from pathtracer.core.config import RenderConfig
from pathtracer.geometry.box import Box
from pathtracer.geometry.hittable import Hittable
from pathtracer.geometry.hittable_list import HittableList
from pathtracer.geometry.medium import ConstantMedium
from pathtracer.geometry.rect import XYRect, XZRect, YZRect
from pathtracer.geometry.sphere import MovingSphere, Sphere
from pathtracer.geometry.transform import RotateY, Translate
from pathtracer.materials.base import Material
from pathtracer.materials.dielectric import Dielectric
from pathtracer.materials.diffuse_light import DiffuseLight
from pathtracer.materials.lambertian import Lambertian
from pathtracer.materials.metal import Metal
from pathtracer.textures.texture import CheckerTexture, ImageTexture, NoiseTexture

# Background of the outdoor scenes (escaping rays see a pale blue sky)
DEFAULT_BACKGROUND = (0.70, 0.80, 1.00)
BLACK = (0.0, 0.0, 0.0)
WHITE = (1.0, 1.0, 1.0)

# Distance to the plane of perfect focus shared by every demo camera
FOCUS_DISTANCE = 10.0

# Cornell box dimensions (the box spans 0..555 on every axis)
BOX_SIZE = 555.0

# Wall colors (normalized RGB values matching original Cornell box measurements)
RED_WALL_ALBEDO = (0.65, 0.05, 0.05)
GREEN_WALL_ALBEDO = (0.12, 0.45, 0.15)
WHITE_WALL_ALBEDO = (0.73, 0.73, 0.73)

# Checkerboard of the outdoor grounds
CHECKER_EVEN = (0.2, 0.3, 0.1)
CHECKER_ODD = (0.9, 0.9, 0.9)


@dataclass
class SceneSettings:
    """Everything a demo scene needs besides its geometry.

    Attributes:
        camera: Camera configuration.
        background: Constant background radiance, or None for the sky
            gradient.
        config: Suggested render configuration.
        time0: Shutter open time.
        time1: Shutter close time.
    """

    camera: Camera
    background: tuple[float, float, float] | None = DEFAULT_BACKGROUND
    config: RenderConfig = field(default_factory=RenderConfig)
    time0: float = 0.0
    time1: float = 1.0


def _outdoor_camera(
    lookfrom: tuple[float, float, float] = (13.0, 2.0, 3.0),
    lookat: tuple[float, float, float] = (0.0, 0.0, 0.0),
    aspect_ratio: float = 16.0 / 9.0,
    aperture: float = 0.0,
) -> Camera:
    return Camera(
        lookfrom=lookfrom,
        lookat=lookat,
        vfov=20.0,
        aspect_ratio=aspect_ratio,
        aperture=aperture,
        focus_dist=FOCUS_DISTANCE,
        time0=0.0,
        time1=1.0,
    )


def _cornell_camera() -> Camera:
    return Camera(
        lookfrom=(278.0, 278.0, -800.0),
        lookat=(278.0, 278.0, 0.0),
        vfov=40.0,
        aspect_ratio=1.0,
        aperture=0.0,
        focus_dist=FOCUS_DISTANCE,
        time0=0.0,
        time1=1.0,
    )


# =============================================================================
# Outdoor scenes
# =============================================================================


def random_scene(rng: np.random.Generator | None = None) -> tuple[HittableList, SceneSettings]:
    """Create the random spheres scene.

    A 22 x 22 grid of small spheres, each jittered inside its cell: 80%
    diffuse spheres bouncing upward during the shutter interval, 15% fuzzy
    metal, 5% glass. Cells too close to the large metal sphere are skipped.

    Args:
        rng: Random generator for the sphere layout; defaults to seed 0.

    Returns:
        Tuple of (world, settings).
    """
    if rng is None:
        rng = np.random.default_rng(0)

    world = HittableList()
    checker = CheckerTexture(CHECKER_EVEN, CHECKER_ODD)
    world.add(Sphere((0.0, -1000.0, 0.0), 1000.0, Lambertian(checker)))

    landmark = np.array([4.0, 0.2, 0.0])
    for a in range(-11, 11):
        for b in range(-11, 11):
            center = np.array([a + 0.9 * rng.random(), 0.2, b + 0.9 * rng.random()])
            if np.linalg.norm(center - landmark) <= 0.9:
                continue

            choose_mat = rng.random()
            if choose_mat < 0.8:
                # Diffuse
                albedo = rng.random(3) * rng.random(3)
                center2 = center + np.array([0.0, rng.uniform(0.0, 0.5), 0.0])
                world.add(MovingSphere(center, center2, 0.0, 1.0, 0.2, Lambertian(albedo)))
            elif choose_mat < 0.95:
                # Metal
                albedo = rng.uniform(0.5, 1.0, size=3)
                fuzz = rng.uniform(0.0, 0.5)
                world.add(Sphere(center, 0.2, Metal(albedo, fuzz)))
            else:
                # Glass
                world.add(Sphere(center, 0.2, Dielectric(1.5)))

    world.add(Sphere((0.0, 1.0, 0.0), 1.0, Dielectric(1.5)))
    world.add(Sphere((-4.0, 1.0, 0.0), 1.0, Lambertian((0.4, 0.2, 0.1))))
    world.add(Sphere((4.0, 1.0, 0.0), 1.0, Metal((0.7, 0.6, 0.5), 0.0)))

    settings = SceneSettings(camera=_outdoor_camera(aperture=0.1))
    return world, settings


def two_spheres() -> tuple[HittableList, SceneSettings]:
    """Two large spheres sharing one checkered material."""
    material = Lambertian(CheckerTexture(CHECKER_EVEN, CHECKER_ODD))
    world = HittableList(
        [
            Sphere((0.0, -10.0, 0.0), 10.0, material),
            Sphere((0.0, 10.0, 0.0), 10.0, material),
        ]
    )
    return world, SceneSettings(camera=_outdoor_camera())


def two_perlin_spheres() -> tuple[HittableList, SceneSettings]:
    """A Perlin-marbled ground and sphere."""
    material = Lambertian(NoiseTexture(4.0))
    world = HittableList(
        [
            Sphere((0.0, -1000.0, 0.0), 1000.0, material),
            Sphere((0.0, 2.0, 0.0), 2.0, material),
        ]
    )
    return world, SceneSettings(camera=_outdoor_camera())


def earth(path: str = "earthmap.jpg") -> tuple[HittableList, SceneSettings]:
    """An image-textured globe.

    Args:
        path: Image file wrapped around the sphere. A missing or unreadable
            file renders in the fallback colour.
    """
    globe = Sphere((0.0, 0.0, 0.0), 2.0, Lambertian(ImageTexture(path)))
    return HittableList([globe]), SceneSettings(camera=_outdoor_camera())


def simple_light() -> tuple[HittableList, SceneSettings]:
    """Perlin spheres lit by a rectangle light and a sphere light."""
    material = Lambertian(NoiseTexture(4.0))
    light = DiffuseLight((4.0, 4.0, 4.0))
    world = HittableList(
        [
            Sphere((0.0, -1000.0, 0.0), 1000.0, material),
            Sphere((0.0, 2.0, 0.0), 2.0, material),
            XYRect(3.0, 5.0, 1.0, 3.0, -2.0, light),
            Sphere((0.0, 7.0, 0.0), 2.0, light),
        ]
    )
    settings = SceneSettings(
        camera=_outdoor_camera(lookfrom=(26.0, 3.0, 6.0), lookat=(0.0, 2.0, 0.0)),
        background=BLACK,
        config=RenderConfig(samples_per_pixel=400),
    )
    return world, settings


# =============================================================================
# Cornell box scenes
# =============================================================================


def _cornell_walls(
    light: Material, light_bounds: tuple[float, float, float, float]
) -> tuple[HittableList, Lambertian]:
    red = Lambertian(RED_WALL_ALBEDO)
    white = Lambertian(WHITE_WALL_ALBEDO)
    green = Lambertian(GREEN_WALL_ALBEDO)
    x0, x1, z0, z1 = light_bounds

    walls = HittableList(
        [
            YZRect(0.0, BOX_SIZE, 0.0, BOX_SIZE, BOX_SIZE, green),
            YZRect(0.0, BOX_SIZE, 0.0, BOX_SIZE, 0.0, red),
            XZRect(x0, x1, z0, z1, BOX_SIZE - 1.0, light),
            XZRect(0.0, BOX_SIZE, 0.0, BOX_SIZE, 0.0, white),
            XZRect(0.0, BOX_SIZE, 0.0, BOX_SIZE, BOX_SIZE, white),
            XYRect(0.0, BOX_SIZE, 0.0, BOX_SIZE, BOX_SIZE, white),
        ]
    )
    return walls, white


def _cornell_boxes(white: Material) -> tuple[Hittable, Hittable]:
    tall = Box((0.0, 0.0, 0.0), (165.0, 330.0, 165.0), white)
    tall = Translate(RotateY(tall, 15.0), (265.0, 0.0, 295.0))

    short = Box((0.0, 0.0, 0.0), (165.0, 165.0, 165.0), white)
    short = Translate(RotateY(short, -18.0), (130.0, 0.0, 65.0))
    return tall, short


def _cornell_config() -> RenderConfig:
    return RenderConfig(image_width=600, aspect_ratio=1.0, samples_per_pixel=200)


def cornell_box() -> tuple[HittableList, SceneSettings]:
    """The Cornell box: five walls, a ceiling light and two rotated boxes.

    The front of the box (z = 0) is open toward the camera.
    """
    world, white = _cornell_walls(DiffuseLight((15.0, 15.0, 15.0)), (213.0, 343.0, 227.0, 332.0))
    tall, short = _cornell_boxes(white)
    world.add(tall)
    world.add(short)

    settings = SceneSettings(camera=_cornell_camera(), background=BLACK, config=_cornell_config())
    return world, settings


def cornell_smoke() -> tuple[HittableList, SceneSettings]:
    """The Cornell box with the two boxes replaced by black and white smoke."""
    world, white = _cornell_walls(DiffuseLight((7.0, 7.0, 7.0)), (113.0, 443.0, 127.0, 432.0))
    tall, short = _cornell_boxes(white)
    world.add(ConstantMedium(tall, 0.01, BLACK))
    world.add(ConstantMedium(short, 0.01, WHITE))

    return world, SceneSettings(camera=_cornell_camera(), config=_cornell_config())


# =============================================================================
# Registry
# =============================================================================

SCENES: dict[str, Callable[[], tuple[HittableList, SceneSettings]]] = {
    "random": random_scene,
    "two_spheres": two_spheres,
    "two_perlin_spheres": two_perlin_spheres,
    "earth": earth,
    "simple_light": simple_light,
    "cornell_box": cornell_box,
    "cornell_smoke": cornell_smoke,
}


def build_scene(name: str) -> tuple[HittableList, SceneSettings]:
    """Build a demo scene by name.

    Raises:
        KeyError: If no scene has that name.
    """
    try:
        builder = SCENES[name]
    except KeyError:
        raise KeyError(f"Unknown scene {name!r}; choose from {', '.join(SCENES)}") from None
    return builder()
