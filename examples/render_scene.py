#!/usr/bin/env python3
"""Render one of the demo scenes.

This script demonstrates end-to-end rendering: it builds a demo scene,
uploads it, sets up the camera and background, and renders scanlines top
to bottom, streaming them to a PPM file (or saving a PNG at the end).

Usage:
    python -m examples.render_scene [options]

Options:
    --scene NAME        Demo scene to render (default: cornell_smoke)
    --width WIDTH       Image width in pixels (default: scene setting)
    --samples SAMPLES   Number of samples per pixel (default: scene setting)
    --max-depth DEPTH   Maximum bounces per path (default: 50)
    --seed SEED         Seed for the random streams (default: 0)
    --output OUTPUT     Output file, .ppm or .png (default: image.ppm)
    --linear            Scan objects linearly instead of using the BVH
    --cpu               Force the CPU backend
    --verbose           Log debug details
    --quiet             Suppress progress output

Example:
    python -m examples.render_scene --scene random --width 200 --samples 20
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
import time
from pathlib import Path

import taichi as ti

logger = logging.getLogger("render_scene")

SCENE_NAMES = (
    "random",
    "two_spheres",
    "two_perlin_spheres",
    "earth",
    "simple_light",
    "cornell_box",
    "cornell_smoke",
)


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a demo scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--scene",
        choices=SCENE_NAMES,
        default="cornell_smoke",
        help="Demo scene to render (default: cornell_smoke)",
    )
    parser.add_argument(
        "--width",
        type=int,
        default=None,
        help="Image width in pixels (default: scene setting)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=None,
        help="Number of samples per pixel (default: scene setting)",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=50,
        help="Maximum bounces per path (default: 50)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Seed for the random streams (default: 0)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="image.ppm",
        help="Output file, .ppm or .png (default: image.ppm)",
    )
    parser.add_argument(
        "--linear",
        action="store_true",
        help="Scan objects linearly instead of using the BVH",
    )
    parser.add_argument(
        "--cpu",
        action="store_true",
        help="Force the CPU backend",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug details",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args()


def render_scene(
    scene_name: str,
    output_path: str = "image.ppm",
    width: int | None = None,
    samples: int | None = None,
    max_depth: int = 50,
    seed: int = 0,
    use_bvh: bool = True,
    quiet: bool = False,
) -> Path:
    """Render a demo scene and save it to ``output_path``.

    Args:
        scene_name: Key of :data:`pathtracer.scene.demo_scenes.SCENES`.
        output_path: Output file path; the extension selects PPM or PNG.
        width: Image width, or None for the scene's suggestion.
        samples: Samples per pixel, or None for the scene's suggestion.
        max_depth: Maximum bounces per path.
        seed: Seed of the BVH construction.
        use_bvh: Traverse the BVH (True) or scan objects linearly.
        quiet: If True, suppress progress output.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from pathtracer.camera.thin_lens import setup_camera
    from pathtracer.core.integrator import set_background
    from pathtracer.core.sampler import ScanlineRenderer
    from pathtracer.output.export import save_png
    from pathtracer.scene.demo_scenes import build_scene
    from pathtracer.scene.manager import SceneManager

    world, settings = build_scene(scene_name)

    overrides = {"max_depth": max_depth, "seed": seed}
    if width is not None:
        overrides["image_width"] = width
    if samples is not None:
        overrides["samples_per_pixel"] = samples
    config = dataclasses.replace(
        settings.config, aspect_ratio=settings.camera.aspect_ratio, **overrides
    )

    stats = SceneManager().load_world(
        world, settings.time0, settings.time1, seed=config.seed, use_bvh=use_bvh
    )
    setup_camera(settings.camera)
    set_background(settings.background)

    if not quiet:
        print(
            f"Rendering {scene_name} ({config.image_width}x{config.image_height}, "
            f"{config.samples_per_pixel} spp, {stats.objects} objects)..."
        )

    renderer = ScanlineRenderer(config)
    start_time = time.time()

    def progress_callback(done: int, total: int) -> None:
        if not quiet:
            print(f"\rScanlines remaining: {total - done} ", end="", file=sys.stderr, flush=True)

    output_file = Path(output_path)
    if output_file.suffix.lower() == ".png":
        save_png(renderer.render(progress_callback), output_file)
    else:
        with open(output_file, "w", encoding="ascii") as stream:
            renderer.render_to_ppm(stream, progress_callback)

    total_time = time.time() - start_time
    if not quiet:
        print("\nDone.", file=sys.stderr)
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Initialize Taichi
    # Use GPU if available, fall back to CPU
    if args.cpu:
        ti.init(arch=ti.cpu, random_seed=args.seed)
    else:
        try:
            ti.init(arch=ti.gpu, random_seed=args.seed)
        except RuntimeError:
            logger.warning("GPU backend unavailable, falling back to CPU")
            ti.init(arch=ti.cpu, random_seed=args.seed)

    try:
        render_scene(
            args.scene,
            output_path=args.output,
            width=args.width,
            samples=args.samples,
            max_depth=args.max_depth,
            seed=args.seed,
            use_bvh=not args.linear,
            quiet=args.quiet,
        )
        return 0
    except (ValueError, RuntimeError, OSError) as e:
        logger.error("Rendering failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
