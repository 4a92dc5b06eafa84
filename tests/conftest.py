"""Pytest configuration for path tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield
    # Note: We don't call ti.reset() here as it can cause issues
    # with subsequent tests if any cleanup happens after


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear scene data before each test.

    This ensures tests are isolated from each other.
    """
    # Import here to ensure Taichi is initialized first
    from pathtracer.camera.thin_lens import clear_camera
    from pathtracer.core.integrator import set_background
    from pathtracer.materials.dielectric import clear_dielectric_materials
    from pathtracer.materials.diffuse_light import clear_diffuse_light_materials
    from pathtracer.materials.isotropic import clear_isotropic_materials
    from pathtracer.materials.lambertian import clear_lambertian_materials
    from pathtracer.materials.metal import clear_metal_materials
    from pathtracer.scene.intersection import clear_scene, set_use_bvh
    from pathtracer.scene.manager import _clear_material_tracking
    from pathtracer.textures.registry import clear_textures

    def _clear_all():
        clear_scene()
        set_use_bvh(True)
        clear_textures()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        clear_isotropic_materials()
        clear_diffuse_light_materials()
        _clear_material_tracking()
        set_background(None)
        clear_camera()

    # Clear everything before test
    _clear_all()

    yield

    # Clear everything after test
    _clear_all()


@pytest.fixture
def fresh_scene():
    """Create a fresh SceneManager for each test."""
    from pathtracer.scene.manager import SceneManager

    scene = SceneManager()
    yield scene
    scene.clear()
