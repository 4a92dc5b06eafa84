"""Unit tests for constant-density participating media.

Tests cover:
- Density validation and bounding boxes
- Dense media scatter right at the boundary
- Thin media let rays pass through
- Rays starting inside the medium
- Zero-length spans inside the query interval never scatter
- The isotropic phase material is reported on scattering events
"""

import math

import numpy as np
import pytest


class TestMediumHost:
    """Tests for host-side ConstantMedium construction."""

    @pytest.mark.parametrize("density", [0.0, -1.0, math.inf, math.nan])
    def test_invalid_density(self, density):
        """Density must be positive and finite."""
        from pathtracer.core.errors import GeometryError
        from pathtracer.geometry.medium import ConstantMedium
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.materials.lambertian import Lambertian

        boundary = Sphere((0, 0, 0), 1.0, Lambertian((0.5, 0.5, 0.5)))
        with pytest.raises(GeometryError):
            ConstantMedium(boundary, density, (1.0, 1.0, 1.0))

    def test_bounding_box_is_boundary_box(self):
        """The medium reports its boundary's box."""
        from pathtracer.geometry.box import Box
        from pathtracer.geometry.medium import ConstantMedium
        from pathtracer.materials.lambertian import Lambertian

        boundary = Box((0, 0, 0), (1, 2, 3), Lambertian((0.5, 0.5, 0.5)))
        medium = ConstantMedium(boundary, 0.5, (1.0, 1.0, 1.0))
        box = medium.bounding_box(0, 1)
        assert np.allclose(box.minimum, (0, 0, 0))
        assert np.allclose(box.maximum, (1, 2, 3))
        assert medium.neg_inv_density == -2.0

    def test_phase_function_is_isotropic(self):
        """The medium scatters through an Isotropic material."""
        from pathtracer.geometry.medium import ConstantMedium
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.materials.isotropic import Isotropic
        from pathtracer.materials.lambertian import Lambertian

        boundary = Sphere((0, 0, 0), 1.0, Lambertian((0.5, 0.5, 0.5)))
        medium = ConstantMedium(boundary, 1.0, (0.2, 0.4, 0.6))
        assert isinstance(medium.phase_function, Isotropic)


class TestMediumScene:
    """Media intersected through the loaded scene."""

    def _load(self, scene, density, boundary=None):
        from pathtracer.geometry.medium import ConstantMedium
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.materials.lambertian import Lambertian

        if boundary is None:
            boundary = Sphere((0, 0, 0), 1.0, Lambertian((0.5, 0.5, 0.5)))
        return scene.load_world(ConstantMedium(boundary, density, (1.0, 1.0, 1.0)))

    def test_dense_medium_scatters_at_entry(self, fresh_scene):
        """With a huge density the event happens right past the boundary."""
        from pathtracer.scene.intersection import query_hit
        from pathtracer.scene.manager import MaterialType

        self._load(fresh_scene, 1.0e4)
        for _ in range(10):
            rec = query_hit((0.0, 0.0, -5.0), (0.0, 0.0, 1.0))
            assert rec.hit
            assert 4.0 <= rec.t < 4.01
            assert rec.front_face
            assert fresh_scene.get_material_info(rec.material_id).material_type == MaterialType.ISOTROPIC

    def test_thin_medium_is_transparent(self, fresh_scene):
        """With a tiny density rays almost never scatter."""
        from pathtracer.scene.intersection import query_hit

        self._load(fresh_scene, 1.0e-7)
        hits = sum(query_hit((0.0, 0.0, -5.0), (0.0, 0.0, 1.0)).hit for _ in range(20))
        assert hits == 0

    def test_ray_missing_boundary(self, fresh_scene):
        """A ray that misses the boundary never scatters."""
        from pathtracer.scene.intersection import query_hit

        self._load(fresh_scene, 1.0e4)
        assert not query_hit((3.0, 0.0, -5.0), (0.0, 0.0, 1.0)).hit

    def test_ray_starting_inside(self, fresh_scene):
        """Inside the medium, the free flight starts at the ray origin."""
        from pathtracer.scene.intersection import query_hit

        self._load(fresh_scene, 1.0e4)
        rec = query_hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0))
        assert rec.hit
        assert rec.t < 0.01

    def test_zero_length_span_never_scatters(self, fresh_scene):
        """A query interval that collapses to one point inside the boundary misses."""
        from pathtracer.scene.intersection import query_hit

        self._load(fresh_scene, 1.0e4)
        for t in (4.0, 5.0, 6.0):
            for _ in range(10):
                assert not query_hit((0.0, 0.0, -5.0), (0.0, 0.0, 1.0), t_min=t, t_max=t).hit
        # A non-empty span of the same dense medium always scatters
        rec = query_hit((0.0, 0.0, -5.0), (0.0, 0.0, 1.0), t_min=5.0, t_max=5.5)
        assert rec.hit
        assert 5.0 <= rec.t <= 5.5

    def test_event_inside_box_boundary(self, fresh_scene):
        """Scattering events of a box-bounded medium lie inside the box."""
        from pathtracer.geometry.box import Box
        from pathtracer.materials.lambertian import Lambertian
        from pathtracer.scene.intersection import query_hit

        boundary = Box((0, 0, 0), (1, 1, 1), Lambertian((0.5, 0.5, 0.5)))
        self._load(fresh_scene, 1.0, boundary)
        hits = 0
        for _ in range(40):
            rec = query_hit((0.5, 0.5, -2.0), (0.0, 0.0, 1.0))
            if rec.hit:
                hits += 1
                assert 2.0 <= rec.t <= 3.0 + 1e-4
                assert -1e-4 <= rec.point[2] <= 1.0 + 1e-4
        # P(scatter) = 1 - exp(-1) per ray
        assert 0 < hits < 40

    def test_nested_medium_rejected(self, fresh_scene):
        """A medium whose boundary is another medium cannot be compiled."""
        from pathtracer.core.errors import GeometryError
        from pathtracer.geometry.medium import ConstantMedium
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.materials.lambertian import Lambertian

        inner = ConstantMedium(Sphere((0, 0, 0), 1.0, Lambertian((0.5, 0.5, 0.5))), 1.0, (1, 1, 1))
        with pytest.raises(GeometryError):
            fresh_scene.load_world(ConstantMedium(inner, 1.0, (1, 1, 1)))
