"""Unit tests for rigid transforms (translation and rotation).

Tests cover:
- Rotation matrices and world-to-local composition
- Translated and rotated bounding boxes
- Translated and rotated entities hit through the scene
- A zero translation leaves hits unchanged
- Random translations shift hit points by the offset
"""

import math

import numpy as np
import pytest


def _gray():
    from pathtracer.materials.lambertian import Lambertian

    return Lambertian((0.5, 0.5, 0.5))


class TestRotationMatrix:
    """Tests for rotation_matrix and compose."""

    def test_rotate_y_90(self):
        """A quarter turn about y maps +x to -z."""
        from pathtracer.geometry.transform import rotation_matrix

        rot = rotation_matrix(1, 90.0)
        assert np.allclose(rot @ np.array([1.0, 0.0, 0.0]), (0.0, 0.0, -1.0))
        assert np.allclose(rot @ np.array([0.0, 0.0, 1.0]), (1.0, 0.0, 0.0))

    def test_rotation_is_orthonormal(self):
        """R^T R = I for every axis."""
        from pathtracer.geometry.transform import rotation_matrix

        for axis in range(3):
            rot = rotation_matrix(axis, 37.0)
            assert np.allclose(rot.T @ rot, np.eye(3))

    def test_invalid_axis(self):
        """Axes other than 0, 1, 2 raise ValueError."""
        from pathtracer.geometry.transform import rotation_matrix

        with pytest.raises(ValueError):
            rotation_matrix(3, 10.0)

    def test_compose_translations(self):
        """Nested translations add up."""
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.geometry.transform import Translate, compose

        inner = Translate(Sphere((0, 0, 0), 1.0, _gray()), (1.0, 0.0, 0.0))
        outer = Translate(inner, (0.0, 2.0, 0.0))
        linear, offset = compose(outer.world_to_local(), inner.world_to_local())
        assert np.allclose(linear, np.eye(3))
        assert np.allclose(offset, (-1.0, -2.0, 0.0))


class TestTransformBoxes:
    """Tests for bounding boxes of decorated entities."""

    def test_translate_box(self):
        """Translation shifts the child's box."""
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.geometry.transform import Translate

        box = Translate(Sphere((0, 0, 0), 1.0, _gray()), (5.0, 0.0, -1.0)).bounding_box(0, 1)
        assert np.allclose(box.minimum, (4.0, -1.0, -2.0))
        assert np.allclose(box.maximum, (6.0, 1.0, 0.0))

    def test_rotate_y_box(self):
        """A quarter turn about y swaps the x and z extents."""
        from pathtracer.geometry.box import Box
        from pathtracer.geometry.transform import RotateY

        box = RotateY(Box((0, 0, 0), (2, 1, 1), _gray()), 90.0).bounding_box(0, 1)
        assert np.allclose(box.minimum, (0.0, 0.0, -2.0), atol=1e-9)
        assert np.allclose(box.maximum, (1.0, 1.0, 0.0), atol=1e-9)

    def test_rotate_encloses_rotated_corners(self):
        """The rotated box encloses every rotated corner."""
        from pathtracer.geometry.box import Box
        from pathtracer.geometry.transform import RotateY, rotation_matrix

        child = Box((0, 0, 0), (165, 330, 165), _gray())
        box = RotateY(child, 15.0).bounding_box(0, 1)
        corners = child.bounding_box(0, 1).corners() @ rotation_matrix(1, 15.0).T
        assert (corners >= box.minimum - 1e-9).all()
        assert (corners <= box.maximum + 1e-9).all()


class TestTransformScene:
    """Decorated entities intersected through the loaded scene."""

    def test_translated_sphere(self, fresh_scene):
        """The hit point and normal are reported in world space."""
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.geometry.transform import Translate
        from pathtracer.scene.intersection import query_hit

        fresh_scene.load_world(Translate(Sphere((0, 0, 0), 1.0, _gray()), (0.0, 0.0, 10.0)))
        rec = query_hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0))
        assert rec.hit
        assert abs(rec.t - 9.0) < 1e-4
        assert np.allclose(rec.point, (0.0, 0.0, 9.0), atol=1e-4)
        assert np.allclose(rec.normal, (0.0, 0.0, -1.0), atol=1e-5)
        assert rec.front_face

    def test_zero_translation_is_identity(self, fresh_scene):
        """Translating by zero gives the same hit as the bare entity."""
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.geometry.transform import Translate
        from pathtracer.scene.intersection import query_hit

        origin, direction = (0.3, -0.2, -4.0), (0.05, 0.1, 1.0)
        fresh_scene.load_world(Sphere((0, 0, 0), 1.0, _gray()))
        bare = query_hit(origin, direction)
        fresh_scene.load_world(Translate(Sphere((0, 0, 0), 1.0, _gray()), (0.0, 0.0, 0.0)))
        moved = query_hit(origin, direction)

        assert bare.hit and moved.hit
        assert abs(bare.t - moved.t) < 1e-5
        assert np.allclose(bare.normal, moved.normal, atol=1e-5)
        assert abs(bare.u - moved.u) < 1e-5
        assert abs(bare.v - moved.v) < 1e-5

    def test_rotated_box(self, fresh_scene):
        """A box turned a quarter about y is hit on its rotated face."""
        from pathtracer.geometry.box import Box
        from pathtracer.geometry.transform import RotateY
        from pathtracer.scene.intersection import query_hit

        fresh_scene.load_world(RotateY(Box((0, 0, 0), (2, 1, 1), _gray()), 90.0))
        rec = query_hit((0.5, 0.5, -5.0), (0.0, 0.0, 1.0))
        assert rec.hit
        # The box now spans z in [-2, 0]
        assert abs(rec.t - 3.0) < 1e-4
        assert np.allclose(rec.normal, (0.0, 0.0, -1.0), atol=1e-5)
        # Outside the rotated footprint
        assert not query_hit((1.5, 0.5, -5.0), (0.0, 0.0, 1.0)).hit

    def test_rotated_then_translated(self, fresh_scene):
        """Nested decorators compose: rotate first, then translate."""
        from pathtracer.geometry.box import Box
        from pathtracer.geometry.transform import RotateY, Translate
        from pathtracer.scene.intersection import query_hit

        world = Translate(RotateY(Box((0, 0, 0), (2, 1, 1), _gray()), 90.0), (10.0, 0.0, 0.0))
        stats = fresh_scene.load_world(world)
        assert stats.transforms == 3
        rec = query_hit((10.5, 0.5, -5.0), (0.0, 0.0, 1.0))
        assert rec.hit
        assert abs(rec.t - 3.0) < 1e-4
        assert abs(rec.point[0] - 10.5) < 1e-4
        assert not query_hit((0.5, 0.5, -5.0), (0.0, 0.0, 1.0)).hit

    def test_rotation_angle_matches_trigonometry(self, fresh_scene):
        """A sphere offset along x and turned 30 degrees lands on the circle."""
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.geometry.transform import RotateY
        from pathtracer.scene.intersection import query_hit

        fresh_scene.load_world(RotateY(Sphere((4, 0, 0), 0.5, _gray()), 30.0))
        theta = math.radians(30.0)
        center = (4.0 * math.cos(theta), 0.0, -4.0 * math.sin(theta))
        rec = query_hit((center[0], 5.0, center[2]), (0.0, -1.0, 0.0))
        assert rec.hit
        assert abs(rec.t - 4.5) < 1e-3

    def test_translation_shifts_hits(self, fresh_scene):
        """For any offset, the translated hit is the bare hit moved by that offset."""
        from pathtracer.geometry.box import Box
        from pathtracer.geometry.hittable_list import HittableList
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.geometry.transform import Translate
        from pathtracer.scene.intersection import query_hit

        def bare():
            return HittableList([Sphere((0, 0, 0), 1.0, _gray()), Box((1.5, -1, -1), (2.5, 1, 1), _gray())])

        rng = np.random.default_rng(11)
        for _ in range(40):
            offset = rng.uniform(-20.0, 20.0, size=3)
            origin = rng.uniform(-2.0, 2.0, size=3) + (0.0, 0.0, -6.0)
            target = rng.uniform((-1.5, -1.5, -1.5), (3.0, 1.5, 1.5))
            direction = target - origin

            fresh_scene.load_world(bare())
            expected = query_hit(origin, direction)
            fresh_scene.load_world(Translate(bare(), offset))
            moved = query_hit(origin + offset, direction)

            assert moved.hit == expected.hit
            if expected.hit:
                assert abs(moved.t - expected.t) < 1e-3
                assert np.allclose(np.subtract(moved.point, offset), expected.point, atol=1e-3)
                assert np.allclose(moved.normal, expected.normal, atol=1e-4)
                assert moved.front_face == expected.front_face
