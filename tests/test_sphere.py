"""Unit tests for static and moving spheres.

Tests cover:
- Ray-sphere intersection from outside and inside
- Interval limits and misses
- Negative radius (inward-facing normals)
- Spherical (u, v) surface coordinates
- Host construction, validation and bounding boxes
- Moving spheres hit according to the ray time
"""

import math

import numpy as np
import pytest
import taichi as ti


def _run_hit(origin, direction, center=(0.0, 0.0, 0.0), radius=1.0, t_min=0.001, t_max=1e10):
    from pathtracer.core.ray import make_ray
    from pathtracer.geometry.sphere import hit_sphere

    hit = ti.field(dtype=ti.i32, shape=())
    t = ti.field(dtype=ti.f32, shape=())
    normal = ti.Vector.field(3, dtype=ti.f32, shape=())
    front = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel(o: ti.math.vec3, d: ti.math.vec3, c: ti.math.vec3, r: ti.f32, lo: ti.f32, hi: ti.f32):
        rec = hit_sphere(make_ray(o, d, 0.0), c, r, lo, hi)
        hit[None] = rec.hit
        t[None] = rec.t
        normal[None] = rec.normal
        front[None] = rec.front_face

    test_kernel(
        ti.math.vec3(*origin), ti.math.vec3(*direction), ti.math.vec3(*center), radius, t_min, t_max
    )
    return hit[None], t[None], normal[None], front[None]


class TestSphereIntersection:
    """Tests for the hit_sphere Taichi function."""

    def test_hit_from_outside(self):
        """A ray from outside hits the near side with an outward normal."""
        hit, t, normal, front = _run_hit((0.0, 0.0, -5.0), (0.0, 0.0, 1.0))
        assert hit == 1
        assert abs(t - 4.0) < 1e-5
        assert abs(normal[2] + 1.0) < 1e-5
        assert front == 1

    def test_unnormalized_direction(self):
        """t is measured in units of the direction length."""
        hit, t, _, _ = _run_hit((0.0, 0.0, -5.0), (0.0, 0.0, 2.0))
        assert hit == 1
        assert abs(t - 2.0) < 1e-5

    def test_hit_from_inside(self):
        """From inside, the far root is used and the normal faces the ray."""
        hit, t, normal, front = _run_hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0))
        assert hit == 1
        assert abs(t - 1.0) < 1e-5
        assert abs(normal[2] + 1.0) < 1e-5
        assert front == 0

    def test_miss(self):
        """A ray passing beside the sphere misses."""
        hit, _, _, _ = _run_hit((2.0, 0.0, -5.0), (0.0, 0.0, 1.0))
        assert hit == 0

    def test_behind_origin(self):
        """A sphere behind the ray origin is not hit."""
        hit, _, _, _ = _run_hit((0.0, 0.0, 5.0), (0.0, 0.0, 1.0))
        assert hit == 0

    def test_t_max_limits_hit(self):
        """Hits farther than t_max are rejected."""
        hit, _, _, _ = _run_hit((0.0, 0.0, -5.0), (0.0, 0.0, 1.0), t_max=3.0)
        assert hit == 0

    def test_t_min_selects_far_root(self):
        """When the near root is below t_min the far root is reported."""
        hit, t, _, front = _run_hit((0.0, 0.0, -5.0), (0.0, 0.0, 1.0), t_min=4.5)
        assert hit == 1
        assert abs(t - 6.0) < 1e-5
        assert front == 0

    def test_negative_radius_flips_normal(self):
        """A negative radius makes the surface face inward."""
        hit, t, normal, front = _run_hit((0.0, 0.0, -5.0), (0.0, 0.0, 1.0), radius=-1.0)
        assert hit == 1
        assert abs(t - 4.0) < 1e-5
        # The outward normal points inward, so the ray hits the back face
        assert front == 0
        assert abs(normal[2] + 1.0) < 1e-5


class TestSphereUV:
    """Tests for sphere_uv."""

    @pytest.mark.parametrize(
        "point,expected_u,expected_v",
        [
            ((1.0, 0.0, 0.0), 0.5, 0.5),
            ((0.0, 1.0, 0.0), None, 1.0),
            ((0.0, -1.0, 0.0), None, 0.0),
            ((0.0, 0.0, 1.0), 0.25, 0.5),
            ((0.0, 0.0, -1.0), 0.75, 0.5),
        ],
    )
    def test_uv_mapping(self, point, expected_u, expected_v):
        """Cardinal points map to the expected texture coordinates."""
        from pathtracer.geometry.sphere import sphere_uv

        result = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel(p: ti.math.vec3):
            u, v = sphere_uv(p)
            result[0] = u
            result[1] = v

        test_kernel(ti.math.vec3(*point))
        if expected_u is not None:
            assert abs(result[0] - expected_u) < 1e-5
        assert abs(result[1] - expected_v) < 1e-5
        assert 0.0 <= result[0] <= 1.0


class TestSphereHost:
    """Tests for host-side sphere construction."""

    def test_zero_radius_rejected(self):
        """A zero radius raises GeometryError."""
        from pathtracer.core.errors import GeometryError
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.materials.lambertian import Lambertian

        with pytest.raises(GeometryError):
            Sphere((0, 0, 0), 0.0, Lambertian((0.5, 0.5, 0.5)))

    def test_nonfinite_radius_rejected(self):
        """An infinite radius raises GeometryError, which is a ValueError."""
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.materials.lambertian import Lambertian

        with pytest.raises(ValueError):
            Sphere((0, 0, 0), math.inf, Lambertian((0.5, 0.5, 0.5)))

    def test_bounding_box_negative_radius(self):
        """The box uses the absolute radius."""
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.materials.lambertian import Lambertian

        box = Sphere((1, 2, 3), -0.5, Lambertian((0.5, 0.5, 0.5))).bounding_box(0.0, 1.0)
        assert np.allclose(box.minimum, (0.5, 1.5, 2.5))
        assert np.allclose(box.maximum, (1.5, 2.5, 3.5))

    def test_moving_center(self):
        """The centre is interpolated linearly in time."""
        from pathtracer.geometry.sphere import MovingSphere
        from pathtracer.materials.lambertian import Lambertian

        sphere = MovingSphere((0, 0, 0), (0, 2, 0), 0.0, 1.0, 0.5, Lambertian((0.5, 0.5, 0.5)))
        assert np.allclose(sphere.center(0.0), (0, 0, 0))
        assert np.allclose(sphere.center(0.5), (0, 1, 0))
        assert np.allclose(sphere.center(1.0), (0, 2, 0))

    def test_moving_box_covers_shutter(self):
        """The box encloses both ends of the motion."""
        from pathtracer.geometry.sphere import MovingSphere
        from pathtracer.materials.lambertian import Lambertian

        sphere = MovingSphere((0, 0, 0), (0, 2, 0), 0.0, 1.0, 0.5, Lambertian((0.5, 0.5, 0.5)))
        box = sphere.bounding_box(0.0, 1.0)
        assert np.allclose(box.minimum, (-0.5, -0.5, -0.5))
        assert np.allclose(box.maximum, (0.5, 2.5, 0.5))

    def test_zero_length_interval(self):
        """A zero-length interval keeps the centre at center0."""
        from pathtracer.geometry.sphere import MovingSphere
        from pathtracer.materials.lambertian import Lambertian

        sphere = MovingSphere((1, 1, 1), (5, 5, 5), 0.5, 0.5, 1.0, Lambertian((0.5, 0.5, 0.5)))
        assert np.allclose(sphere.center(0.9), (1, 1, 1))

    def test_inverted_interval_rejected(self):
        """time1 before time0 raises GeometryError."""
        from pathtracer.core.errors import GeometryError
        from pathtracer.geometry.sphere import MovingSphere
        from pathtracer.materials.lambertian import Lambertian

        with pytest.raises(GeometryError):
            MovingSphere((0, 0, 0), (0, 1, 0), 1.0, 0.0, 1.0, Lambertian((0.5, 0.5, 0.5)))


class TestMovingSphereScene:
    """Moving spheres are hit where they are at the ray's time."""

    def test_hit_depends_on_time(self, fresh_scene):
        """The sphere is at y=0 at time 0 and at y=2 at time 1."""
        from pathtracer.geometry.hittable_list import HittableList
        from pathtracer.geometry.sphere import MovingSphere
        from pathtracer.materials.lambertian import Lambertian
        from pathtracer.scene.intersection import query_hit

        sphere = MovingSphere((0, 0, 0), (0, 2, 0), 0.0, 1.0, 0.5, Lambertian((0.5, 0.5, 0.5)))
        fresh_scene.load_world(HittableList([sphere]))

        assert query_hit((0, 0, -5), (0, 0, 1), time=0.0).hit
        assert not query_hit((0, 0, -5), (0, 0, 1), time=1.0).hit
        late = query_hit((0, 2, -5), (0, 0, 1), time=1.0)
        assert late.hit
        assert abs(late.t - 4.5) < 1e-4
        mid = query_hit((0, 1, -5), (0, 0, 1), time=0.5)
        assert mid.hit
