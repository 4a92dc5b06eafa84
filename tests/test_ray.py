"""Unit tests for the Ray dataclass and vector helpers.

Tests cover:
- Ray construction and the time field
- Point evaluation along a ray
- Reflection and refraction helpers
- Random sampling utilities (unit sphere, unit vector, unit disk)
"""

import math

import pytest
import taichi as ti

N_SAMPLES = 2000


class TestRayBasics:
    """Tests for Ray construction and evaluation."""

    def test_make_ray_keeps_time(self):
        """A ray carries the shutter time it was created with."""
        from pathtracer.core.ray import make_ray

        result_time = ti.field(dtype=ti.f32, shape=())
        result_dir = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(ti.math.vec3(0.0, 0.0, 0.0), ti.math.vec3(0.0, 0.0, -2.0), 0.25)
            result_time[None] = ray.time
            result_dir[None] = ray.direction

        test_kernel()
        assert abs(result_time[None] - 0.25) < 1e-6
        # Directions are not normalized
        assert abs(result_dir[None][2] + 2.0) < 1e-6

    def test_ray_at(self):
        """ray_at returns origin + t * direction."""
        from pathtracer.core.ray import make_ray, ray_at

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(ti.math.vec3(1.0, 2.0, 3.0), ti.math.vec3(1.0, 0.0, -1.0), 0.0)
            result[None] = ray_at(ray, 2.5)

        test_kernel()
        p = result[None]
        assert abs(p[0] - 3.5) < 1e-6
        assert abs(p[1] - 2.0) < 1e-6
        assert abs(p[2] - 0.5) < 1e-6


class TestVectorHelpers:
    """Tests for reflect, refract and near_zero."""

    def test_reflect(self):
        """Reflection flips the normal component only."""
        from pathtracer.core.ray import reflect

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = reflect(ti.math.vec3(1.0, -1.0, 0.0), ti.math.vec3(0.0, 1.0, 0.0))

        test_kernel()
        d = result[None]
        assert abs(d[0] - 1.0) < 1e-6
        assert abs(d[1] - 1.0) < 1e-6
        assert abs(d[2]) < 1e-6

    def test_refract_normal_incidence(self):
        """A ray hitting head-on passes straight through."""
        from pathtracer.core.ray import refract

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = refract(
                ti.math.vec3(0.0, -1.0, 0.0), ti.math.vec3(0.0, 1.0, 0.0), 1.0 / 1.5
            )

        test_kernel()
        d = result[None]
        assert abs(d[0]) < 1e-6
        assert abs(d[1] + 1.0) < 1e-5
        assert abs(d[2]) < 1e-6

    def test_refract_obeys_snell(self):
        """sin(theta_t) = eta * sin(theta_i)."""
        from pathtracer.core.ray import refract

        result = ti.Vector.field(3, dtype=ti.f32, shape=())
        eta = 1.0 / 1.5

        @ti.kernel
        def test_kernel():
            s = ti.sqrt(0.5)
            result[None] = refract(ti.math.vec3(s, -s, 0.0), ti.math.vec3(0.0, 1.0, 0.0), eta)

        test_kernel()
        d = result[None]
        length = math.sqrt(d[0] ** 2 + d[1] ** 2 + d[2] ** 2)
        assert abs(length - 1.0) < 1e-5
        assert abs(d[0] - eta * math.sqrt(0.5)) < 1e-5
        assert d[1] < 0.0

    def test_refract_total_internal_reflection(self):
        """Beyond the critical angle refract returns the zero vector."""
        from pathtracer.core.ray import refract

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            d = ti.math.normalize(ti.math.vec3(1.0, -0.1, 0.0))
            result[None] = refract(d, ti.math.vec3(0.0, 1.0, 0.0), 1.5)

        test_kernel()
        d = result[None]
        assert d[0] == 0.0 and d[1] == 0.0 and d[2] == 0.0

    def test_near_zero(self):
        """Only vectors with every component below 1e-8 count as zero."""
        from pathtracer.core.ray import near_zero

        result = ti.field(dtype=ti.i32, shape=2)

        @ti.kernel
        def test_kernel():
            result[0] = near_zero(ti.math.vec3(1e-9, -1e-9, 0.0))
            result[1] = near_zero(ti.math.vec3(1e-9, 1e-3, 0.0))

        test_kernel()
        assert result[0] == 1
        assert result[1] == 0


class TestRandomSampling:
    """Tests for the Monte Carlo sampling helpers."""

    def test_random_in_unit_sphere(self):
        """Every sample lies strictly inside the unit sphere."""
        from pathtracer.core.ray import random_in_unit_sphere

        lengths = ti.field(dtype=ti.f32, shape=N_SAMPLES)

        @ti.kernel
        def test_kernel():
            for i in range(N_SAMPLES):
                lengths[i] = random_in_unit_sphere().norm()

        test_kernel()
        assert lengths.to_numpy().max() < 1.0

    def test_random_unit_vector(self):
        """Samples are unit length and roughly centred on the origin."""
        from pathtracer.core.ray import random_unit_vector

        samples = ti.Vector.field(3, dtype=ti.f32, shape=N_SAMPLES)

        @ti.kernel
        def test_kernel():
            for i in range(N_SAMPLES):
                samples[i] = random_unit_vector()

        test_kernel()
        arr = samples.to_numpy()
        norms = (arr**2).sum(axis=1) ** 0.5
        assert abs(norms - 1.0).max() < 1e-4
        assert abs(arr.mean(axis=0)).max() < 0.1

    def test_random_in_unit_disk(self):
        """Disk samples lie in the xy-plane inside the unit circle."""
        from pathtracer.core.ray import random_in_unit_disk

        samples = ti.Vector.field(3, dtype=ti.f32, shape=N_SAMPLES)

        @ti.kernel
        def test_kernel():
            for i in range(N_SAMPLES):
                samples[i] = random_in_unit_disk()

        test_kernel()
        arr = samples.to_numpy()
        assert (arr[:, 2] == 0.0).all()
        assert (arr[:, 0] ** 2 + arr[:, 1] ** 2).max() < 1.0

    @pytest.mark.parametrize("axis,expected", [(0, 1.0), (1, 2.0), (2, 3.0)])
    def test_vec3_component(self, axis, expected):
        """vec3_component selects a component by runtime index."""
        from pathtracer.core.ray import vec3_component

        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel(a: ti.i32):
            result[None] = vec3_component(ti.math.vec3(1.0, 2.0, 3.0), a)

        test_kernel(axis)
        assert result[None] == expected
