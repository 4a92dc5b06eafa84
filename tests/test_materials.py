"""Unit tests for the material modules.

Tests cover:
- Lambertian: normalized cosine-weighted bounces, textured attenuation
- Metal: perfect and fuzzy reflection, absorption below the surface
- Dielectric: refraction, total internal reflection, index-matched media
- Isotropic: uniform scattering directions
- DiffuseLight: emission lookups
- Parameter validation (albedo, fuzz, index of refraction, emission)
"""

import math

import numpy as np
import pytest
import taichi as ti

N_SAMPLES = 4000


def _up_hit_record():
    """Return a ti.func building a front-face hit at the origin with normal +y."""
    from pathtracer.geometry.hittable import HitRecord

    @ti.func
    def make():
        return HitRecord(
            hit=1,
            t=1.0,
            point=ti.math.vec3(0.0, 0.0, 0.0),
            normal=ti.math.vec3(0.0, 1.0, 0.0),
            u=0.5,
            v=0.5,
            front_face=1,
            material_id=0,
        )

    return make


class TestValidation:
    """Tests for host-side parameter validation."""

    @pytest.mark.parametrize("albedo", [(1.1, 0.5, 0.5), (0.5, -0.1, 0.5)])
    def test_albedo_out_of_range(self, albedo):
        """Albedo components must lie in [0, 1]."""
        from pathtracer.materials.lambertian import Lambertian
        from pathtracer.materials.metal import Metal

        with pytest.raises(ValueError):
            Lambertian(albedo)
        with pytest.raises(ValueError):
            Metal(albedo, 0.0)

    def test_albedo_wrong_length(self):
        """Colours must have three components."""
        from pathtracer.materials.lambertian import Lambertian

        with pytest.raises(ValueError):
            Lambertian((0.5, 0.5))

    @pytest.mark.parametrize("fuzz", [-0.1, 1.5])
    def test_fuzz_out_of_range(self, fuzz):
        """Fuzz must lie in [0, 1]."""
        from pathtracer.materials.metal import Metal

        with pytest.raises(ValueError):
            Metal((0.5, 0.5, 0.5), fuzz)

    def test_fuzz_bounds_accepted(self):
        """Both ends of the fuzz range are valid."""
        from pathtracer.materials.metal import Metal

        assert Metal((0.5, 0.5, 0.5), 0.0).fuzz == 0.0
        assert Metal((0.5, 0.5, 0.5), 1.0).fuzz == 1.0

    @pytest.mark.parametrize("ior", [0.0, -1.5, math.inf, math.nan])
    def test_invalid_ior(self, ior):
        """The index of refraction must be positive and finite."""
        from pathtracer.materials.dielectric import Dielectric

        with pytest.raises(ValueError):
            Dielectric(ior)

    def test_bubble_ior_accepted(self):
        """An index below 1 models a bubble and is allowed."""
        from pathtracer.materials.dielectric import Dielectric

        assert Dielectric(1.0 / 1.5).ior == pytest.approx(1.0 / 1.5)

    def test_negative_emission(self):
        """Emission may exceed 1 but not go negative."""
        from pathtracer.materials.diffuse_light import DiffuseLight

        assert DiffuseLight((15.0, 15.0, 15.0)).emit.color[0] == 15.0
        with pytest.raises(ValueError):
            DiffuseLight((1.0, -1.0, 1.0))

    def test_textured_materials_keep_texture(self):
        """A texture is used as is instead of a solid colour."""
        from pathtracer.materials.lambertian import Lambertian
        from pathtracer.textures.texture import CheckerTexture

        checker = CheckerTexture((0, 0, 0), (1, 1, 1))
        assert Lambertian(checker).albedo is checker


class TestLambertian:
    """Tests for diffuse scattering."""

    def test_directions_normalized_and_above_surface(self):
        """Bounces are unit length and never go below the surface."""
        from pathtracer.materials.lambertian import scatter_lambertian_direction

        samples = ti.Vector.field(3, dtype=ti.f32, shape=N_SAMPLES)

        @ti.kernel
        def test_kernel():
            for i in range(N_SAMPLES):
                samples[i] = scatter_lambertian_direction(ti.math.vec3(0.0, 1.0, 0.0))

        test_kernel()
        arr = samples.to_numpy()
        norms = np.linalg.norm(arr, axis=1)
        assert np.abs(norms - 1.0).max() < 1e-4
        assert arr[:, 1].min() >= -1e-5

    def test_cosine_distribution(self):
        """For a cosine-weighted lobe the mean cosine is 2/3."""
        from pathtracer.materials.lambertian import scatter_lambertian_direction

        samples = ti.Vector.field(3, dtype=ti.f32, shape=N_SAMPLES)

        @ti.kernel
        def test_kernel():
            for i in range(N_SAMPLES):
                samples[i] = scatter_lambertian_direction(ti.math.vec3(0.0, 0.0, 1.0))

        test_kernel()
        arr = samples.to_numpy()
        assert abs(arr[:, 2].mean() - 2.0 / 3.0) < 0.03
        assert abs(arr[:, 0].mean()) < 0.05

    def test_scatter_by_id_uses_texture(self):
        """The attenuation is the albedo texture at the hit."""
        from pathtracer.core.ray import make_ray
        from pathtracer.materials.lambertian import add_lambertian_material, scatter_lambertian_by_id
        from pathtracer.textures.registry import register_texture
        from pathtracer.textures.texture import SolidColor

        idx = add_lambertian_material(register_texture(SolidColor((0.2, 0.4, 0.6))))
        make_hit = _up_hit_record()

        attenuation = ti.Vector.field(3, dtype=ti.f32, shape=())
        origin = ti.Vector.field(3, dtype=ti.f32, shape=())
        scattered = ti.field(dtype=ti.i32, shape=())
        time = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel(material_idx: ti.i32):
            ray = make_ray(ti.math.vec3(0.0, 1.0, 0.0), ti.math.vec3(0.0, -1.0, 0.0), 0.7)
            out, att, did = scatter_lambertian_by_id(material_idx, ray, make_hit())
            attenuation[None] = att
            origin[None] = out.origin
            scattered[None] = did
            time[None] = out.time

        test_kernel(idx)
        assert np.allclose(attenuation[None].to_numpy(), (0.2, 0.4, 0.6), atol=1e-6)
        assert np.allclose(origin[None].to_numpy(), (0.0, 0.0, 0.0))
        assert scattered[None] == 1
        # Scattered rays keep the incoming ray's time
        assert abs(time[None] - 0.7) < 1e-6


class TestMetal:
    """Tests for specular scattering."""

    def test_perfect_reflection(self):
        """With zero fuzz the mirror direction is exact."""
        from pathtracer.materials.metal import scatter_metal

        direction = ti.Vector.field(3, dtype=ti.f32, shape=())
        attenuation = ti.Vector.field(3, dtype=ti.f32, shape=())
        did = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            d, a, s = scatter_metal(
                ti.math.vec3(0.9, 0.8, 0.7),
                0.0,
                ti.math.vec3(2.0, -2.0, 0.0),
                ti.math.vec3(0.0, 1.0, 0.0),
            )
            direction[None] = d
            attenuation[None] = a
            did[None] = s

        test_kernel()
        s = math.sqrt(0.5)
        assert np.allclose(direction[None].to_numpy(), (s, s, 0.0), atol=1e-5)
        assert np.allclose(attenuation[None].to_numpy(), (0.9, 0.8, 0.7), atol=1e-6)
        assert did[None] == 1

    def test_fuzz_stays_near_mirror(self):
        """Fuzzy reflections deviate from the mirror direction by at most fuzz."""
        from pathtracer.materials.metal import scatter_metal

        directions = ti.Vector.field(3, dtype=ti.f32, shape=N_SAMPLES)

        @ti.kernel
        def test_kernel():
            for i in range(N_SAMPLES):
                d, _, _ = scatter_metal(
                    ti.math.vec3(1.0, 1.0, 1.0),
                    0.3,
                    ti.math.vec3(0.0, -1.0, 0.0),
                    ti.math.vec3(0.0, 1.0, 0.0),
                )
                directions[i] = d

        test_kernel()
        arr = directions.to_numpy()
        deviation = np.linalg.norm(arr - np.array([0.0, 1.0, 0.0]), axis=1)
        assert deviation.max() <= 0.3 + 1e-5
        assert deviation.mean() > 0.0

    def test_grazing_fuzz_absorbs_some_rays(self):
        """At grazing incidence fuzz pushes some rays below the surface."""
        from pathtracer.materials.metal import scatter_metal

        did = ti.field(dtype=ti.i32, shape=N_SAMPLES)

        @ti.kernel
        def test_kernel():
            for i in range(N_SAMPLES):
                incident = ti.math.normalize(ti.math.vec3(1.0, -0.05, 0.0))
                _, _, s = scatter_metal(
                    ti.math.vec3(1.0, 1.0, 1.0), 1.0, incident, ti.math.vec3(0.0, 1.0, 0.0)
                )
                did[i] = s

        test_kernel()
        absorbed = N_SAMPLES - int(did.to_numpy().sum())
        assert 0 < absorbed < N_SAMPLES


class TestDielectric:
    """Tests for refractive scattering."""

    def _scatter(self, ior, incident, normal, front_face, n=N_SAMPLES):
        from pathtracer.materials.dielectric import scatter_dielectric

        directions = ti.Vector.field(3, dtype=ti.f32, shape=n)
        attenuation = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel(i_dir: ti.math.vec3, nrm: ti.math.vec3, eta: ti.f32, front: ti.i32):
            for i in range(n):
                d, a, _ = scatter_dielectric(eta, i_dir, nrm, front)
                directions[i] = d
                attenuation[None] = a

        test_kernel(ti.math.vec3(*incident), ti.math.vec3(*normal), ior, front_face)
        return directions.to_numpy(), attenuation[None].to_numpy()

    def test_index_matched_passes_straight_through(self):
        """With ior 1 every ray continues undeviated."""
        s = math.sqrt(0.5)
        dirs, attenuation = self._scatter(1.0, (s, -s, 0.0), (0.0, 1.0, 0.0), 1)
        assert np.allclose(dirs, np.array([s, -s, 0.0]), atol=1e-5)
        assert np.allclose(attenuation, (1.0, 1.0, 1.0))

    def test_total_internal_reflection(self):
        """Leaving glass at a grazing angle always reflects."""
        incident = np.array([1.0, 0.2, 0.0])
        incident /= np.linalg.norm(incident)
        # Inside the glass the normal faces the ray
        dirs, _ = self._scatter(1.5, tuple(incident), (0.0, -1.0, 0.0), 0)
        expected = incident * np.array([1.0, -1.0, 1.0])
        assert np.allclose(dirs, expected, atol=1e-5)

    def test_normal_incidence_mostly_refracts(self):
        """Head-on, about 4% of rays reflect off glass."""
        dirs, _ = self._scatter(1.5, (0.0, -1.0, 0.0), (0.0, 1.0, 0.0), 1)
        reflected = (dirs[:, 1] > 0.0).mean()
        assert np.allclose(np.linalg.norm(dirs, axis=1), 1.0, atol=1e-4)
        assert 0.02 < reflected < 0.06
        refracted = dirs[dirs[:, 1] < 0.0]
        assert np.allclose(refracted, (0.0, -1.0, 0.0), atol=1e-5)

    def test_fresnel_reflectance(self):
        """Schlick reflectance at normal incidence is ((1-r)/(1+r))^2."""
        from pathtracer.materials.dielectric import fresnel_reflectance

        result = ti.field(dtype=ti.f32, shape=3)

        @ti.kernel
        def test_kernel():
            result[0] = fresnel_reflectance(1.0, 1.0 / 1.5)
            result[1] = fresnel_reflectance(0.0, 1.0 / 1.5)
            result[2] = fresnel_reflectance(0.3, 1.0)

        test_kernel()
        assert abs(result[0] - 0.04) < 1e-5
        assert abs(result[1] - 1.0) < 1e-5
        assert result[2] == 0.0


class TestIsotropicAndLight:
    """Tests for isotropic scattering and emission."""

    def test_isotropic_unit_directions(self):
        """Phase-function samples are unit length with no preferred direction."""
        from pathtracer.core.ray import make_ray
        from pathtracer.materials.isotropic import add_isotropic_material, scatter_isotropic_by_id
        from pathtracer.textures.registry import register_texture
        from pathtracer.textures.texture import SolidColor

        idx = add_isotropic_material(register_texture(SolidColor((0.5, 0.5, 0.5))))
        make_hit = _up_hit_record()
        directions = ti.Vector.field(3, dtype=ti.f32, shape=N_SAMPLES)
        attenuation = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel(material_idx: ti.i32):
            for i in range(N_SAMPLES):
                ray = make_ray(ti.math.vec3(0.0, 0.0, 0.0), ti.math.vec3(1.0, 0.0, 0.0), 0.0)
                out, att, _ = scatter_isotropic_by_id(material_idx, ray, make_hit())
                directions[i] = out.direction
                attenuation[None] = att

        test_kernel(idx)
        arr = directions.to_numpy()
        assert np.abs(np.linalg.norm(arr, axis=1) - 1.0).max() < 1e-4
        assert np.abs(arr.mean(axis=0)).max() < 0.06
        assert np.allclose(attenuation[None].to_numpy(), (0.5, 0.5, 0.5), atol=1e-6)

    def test_emission_round_trip(self):
        """A registered light returns its emission colour."""
        from pathtracer.materials.diffuse_light import (
            add_diffuse_light_material,
            emitted_diffuse_light_by_id,
            get_diffuse_light_material_count,
        )
        from pathtracer.textures.registry import register_texture
        from pathtracer.textures.texture import SolidColor

        idx = add_diffuse_light_material(register_texture(SolidColor((4.0, 2.0, 1.0))))
        assert get_diffuse_light_material_count() == 1
        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel(material_idx: ti.i32):
            result[None] = emitted_diffuse_light_by_id(
                material_idx, 0.3, 0.6, ti.math.vec3(1.0, 2.0, 3.0)
            )

        test_kernel(idx)
        assert np.allclose(result[None].to_numpy(), (4.0, 2.0, 1.0), atol=1e-6)

    def test_registry_counts(self):
        """Each material registry counts its own entries."""
        from pathtracer.materials.dielectric import (
            add_dielectric_material,
            clear_dielectric_materials,
            get_dielectric_material_count,
        )
        from pathtracer.materials.metal import add_metal_material, get_metal_material_count

        assert add_metal_material((0.5, 0.5, 0.5), 0.1) == 0
        assert add_metal_material((0.9, 0.9, 0.9)) == 1
        assert get_metal_material_count() == 2
        assert add_dielectric_material(1.33) == 0
        assert get_dielectric_material_count() == 1
        clear_dielectric_materials()
        assert get_dielectric_material_count() == 0
