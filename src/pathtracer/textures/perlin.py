"""Perlin gradient noise and turbulence.

One shared lattice is used by every noise texture: 256 random unit
gradients plus one random permutation per axis. The tables are generated on
the host with NumPy from an explicit seed and uploaded to Taichi fields by
:func:`init_perlin`.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.textures.perlin import init_perlin, turbulence
    >>> init_perlin(seed=0)
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

POINT_COUNT = 256
TURBULENCE_DEPTH = 7

perlin_ranvec = ti.Vector.field(3, dtype=ti.f32, shape=POINT_COUNT)
perlin_perm_x = ti.field(dtype=ti.i32, shape=POINT_COUNT)
perlin_perm_y = ti.field(dtype=ti.i32, shape=POINT_COUNT)
perlin_perm_z = ti.field(dtype=ti.i32, shape=POINT_COUNT)
perlin_ready = ti.field(dtype=ti.i32, shape=())


def generate_perlin_tables(
    rng: np.random.Generator,
) -> tuple[npt.NDArray[np.float32], npt.NDArray[np.int32], npt.NDArray[np.int32], npt.NDArray[np.int32]]:
    """Draw the gradient table and the three permutations.

    Args:
        rng: Random source.

    Returns:
        Tuple of (ranvec, perm_x, perm_y, perm_z); ranvec has shape (256, 3)
        with unit rows.
    """
    ranvec = rng.uniform(-1.0, 1.0, size=(POINT_COUNT, 3))
    norms = np.linalg.norm(ranvec, axis=1, keepdims=True)
    # Zero rows map to +x
    ranvec = np.where(norms > 1e-12, ranvec / np.maximum(norms, 1e-12), [1.0, 0.0, 0.0])
    perms = [rng.permutation(POINT_COUNT).astype(np.int32) for _ in range(3)]
    return ranvec.astype(np.float32), perms[0], perms[1], perms[2]


def init_perlin(seed: int = 0, force: bool = False) -> None:
    """Generate and upload the shared noise lattice.

    Subsequent calls are no-ops unless ``force`` is set, so every noise
    texture in a scene samples the same lattice.

    Args:
        seed: Seed of the NumPy generator.
        force: Regenerate even if the lattice was already uploaded.
    """
    if perlin_ready[None] == 1 and not force:
        return
    ranvec, perm_x, perm_y, perm_z = generate_perlin_tables(np.random.default_rng(seed))
    perlin_ranvec.from_numpy(ranvec)
    perlin_perm_x.from_numpy(perm_x)
    perlin_perm_y.from_numpy(perm_y)
    perlin_perm_z.from_numpy(perm_z)
    perlin_ready[None] = 1


@ti.func
def perlin_noise(p: vec3) -> ti.f32:
    """Gradient noise at ``p``, roughly in [-1, 1].

    The eight lattice gradients around ``p`` are dotted with the offsets to
    ``p`` and blended trilinearly with Hermite-smoothed weights.
    """
    fp = ti.floor(p)
    f = p - fp
    i = ti.cast(fp.x, ti.i32)
    j = ti.cast(fp.y, ti.i32)
    k = ti.cast(fp.z, ti.i32)

    # Hermite cubic to round off interpolation
    uu = f.x * f.x * (3.0 - 2.0 * f.x)
    vv = f.y * f.y * (3.0 - 2.0 * f.y)
    ww = f.z * f.z * (3.0 - 2.0 * f.z)

    accum = 0.0
    for di in ti.static(range(2)):
        for dj in ti.static(range(2)):
            for dk in ti.static(range(2)):
                index = (
                    perlin_perm_x[(i + di) & 255]
                    ^ perlin_perm_y[(j + dj) & 255]
                    ^ perlin_perm_z[(k + dk) & 255]
                )
                weight = vec3(f.x - di, f.y - dj, f.z - dk)
                accum += (
                    (di * uu + (1 - di) * (1.0 - uu))
                    * (dj * vv + (1 - dj) * (1.0 - vv))
                    * (dk * ww + (1 - dk) * (1.0 - ww))
                    * tm.dot(perlin_ranvec[index], weight)
                )
    return accum


@ti.func
def turbulence(p: vec3) -> ti.f32:
    """Sum of TURBULENCE_DEPTH noise octaves, each at twice the frequency
    and half the weight of the previous one. Always non-negative."""
    accum = 0.0
    temp_p = p
    weight = 1.0
    for _ in ti.static(range(TURBULENCE_DEPTH)):
        accum += weight * perlin_noise(temp_p)
        weight *= 0.5
        temp_p *= 2.0
    return ti.abs(accum)
