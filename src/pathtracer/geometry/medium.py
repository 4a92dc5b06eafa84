"""Constant-density participating medium.

A :class:`ConstantMedium` fills the inside of a convex boundary entity with
a uniform scattering density. A ray crossing the boundary travels an
exponentially distributed free-flight distance ``-ln(xi) / density``; if it
would leave the boundary first, the medium is not hit. Otherwise the hit is
placed at that distance with an arbitrary normal and an isotropic phase
function.

The device routine :func:`hit_medium` needs to intersect the boundary
twice, so it lives next to the scene tables in
:mod:`pathtracer.scene.intersection`.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from pathtracer.core.aabb import AABB
from pathtracer.core.errors import GeometryError
from pathtracer.geometry.hittable import Hittable
from pathtracer.materials.isotropic import Isotropic
from pathtracer.textures.texture import Texture


class ConstantMedium(Hittable):
    """A volume of constant density bounded by another entity.

    Args:
        boundary: Convex entity delimiting the volume.
        density: Interaction density; must be positive and finite.
        albedo: Colour or texture of the isotropic phase function.

    Attributes:
        neg_inv_density: ``-1 / density``, the scale of the sampled
            free-flight distance.
        phase_function: The isotropic material scattered into.
    """

    def __init__(
        self,
        boundary: Hittable,
        density: float,
        albedo: Texture | Sequence[float],
    ) -> None:
        density = float(density)
        if not (density > 0.0 and math.isfinite(density)):
            raise GeometryError(f"Medium density = {density} must be positive and finite")
        self.boundary = boundary
        self.density = density
        self.neg_inv_density = -1.0 / density
        self.phase_function = Isotropic(albedo)

    def __repr__(self) -> str:
        return f"ConstantMedium({self.boundary!r}, density={self.density})"

    def bounding_box(self, time0: float, time1: float) -> AABB | None:
        return self.boundary.bounding_box(time0, time1)
