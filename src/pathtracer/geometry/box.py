"""Axis-aligned box built from six rectangles."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

import numpy as np

from pathtracer.core.aabb import AABB
from pathtracer.core.errors import GeometryError
from pathtracer.geometry.hittable import Hittable
from pathtracer.geometry.rect import AxisAlignedRect, XYRect, XZRect, YZRect

if TYPE_CHECKING:
    from pathtracer.materials.base import Material


class Box(Hittable):
    """A closed box spanning the corners ``p0`` and ``p1``.

    The box is hit exactly like the list of its six sides; all sides share
    the box material.

    Attributes:
        box_min: Minimum corner.
        box_max: Maximum corner.
        material: Material of every side.
    """

    def __init__(self, p0: Sequence[float], p1: Sequence[float], material: Material) -> None:
        self.box_min = np.asarray(p0, dtype=np.float64).reshape(3)
        self.box_max = np.asarray(p1, dtype=np.float64).reshape(3)
        if not np.all(self.box_min < self.box_max):
            raise GeometryError(
                f"Box corners {self.box_min.tolist()} and {self.box_max.tolist()} "
                "must be strictly increasing on every axis"
            )
        self.material = material

    def __repr__(self) -> str:
        return f"Box(p0={self.box_min.tolist()}, p1={self.box_max.tolist()})"

    def sides(self) -> list[AxisAlignedRect]:
        """Return the six faces, two per axis (far face first)."""
        x0, y0, z0 = self.box_min
        x1, y1, z1 = self.box_max
        mat = self.material
        return [
            XYRect(x0, x1, y0, y1, z1, mat),
            XYRect(x0, x1, y0, y1, z0, mat),
            XZRect(x0, x1, z0, z1, y1, mat),
            XZRect(x0, x1, z0, z1, y0, mat),
            YZRect(y0, y1, z0, z1, x1, mat),
            YZRect(y0, y1, z0, z1, x0, mat),
        ]

    def bounding_box(self, time0: float, time1: float) -> AABB:
        return AABB(self.box_min, self.box_max)
