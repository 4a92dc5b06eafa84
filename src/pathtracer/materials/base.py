"""Host-side material interface.

A material describes how a surface scatters and emits light. Host material
objects are shared by identity: the scene manager registers each instance
once and every primitive using it stores the same unified material id.

The device-side behavior of each material lives next to its class
(``scatter_<name>`` Taichi functions over a per-type registry); dispatch by
material type happens in :mod:`pathtracer.core.integrator`.
"""

from __future__ import annotations

import abc
from collections.abc import Sequence

import numpy as np
import numpy.typing as npt

from pathtracer.textures.texture import SolidColor, Texture, as_color


def check_albedo(value: Sequence[float], name: str = "Albedo") -> npt.NDArray[np.float64]:
    """Validate a reflectance colour.

    Raises:
        ValueError: If any component is outside [0, 1].
    """
    color = as_color(value, name)
    for i, component in enumerate(color):
        if component < 0.0 or component > 1.0:
            raise ValueError(
                f"{name} component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )
    return color


def albedo_texture(value: Texture | Sequence[float]) -> Texture:
    """Accept a texture as is, or a validated colour wrapped in a SolidColor."""
    if isinstance(value, Texture):
        return value
    return SolidColor(check_albedo(value))


class Material(abc.ABC):
    """Base class of all surface and volume materials."""
