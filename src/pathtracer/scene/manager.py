"""Unified scene manager coordinating materials, textures and geometry.

The SceneManager is the single entry point that turns a host-side entity
tree into the device tables read by the render kernels:

- Every material reachable from the scene is registered once, in the
  registry of its type, and receives a unified material id
- Textures used by those materials are registered in the texture table
- The entity tree is compiled into primitive/object tables and one BVH
- Everything is uploaded to Taichi fields

The unified id space maps material_id -> (material_type, type_local_index),
which the integrator uses to dispatch to the right scattering function.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.scene.manager import SceneManager
    >>> from pathtracer.scene.demo_scenes import cornell_box
    >>> world, settings = cornell_box()
    >>> stats = SceneManager().load_world(world, settings.time0, settings.time1)
    >>> stats.objects
    8
"""

import logging
from dataclasses import dataclass
from enum import IntEnum

import numpy as np
import taichi as ti

from pathtracer.geometry.hittable import Hittable
from pathtracer.materials.base import Material
from pathtracer.materials.dielectric import (
    Dielectric,
    add_dielectric_material,
    clear_dielectric_materials,
)
from pathtracer.materials.diffuse_light import (
    DiffuseLight,
    add_diffuse_light_material,
    clear_diffuse_light_materials,
)
from pathtracer.materials.isotropic import (
    Isotropic,
    add_isotropic_material,
    clear_isotropic_materials,
)
from pathtracer.materials.lambertian import (
    Lambertian,
    add_lambertian_material,
    clear_lambertian_materials,
)
from pathtracer.materials.metal import Metal, add_metal_material, clear_metal_materials
from pathtracer.scene.compiler import compile_scene
from pathtracer.scene.intersection import clear_scene, set_use_bvh, upload_scene
from pathtracer.textures.registry import clear_textures, get_texture_count, register_texture

logger = logging.getLogger(__name__)


class MaterialType(IntEnum):
    """Enumeration of supported material types.

    Used for material dispatch in the path tracer to determine which
    scattering function to call.
    """

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2
    ISOTROPIC = 3
    DIFFUSE_LIGHT = 4


# Maximum number of materials across all types
MAX_MATERIALS = 4096

# Taichi fields for GPU-side material type lookup
# material_types[i] stores the MaterialType for material_id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the type-local index for material_id i
# (e.g., if material_id 5 is the 2nd metal material, material_type_indices[5] = 1)
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    """Clear the material tracking fields."""
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material type for a given material ID.

    This is a Taichi function for use in GPU kernels.

    Args:
        material_id: The unified material ID.

    Returns:
        The material type as an integer (see MaterialType enum).
        Returns -1 for invalid material IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the type-local index for a given material ID.

    Args:
        material_id: The unified material ID.

    Returns:
        The index into the type-specific material array.
        Returns -1 for invalid material IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The unified material ID.
        material_type: The type of material.
        type_index: The index within the type-specific material array.
        material: The host material object.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    material: Material


@dataclass
class SceneStats:
    """Summary of a loaded scene.

    Attributes:
        primitives: Number of device primitives (a box counts six).
        objects: Number of BVH leaves.
        transforms: Number of rigid transforms, including the identity.
        bvh_nodes: Number of flattened BVH nodes.
        bvh_depth: Depth of the BVH.
        materials: Number of distinct materials.
        textures: Number of texture table entries.
    """

    primitives: int
    objects: int
    transforms: int
    bvh_nodes: int
    bvh_depth: int
    materials: int
    textures: int


class SceneManager:
    """Unified scene manager coordinating geometry and materials.

    Materials are shared by identity: registering the same instance twice
    returns the same id, so one material may back any number of primitives.

    Attributes:
        materials: MaterialInfo for all registered materials, by id.
        stats: Statistics of the last loaded scene, or None.

    Example:
        >>> scene = SceneManager()
        >>> glass = scene.register_material(Dielectric(1.5))
        >>> scene.register_material(Lambertian((0.8, 0.1, 0.1)))
        1
    """

    def __init__(self) -> None:
        """Initialize an empty scene."""
        self.materials: list[MaterialInfo] = []
        self.stats: SceneStats | None = None
        self._material_ids: dict[int, int] = {}
        self._clear_all()

    def _clear_all(self) -> None:
        """Clear all scene data including Taichi fields."""
        clear_scene()
        clear_textures()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        clear_isotropic_materials()
        clear_diffuse_light_materials()
        _clear_material_tracking()
        self.materials.clear()
        self._material_ids.clear()
        self.stats = None

    def clear(self) -> None:
        """Clear the entire scene (geometry, materials and textures)."""
        self._clear_all()

    # =========================================================================
    # Material Management
    # =========================================================================

    def register_material(self, material: Material) -> int:
        """Register a material (and its textures) for rendering.

        Args:
            material: The host material.

        Returns:
            The unified material ID.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            TypeError: If the material type is unknown.
        """
        existing = self._material_ids.get(id(material))
        if existing is not None:
            return existing

        material_id = num_materials[None]
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

        if isinstance(material, Lambertian):
            material_type = MaterialType.LAMBERTIAN
            type_index = add_lambertian_material(register_texture(material.albedo))
        elif isinstance(material, Metal):
            material_type = MaterialType.METAL
            type_index = add_metal_material(tuple(material.albedo), material.fuzz)
        elif isinstance(material, Dielectric):
            material_type = MaterialType.DIELECTRIC
            type_index = add_dielectric_material(material.ior)
        elif isinstance(material, Isotropic):
            material_type = MaterialType.ISOTROPIC
            type_index = add_isotropic_material(register_texture(material.albedo))
        elif isinstance(material, DiffuseLight):
            material_type = MaterialType.DIFFUSE_LIGHT
            type_index = add_diffuse_light_material(register_texture(material.emit))
        else:
            raise TypeError(f"Unsupported material type {type(material).__name__}")

        # Update Taichi fields
        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        # Track locally
        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                type_index=type_index,
                material=material,
            )
        )
        self._material_ids[id(material)] = material_id
        return material_id

    def get_material_count(self) -> int:
        """Get the total number of materials in the scene."""
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Get information about a material by ID.

        Args:
            material_id: The unified material ID.

        Returns:
            MaterialInfo for the material, or None if not found.
        """
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    # =========================================================================
    # Scene loading
    # =========================================================================

    def load_world(
        self,
        world: Hittable,
        time0: float = 0.0,
        time1: float = 1.0,
        seed: int = 0,
        use_bvh: bool = True,
    ) -> SceneStats:
        """Replace the current scene with ``world``.

        Args:
            world: Root entity of the scene.
            time0: Shutter open time.
            time1: Shutter close time.
            seed: Seed of the BVH construction.
            use_bvh: Traverse the BVH (True) or scan objects linearly.

        Returns:
            Statistics about the uploaded tables.

        Raises:
            GeometryError: If the scene contains an invalid construct.
            RuntimeError: If a device table capacity is exceeded.
        """
        self._clear_all()
        compiled = compile_scene(
            world,
            self.register_material,
            time0,
            time1,
            rng=np.random.default_rng(seed),
        )
        upload_scene(compiled)
        set_use_bvh(use_bvh)

        self.stats = SceneStats(
            primitives=len(compiled.primitives),
            objects=len(compiled.objects),
            transforms=len(compiled.transforms),
            bvh_nodes=0 if compiled.bvh is None else len(compiled.bvh),
            bvh_depth=compiled.bvh_depth,
            materials=self.get_material_count(),
            textures=get_texture_count(),
        )
        if self.stats.objects == 0:
            logger.warning("Loaded an empty scene; every ray will see the background")
        logger.info(
            "Loaded scene: %d primitives, %d objects, %d materials, %d textures, BVH depth %d",
            self.stats.primitives,
            self.stats.objects,
            self.stats.materials,
            self.stats.textures,
            self.stats.bvh_depth,
        )
        return self.stats
