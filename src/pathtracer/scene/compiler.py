"""Flatten a host entity tree into device-ready arrays.

Taichi kernels have neither recursion nor virtual dispatch, so the tree of
:class:`~pathtracer.geometry.hittable.Hittable` objects is compiled into a
two-level layout before upload:

- **Primitives** are the leaves that have a device intersection routine
  (spheres, moving spheres, rectangles). Each stores its material id and
  the index of the rigid transform that maps world rays into its frame.
- **Objects** are the units the BVH is built over. A surface object owns a
  contiguous range of primitives (one for a sphere, six for a box) and is
  hit as their nearest hit. A medium object owns the primitives of its
  boundary.

Aggregates (lists and user-built BVHs) are dissolved, nested decorators are
composed into a single affine map, and one fresh BVH is built over the
objects.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import IntEnum

import numpy as np
import numpy.typing as npt

from pathtracer.core.aabb import AABB, surrounding_box
from pathtracer.core.errors import GeometryError
from pathtracer.geometry.box import Box
from pathtracer.geometry.bvh import BVHNode, FlatBVH, flatten_bvh
from pathtracer.geometry.hittable import Hittable
from pathtracer.geometry.hittable_list import HittableList
from pathtracer.geometry.medium import ConstantMedium
from pathtracer.geometry.rect import AxisAlignedRect
from pathtracer.geometry.sphere import MovingSphere, Sphere
from pathtracer.geometry.transform import Transform, compose
from pathtracer.materials.base import Material

logger = logging.getLogger(__name__)

Affine = tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]
IDENTITY: Affine = (np.eye(3), np.zeros(3))


class PrimitiveKind(IntEnum):
    """Tag of a primitive table entry."""

    SPHERE = 0
    MOVING_SPHERE = 1
    RECT = 2


class ObjectKind(IntEnum):
    """Tag of an object table entry."""

    SURFACE = 0
    MEDIUM = 1


@dataclass
class PrimitiveTable:
    """Structure-of-arrays primitive data, one row per primitive."""

    kinds: list[int] = field(default_factory=list)
    center0: list[npt.NDArray[np.float64]] = field(default_factory=list)
    center1: list[npt.NDArray[np.float64]] = field(default_factory=list)
    time0: list[float] = field(default_factory=list)
    time1: list[float] = field(default_factory=list)
    radius: list[float] = field(default_factory=list)
    axis: list[int] = field(default_factory=list)
    bounds: list[tuple[float, float, float, float]] = field(default_factory=list)
    k: list[float] = field(default_factory=list)
    materials: list[int] = field(default_factory=list)
    transforms: list[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.kinds)

    def as_arrays(self) -> dict[str, np.ndarray]:
        """Return every column as a contiguous NumPy array."""
        n = len(self)
        return {
            "kinds": np.asarray(self.kinds, dtype=np.int32),
            "center0": np.asarray(self.center0, dtype=np.float32).reshape(n, 3),
            "center1": np.asarray(self.center1, dtype=np.float32).reshape(n, 3),
            "time0": np.asarray(self.time0, dtype=np.float32),
            "time1": np.asarray(self.time1, dtype=np.float32),
            "radius": np.asarray(self.radius, dtype=np.float32),
            "axis": np.asarray(self.axis, dtype=np.int32),
            "bounds": np.asarray(self.bounds, dtype=np.float32).reshape(n, 4),
            "k": np.asarray(self.k, dtype=np.float32),
            "materials": np.asarray(self.materials, dtype=np.int32),
            "transforms": np.asarray(self.transforms, dtype=np.int32),
        }


@dataclass
class ObjectTable:
    """Structure-of-arrays object data, one row per BVH leaf."""

    kinds: list[int] = field(default_factory=list)
    prim_start: list[int] = field(default_factory=list)
    prim_count: list[int] = field(default_factory=list)
    neg_inv_density: list[float] = field(default_factory=list)
    phase_materials: list[int] = field(default_factory=list)
    boxes: list[AABB] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.kinds)

    def as_arrays(self) -> dict[str, np.ndarray]:
        """Return every column as a contiguous NumPy array."""
        n = len(self)
        return {
            "kinds": np.asarray(self.kinds, dtype=np.int32),
            "prim_start": np.asarray(self.prim_start, dtype=np.int32),
            "prim_count": np.asarray(self.prim_count, dtype=np.int32),
            "neg_inv_density": np.asarray(self.neg_inv_density, dtype=np.float32),
            "phase_materials": np.asarray(self.phase_materials, dtype=np.int32),
            "box_min": np.asarray([b.minimum for b in self.boxes], dtype=np.float32).reshape(n, 3),
            "box_max": np.asarray([b.maximum for b in self.boxes], dtype=np.float32).reshape(n, 3),
        }


@dataclass
class CompiledScene:
    """Result of :func:`compile_scene`.

    Attributes:
        primitives: Primitive table.
        objects: Object table.
        transforms: World-to-local maps; entry 0 is the identity.
        bvh: Flattened hierarchy over the objects, or ``None`` for an empty
            scene.
        bvh_depth: Depth of the hierarchy (0 when empty).
    """

    primitives: PrimitiveTable
    objects: ObjectTable
    transforms: list[Affine]
    bvh: FlatBVH | None
    bvh_depth: int

    def transform_arrays(self) -> tuple[npt.NDArray[np.float32], npt.NDArray[np.float32]]:
        """Return the transforms as (n, 3, 3) linear parts and (n, 3) offsets."""
        linear = np.asarray([a for a, _ in self.transforms], dtype=np.float32).reshape(-1, 3, 3)
        offset = np.asarray([b for _, b in self.transforms], dtype=np.float32).reshape(-1, 3)
        return linear, offset


@dataclass
class _ObjectLeaf(Hittable):
    """BVH leaf standing for one compiled object."""

    index: int
    box: AABB

    def bounding_box(self, time0: float, time1: float) -> AABB:
        return self.box


class SceneCompiler:
    """Single-use builder behind :func:`compile_scene`.

    Args:
        material_id: Maps a host material to its unified device id.
        time0: Shutter open time, used for bounding boxes.
        time1: Shutter close time, used for bounding boxes.
    """

    def __init__(
        self,
        material_id: Callable[[Material], int],
        time0: float = 0.0,
        time1: float = 1.0,
    ) -> None:
        self.material_id = material_id
        self.time0 = time0
        self.time1 = time1
        self.primitives = PrimitiveTable()
        self.objects = ObjectTable()
        self.transforms: list[Affine] = [IDENTITY]

    def _world_box(self, entity: Hittable, xform: int) -> AABB:
        box = entity.bounding_box(self.time0, self.time1)
        if xform != 0:
            linear, offset = self.transforms[xform]
            box = box.transformed(linear.T, -(linear.T @ offset))
        return box.padded()

    def _push_transform(self, decorator: Transform, xform: int) -> int:
        self.transforms.append(compose(self.transforms[xform], decorator.world_to_local()))
        return len(self.transforms) - 1

    def _add_primitive(self, entity: Hittable, xform: int) -> None:
        prims = self.primitives
        zero = np.zeros(3)
        if isinstance(entity, Sphere):
            prims.kinds.append(int(PrimitiveKind.SPHERE))
            prims.center0.append(entity.center)
            prims.center1.append(entity.center)
            prims.time0.append(0.0)
            prims.time1.append(0.0)
            prims.radius.append(entity.radius)
            prims.axis.append(0)
            prims.bounds.append((0.0, 0.0, 0.0, 0.0))
            prims.k.append(0.0)
        elif isinstance(entity, MovingSphere):
            prims.kinds.append(int(PrimitiveKind.MOVING_SPHERE))
            prims.center0.append(entity.center0)
            prims.center1.append(entity.center1)
            prims.time0.append(entity.time0)
            prims.time1.append(entity.time1)
            prims.radius.append(entity.radius)
            prims.axis.append(0)
            prims.bounds.append((0.0, 0.0, 0.0, 0.0))
            prims.k.append(0.0)
        elif isinstance(entity, AxisAlignedRect):
            prims.kinds.append(int(PrimitiveKind.RECT))
            prims.center0.append(zero)
            prims.center1.append(zero)
            prims.time0.append(0.0)
            prims.time1.append(0.0)
            prims.radius.append(0.0)
            prims.axis.append(entity.axis)
            prims.bounds.append((entity.a0, entity.a1, entity.b0, entity.b1))
            prims.k.append(entity.k)
        else:
            raise TypeError(f"Unsupported primitive type {type(entity).__name__}")
        prims.materials.append(self.material_id(entity.material))
        prims.transforms.append(xform)

    def _collect_surface(self, entity: Hittable, xform: int) -> AABB | None:
        """Append the primitives of a surface; return their world box."""
        if isinstance(entity, (Sphere, MovingSphere, AxisAlignedRect)):
            self._add_primitive(entity, xform)
            return self._world_box(entity, xform)
        if isinstance(entity, Box):
            box = None
            for side in entity.sides():
                self._add_primitive(side, xform)
                side_box = self._world_box(side, xform)
                box = side_box if box is None else surrounding_box(box, side_box)
            return box
        if isinstance(entity, Transform):
            return self._collect_surface(entity.child, self._push_transform(entity, xform))
        if isinstance(entity, (HittableList, BVHNode)):
            box = None
            for child in _children(entity):
                child_box = self._collect_surface(child, xform)
                if child_box is not None:
                    box = child_box if box is None else surrounding_box(box, child_box)
            return box
        if isinstance(entity, ConstantMedium):
            raise GeometryError("A medium boundary cannot contain another medium")
        raise TypeError(f"Unsupported entity type {type(entity).__name__}")

    def _add_surface_object(self, entity: Hittable, xform: int) -> None:
        start = len(self.primitives)
        box = self._collect_surface(entity, xform)
        self._add_object(ObjectKind.SURFACE, start, box, 0.0, -1)

    def _add_object(
        self, kind: ObjectKind, start: int, box: AABB | None, neg_inv_density: float, phase: int
    ) -> None:
        count = len(self.primitives) - start
        if count == 0 or box is None:
            return
        objects = self.objects
        objects.kinds.append(int(kind))
        objects.prim_start.append(start)
        objects.prim_count.append(count)
        objects.neg_inv_density.append(neg_inv_density)
        objects.phase_materials.append(phase)
        objects.boxes.append(box)

    def add(self, entity: Hittable, xform: int = 0) -> None:
        """Compile ``entity`` (and everything below it) into objects."""
        if isinstance(entity, (HittableList, BVHNode)):
            for child in _children(entity):
                self.add(child, xform)
        elif isinstance(entity, Transform):
            self.add(entity.child, self._push_transform(entity, xform))
        elif isinstance(entity, ConstantMedium):
            start = len(self.primitives)
            box = self._collect_surface(entity.boundary, xform)
            phase = self.material_id(entity.phase_function)
            self._add_object(ObjectKind.MEDIUM, start, box, entity.neg_inv_density, phase)
        else:
            self._add_surface_object(entity, xform)

    def build(self, rng: np.random.Generator | None = None) -> CompiledScene:
        """Build the BVH over the compiled objects and return the scene."""
        flat = None
        depth = 0
        if len(self.objects) > 0:
            leaves = [_ObjectLeaf(i, box) for i, box in enumerate(self.objects.boxes)]
            root = BVHNode(leaves, self.time0, self.time1, rng)
            flat = flatten_bvh(root, lambda leaf: leaf.index, self.time0, self.time1)
            depth = root.depth()
        return CompiledScene(
            primitives=self.primitives,
            objects=self.objects,
            transforms=self.transforms,
            bvh=flat,
            bvh_depth=depth,
        )


def _children(entity: Hittable) -> list[Hittable]:
    if isinstance(entity, HittableList):
        return list(entity.objects)
    if entity.right is entity.left:
        return [entity.left]
    return [entity.left, entity.right]


def compile_scene(
    world: Hittable,
    material_id: Callable[[Material], int],
    time0: float = 0.0,
    time1: float = 1.0,
    rng: np.random.Generator | None = None,
) -> CompiledScene:
    """Flatten ``world`` into primitive, object and BVH tables.

    Args:
        world: Root entity of the scene.
        material_id: Maps a host material to its unified device id.
        time0: Shutter open time.
        time1: Shutter close time.
        rng: Random source of the BVH split axes.

    Returns:
        The compiled scene.
    """
    compiler = SceneCompiler(material_id, time0, time1)
    compiler.add(world)
    scene = compiler.build(rng)
    logger.debug(
        "Compiled %d primitives into %d objects (%d transforms, BVH depth %d)",
        len(scene.primitives),
        len(scene.objects),
        len(scene.transforms),
        scene.bvh_depth,
    )
    return scene
