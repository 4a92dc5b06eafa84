"""Bounding volume hierarchy.

The hierarchy is built on the host with the classic randomized median split:

1. Pick one of the three axes uniformly at random
2. Order the range by the minimum corner of each entity's box on that axis
3. One entity: both children alias it. Two: keep the sorted order.
   More: split at the midpoint index and recurse on each half
4. The node box is the union of the two children's boxes

Ordering uses a stable sort, so entities with equal keys keep their input
order and a given ``numpy.random.Generator`` state always produces the same
tree.

Taichi kernels cannot recurse, so :func:`flatten_bvh` lays the tree out
depth first as a threaded array. Every node stores a *miss* link to the
first node after its subtree; traversal visits node ``i + 1`` when the ray
enters an interior node's box and jumps to the miss link otherwise. This
visits left before right and tightens the search interval with each hit,
exactly like the recursive traversal.

Example:
    >>> import numpy as np
    >>> from pathtracer.geometry.bvh import BVHNode
    >>> root = BVHNode(spheres, 0.0, 1.0, rng=np.random.default_rng(7))
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from pathtracer.core.aabb import AABB, surrounding_box
from pathtracer.core.errors import BoundingBoxError
from pathtracer.geometry.hittable import Hittable

logger = logging.getLogger(__name__)


def _require_box(entity: Hittable, time0: float, time1: float) -> AABB:
    box = entity.bounding_box(time0, time1)
    if box is None:
        raise BoundingBoxError(f"No bounding box for {entity!r} in BVH construction")
    return box


class BVHNode(Hittable):
    """Interior node of a bounding volume hierarchy.

    Args:
        objects: Entities to organize; every one must report a box.
        time0: Start of the shutter interval used for the boxes.
        time1: End of the shutter interval used for the boxes.
        rng: Source of the random split axes. A fresh default generator is
            used when omitted.

    Raises:
        BoundingBoxError: If ``objects`` is empty or an entity has no box.
    """

    def __init__(
        self,
        objects: Sequence[Hittable],
        time0: float,
        time1: float,
        rng: np.random.Generator | None = None,
    ) -> None:
        if len(objects) == 0:
            raise BoundingBoxError("Cannot build a BVH over an empty collection")
        if rng is None:
            rng = np.random.default_rng()

        axis = int(rng.integers(0, 3))
        boxes = [_require_box(obj, time0, time1) for obj in objects]
        order = sorted(range(len(objects)), key=lambda i: boxes[i].minimum[axis])

        span = len(objects)
        if span == 1:
            self.left = self.right = objects[0]
        elif span == 2:
            self.left = objects[order[0]]
            self.right = objects[order[1]]
        else:
            ordered = [objects[i] for i in order]
            mid = span // 2
            self.left = BVHNode(ordered[:mid], time0, time1, rng)
            self.right = BVHNode(ordered[mid:], time0, time1, rng)

        self.axis = axis
        self.box = surrounding_box(
            _require_box(self.left, time0, time1), _require_box(self.right, time0, time1)
        )

    def __repr__(self) -> str:
        return f"BVHNode(axis={self.axis}, box={self.box!r})"

    def bounding_box(self, time0: float, time1: float) -> AABB:
        return self.box

    def depth(self) -> int:
        """Number of BVHNode levels from this node down; leaves do not count."""
        left = self.left.depth() if isinstance(self.left, BVHNode) else 0
        right = self.right.depth() if isinstance(self.right, BVHNode) else 0
        return 1 + max(left, right)


@dataclass
class FlatBVH:
    """Threaded depth-first layout of a BVH.

    Attributes:
        box_min: (n, 3) minimum corners.
        box_max: (n, 3) maximum corners.
        object: (n,) object index of leaf nodes, -1 for interior nodes.
        miss: (n,) index of the first node after each node's subtree
            (``n`` for the last subtree).
    """

    box_min: npt.NDArray[np.float32]
    box_max: npt.NDArray[np.float32]
    object: npt.NDArray[np.int32]
    miss: npt.NDArray[np.int32]

    def __len__(self) -> int:
        return int(self.object.shape[0])


def flatten_bvh(
    root: Hittable,
    object_index: Callable[[Hittable], int],
    time0: float = 0.0,
    time1: float = 1.0,
) -> FlatBVH:
    """Flatten a hierarchy into threaded arrays.

    Args:
        root: Root of the hierarchy (usually a :class:`BVHNode`). Any entity
            that is not a BVHNode becomes a leaf.
        object_index: Maps a leaf entity to its device object index.
        time0: Start of the shutter interval used for leaf boxes.
        time1: End of the shutter interval used for leaf boxes.

    Returns:
        The flattened hierarchy.
    """
    mins: list[npt.NDArray[np.float64]] = []
    maxs: list[npt.NDArray[np.float64]] = []
    objects: list[int] = []
    miss: list[int] = []

    # Explicit work stack: (entity, slot to patch with the miss link)
    stack: list[tuple[Hittable, bool]] = [(root, False)]
    open_nodes: list[int] = []
    while stack:
        entity, closing = stack.pop()
        if closing:
            miss[open_nodes.pop()] = len(objects)
            continue
        index = len(objects)
        box = _require_box(entity, time0, time1)
        mins.append(box.minimum)
        maxs.append(box.maximum)
        miss.append(0)
        if isinstance(entity, BVHNode):
            objects.append(-1)
            open_nodes.append(index)
            stack.append((entity, True))
            if entity.right is not entity.left:
                stack.append((entity.right, False))
            stack.append((entity.left, False))
        else:
            objects.append(object_index(entity))
            miss[index] = index + 1

    logger.debug("Flattened BVH into %d nodes", len(objects))
    return FlatBVH(
        box_min=np.asarray(mins, dtype=np.float32).reshape(-1, 3),
        box_max=np.asarray(maxs, dtype=np.float32).reshape(-1, 3),
        object=np.asarray(objects, dtype=np.int32),
        miss=np.asarray(miss, dtype=np.int32),
    )
