"""Ordered collection of entities queried linearly."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from pathtracer.core.aabb import AABB, surrounding_box
from pathtracer.geometry.hittable import Hittable


class HittableList(Hittable):
    """A flat aggregate of entities.

    Intersection scans every member in insertion order and keeps the
    nearest hit. Used for small groups and as the input of a BVH.
    """

    def __init__(self, objects: Iterable[Hittable] = ()) -> None:
        self.objects: list[Hittable] = list(objects)

    def __repr__(self) -> str:
        return f"HittableList({len(self.objects)} objects)"

    def __len__(self) -> int:
        return len(self.objects)

    def __iter__(self) -> Iterator[Hittable]:
        return iter(self.objects)

    def add(self, obj: Hittable) -> None:
        """Append an entity."""
        self.objects.append(obj)

    def clear(self) -> None:
        """Remove all entities."""
        self.objects.clear()

    def bounding_box(self, time0: float, time1: float) -> AABB | None:
        """Union of the members' boxes.

        Returns ``None`` when the list is empty or any member has no box.
        """
        if not self.objects:
            return None
        output = None
        for obj in self.objects:
            box = obj.bounding_box(time0, time1)
            if box is None:
                return None
            output = box if output is None else surrounding_box(output, box)
        return output
