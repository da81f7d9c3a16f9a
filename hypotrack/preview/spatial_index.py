"""Screen-space quadtree used to find track points near the pointer.

The tree indexes projected screen coordinates rather than longitude and
latitude, so queries are plain Euclidean circles and no wraparound math is
needed inside the tree; wrapped copies of a point are inserted as separate
entries instead.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from hypotrack.model.track_models import Track, TrackPoint

DEFAULT_CAPACITY = 4
DEFAULT_MAX_DEPTH = 5


@dataclass(eq=False)
class SpatialIndexEntry:
    screen_x: float
    screen_y: float
    point: TrackPoint
    track: Track
    # position of the point in track-then-point iteration order
    order: int = 0


@dataclass(frozen=True)
class Bounds:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x <= self.right and self.y <= y <= self.bottom

    def intersects(self, other: "Bounds") -> bool:
        return not (
            other.x > self.right
            or other.right < self.x
            or other.y > self.bottom
            or other.bottom < self.y
        )


@dataclass(frozen=True)
class CircleRange:
    center_x: float
    center_y: float
    radius: float

    @property
    def bounding_box(self) -> Bounds:
        return Bounds(
            self.center_x - self.radius,
            self.center_y - self.radius,
            self.radius * 2,
            self.radius * 2,
        )

    def distance_sq(self, entry: SpatialIndexEntry) -> float:
        dx = entry.screen_x - self.center_x
        dy = entry.screen_y - self.center_y
        return dx * dx + dy * dy

    def contains(self, entry: SpatialIndexEntry) -> bool:
        return self.distance_sq(entry) <= self.radius * self.radius


@dataclass(eq=False)
class QuadTree:
    """Region quadtree; leaves split once they hold more than ``capacity`` entries.

    A leaf at ``max_depth`` never splits and keeps accepting entries.
    """

    bounds: Bounds
    capacity: int = DEFAULT_CAPACITY
    max_depth: int = DEFAULT_MAX_DEPTH
    depth: int = 0
    entries: List[SpatialIndexEntry] = field(default_factory=list)
    children: Optional[List["QuadTree"]] = None

    @property
    def divided(self) -> bool:
        return self.children is not None

    def __len__(self) -> int:
        return sum(1 for _ in self.iter_entries())

    def iter_entries(self) -> Iterator[SpatialIndexEntry]:
        yield from self.entries
        for child in self.children or ():
            yield from child.iter_entries()

    def clear(self) -> None:
        self.entries = []
        self.children = None

    def insert(self, entry: SpatialIndexEntry) -> bool:
        """Insert ``entry``; returns False when it lies outside this node."""
        if not self.bounds.contains(entry.screen_x, entry.screen_y):
            return False

        if self.children is None:
            self.entries.append(entry)
            if len(self.entries) > self.capacity and self.depth < self.max_depth:
                self._subdivide()
            return True

        return self._insert_into_child(entry)

    def query(self, circle: CircleRange) -> list[SpatialIndexEntry]:
        found: list[SpatialIndexEntry] = []
        self._query(circle, circle.bounding_box, found)
        return found

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _query(
        self, circle: CircleRange, box: Bounds, found: list[SpatialIndexEntry]
    ) -> None:
        if not self.bounds.intersects(box):
            return
        for entry in self.entries:
            if circle.contains(entry):
                found.append(entry)
        for child in self.children or ():
            child._query(circle, box, found)

    def _subdivide(self) -> None:
        x, y = self.bounds.x, self.bounds.y
        half_w = self.bounds.width / 2
        half_h = self.bounds.height / 2
        next_depth = self.depth + 1

        def child(cx: float, cy: float) -> QuadTree:
            return QuadTree(
                Bounds(cx, cy, half_w, half_h),
                capacity=self.capacity,
                max_depth=self.max_depth,
                depth=next_depth,
            )

        # order: NW, NE, SW, SE
        self.children = [
            child(x, y),
            child(x + half_w, y),
            child(x, y + half_h),
            child(x + half_w, y + half_h),
        ]
        pending, self.entries = self.entries, []
        for entry in pending:
            self._insert_into_child(entry)

    def _child_index(self, entry: SpatialIndexEntry) -> int:
        mid_x = self.bounds.x + self.bounds.width / 2
        mid_y = self.bounds.y + self.bounds.height / 2
        west = entry.screen_x < mid_x
        north = entry.screen_y < mid_y
        if north:
            return 0 if west else 1
        return 2 if west else 3

    def _insert_into_child(self, entry: SpatialIndexEntry) -> bool:
        assert self.children is not None
        return self.children[self._child_index(entry)].insert(entry)
