"""Lazily rebuilt hit-testing cache over the projected track points."""
from __future__ import annotations

import logging
from typing import Callable, Sequence

import numpy as np

from hypotrack.model.track_models import Track
from hypotrack.preview.spatial_index import (
    DEFAULT_CAPACITY,
    DEFAULT_MAX_DEPTH,
    Bounds,
    CircleRange,
    QuadTree,
    SpatialIndexEntry,
)
from hypotrack.preview.viewport import Viewport

logger = logging.getLogger(__name__)

DEFAULT_WRAP_MARGIN = 100.0


def nearest_entry(
    candidates: Sequence[SpatialIndexEntry],
    x: float,
    y: float,
    *,
    back_to_front: bool = False,
) -> SpatialIndexEntry | None:
    """Closest candidate to ``(x, y)``.

    Equal distances go to the entry met first in track/point order, or to the
    one met last when ``back_to_front`` (the topmost drawn track wins).
    """
    ordered = sorted(candidates, key=lambda entry: entry.order, reverse=back_to_front)
    best: SpatialIndexEntry | None = None
    best_dist = 0.0
    for entry in ordered:
        dist = (entry.screen_x - x) ** 2 + (entry.screen_y - y) ** 2
        if best is None or dist < best_dist:
            best = entry
            best_dist = dist
    return best


class PointIndex:
    """Quadtree of the screen positions of every (near-)visible track point.

    The cache is derived from the track list and the viewport. It is marked
    dirty on any geometry change and rebuilt on the next query.
    """

    def __init__(
        self,
        tracks: Callable[[], Sequence[Track]],
        viewport: Viewport,
        *,
        capacity: int = DEFAULT_CAPACITY,
        max_depth: int = DEFAULT_MAX_DEPTH,
        wrap_margin: float = DEFAULT_WRAP_MARGIN,
    ) -> None:
        self._tracks = tracks
        self._viewport = viewport
        self._wrap_margin = wrap_margin
        self._tree = QuadTree(
            self._root_bounds(), capacity=capacity, max_depth=max_depth
        )
        self._dirty = True
        self.rebuild_count = 0

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def tree(self) -> QuadTree:
        return self._tree

    def invalidate(self) -> None:
        self._dirty = True

    def ensure_built(self) -> None:
        if self._dirty:
            self.rebuild()

    def rebuild(self) -> None:
        viewport = self._viewport
        self._tree.bounds = self._root_bounds()
        self._tree.clear()

        flat: list[tuple[Track, object]] = [
            (track, point) for track in self._tracks() for point in track.points
        ]
        self._dirty = False
        self.rebuild_count += 1
        if not flat:
            logger.debug("Point index rebuilt: entries=0")
            return

        longs = np.fromiter((point.long for _, point in flat), dtype=float, count=len(flat))
        lats = np.fromiter((point.lat for _, point in flat), dtype=float, count=len(flat))
        xs, ys = viewport.project_many(longs, lats)
        world = viewport.world_width
        low_x, high_x = -self._wrap_margin, viewport.width + self._wrap_margin
        low_y = viewport.top_bound - self._wrap_margin
        high_y = viewport.height + self._wrap_margin

        inserted = 0
        for order, ((track, point), x, y) in enumerate(zip(flat, xs.tolist(), ys.tolist())):
            if not low_y < y < high_y:
                continue
            for copy_x in (x, x - world, x + world):
                if low_x < copy_x < high_x:
                    entry = SpatialIndexEntry(copy_x, y, point, track, order)
                    if self._tree.insert(entry):
                        inserted += 1
        logger.debug("Point index rebuilt: entries=%s", inserted)

    def query(self, x: float, y: float, radius: float) -> list[SpatialIndexEntry]:
        self.ensure_built()
        return self._tree.query(CircleRange(x, y, radius))

    def nearest(
        self,
        x: float,
        y: float,
        radius: float | None = None,
        *,
        back_to_front: bool = False,
        only_track: Track | None = None,
    ) -> SpatialIndexEntry | None:
        """Nearest indexed point within ``radius`` (default: the zoom search radius)."""
        if radius is None:
            radius = self._viewport.search_radius
        candidates = self.query(x, y, radius)
        if only_track is not None:
            candidates = [entry for entry in candidates if entry.track is only_track]
        if not candidates:
            return None
        return nearest_entry(candidates, x, y, back_to_front=back_to_front)

    def _root_bounds(self) -> Bounds:
        viewport = self._viewport
        margin = self._wrap_margin
        return Bounds(
            -margin,
            viewport.top_bound - margin,
            viewport.width + 2 * margin,
            viewport.strip_height + 2 * margin,
        )
