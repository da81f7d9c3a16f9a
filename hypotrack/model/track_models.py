"""Track data model: storm track points, tracks and the category table.

Tracks are compared by identity. The editor keeps references to the
selected track and point, so two points with equal coordinates must still be
told apart; both classes therefore opt out of value equality.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterator, List, Optional, Sequence


class StormKind(IntEnum):
    TROPICAL = 0
    SUBTROPICAL = 1
    EXTRATROPICAL = 2


@dataclass(frozen=True)
class Category:
    name: str
    speed: float
    pressure: float
    color: str = "#c0c0c0"


DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category("Depression", 20, 1009, "#5ebaff"),
    Category("Storm", 35, 1000, "#00faf4"),
    Category("Category 1", 65, 987, "#ffffcc"),
    Category("Category 2", 85, 969, "#ffe775"),
    Category("Category 3", 100, 945, "#ffc140"),
    Category("Category 4", 115, 920, "#ff8f20"),
    Category("Category 5", 140, 898, "#ff6060"),
    Category("Unknown", 0, 1012, "#c0c0c0"),
)

UNKNOWN_CATEGORY = len(DEFAULT_CATEGORIES) - 1
FALLBACK_PRESSURE = 1015.0


@dataclass(eq=False)
class TrackPoint:
    long: float
    lat: float
    category: int = 0
    kind: StormKind = StormKind.TROPICAL
    wind: Optional[float] = None
    pressure: Optional[float] = None

    def attributes(self) -> "PointAttributes":
        return PointAttributes(self.category, self.kind, self.wind, self.pressure)

    def apply_attributes(self, attrs: "PointAttributes") -> None:
        self.category = attrs.category
        self.kind = attrs.kind
        self.wind = attrs.wind
        self.pressure = attrs.pressure

    def snapshot(self) -> "PointSnapshot":
        return PointSnapshot(
            self.long, self.lat, self.category, self.kind, self.wind, self.pressure
        )

    @classmethod
    def from_snapshot(cls, snapshot: "PointSnapshot") -> "TrackPoint":
        return cls(
            snapshot.long,
            snapshot.lat,
            snapshot.category,
            snapshot.kind,
            snapshot.wind,
            snapshot.pressure,
        )


@dataclass(frozen=True)
class PointAttributes:
    """The non-positional fields of a point, as edited by "modify point"."""

    category: int
    kind: StormKind
    wind: Optional[float]
    pressure: Optional[float]


@dataclass(frozen=True)
class PointSnapshot:
    """Immutable copy of every field of a :class:`TrackPoint`."""

    long: float
    lat: float
    category: int
    kind: StormKind
    wind: Optional[float] = None
    pressure: Optional[float] = None


@dataclass(eq=False)
class Track:
    """Ordered (chronological) list of points plus optional metadata."""

    points: List[TrackPoint] = field(default_factory=list)
    name: Optional[str] = None
    start_date: Optional[str] = None
    start_time: Optional[int] = None

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[TrackPoint]:
        return iter(self.points)

    def __getitem__(self, index: int) -> TrackPoint:
        return self.points[index]

    def index_of(self, point: TrackPoint) -> int:
        """Return the position of ``point`` (by identity), or -1."""
        for index, candidate in enumerate(self.points):
            if candidate is point:
                return index
        return -1

    def snapshot(self) -> tuple:
        return (
            self.name,
            self.start_date,
            self.start_time,
            tuple(point.snapshot() for point in self.points),
        )


def insert_point(track: Track, index: int, point: TrackPoint) -> None:
    if not 0 <= index <= len(track.points):
        raise IndexError(
            f"Cannot insert at index {index} in a track of {len(track.points)} points."
        )
    track.points.insert(index, point)


def remove_point(track: Track, index: int) -> TrackPoint:
    if not 0 <= index < len(track.points):
        raise IndexError(
            f"Cannot remove index {index} from a track of {len(track.points)} points."
        )
    return track.points.pop(index)


def is_empty(track: Track) -> bool:
    return not track.points


def index_of_track(tracks: Sequence[Track], track: Track | None) -> int:
    if track is None:
        return -1
    for index, candidate in enumerate(tracks):
        if candidate is track:
            return index
    return -1


def copy_tracks(tracks: Sequence[Track]) -> list[Track]:
    """Detached copy sharing no mutable state with ``tracks``."""
    return [
        Track(
            [TrackPoint.from_snapshot(point.snapshot()) for point in track.points],
            name=track.name,
            start_date=track.start_date,
            start_time=track.start_time,
        )
        for track in tracks
    ]


def snapshot_tracks(tracks: Sequence[Track]) -> list[tuple]:
    """Value snapshot of a whole track list, for equality checks."""
    return [track.snapshot() for track in tracks]


def _category(index: int, categories: Sequence[Category]) -> Category | None:
    if 0 <= index < len(categories):
        return categories[index]
    return None


def effective_wind(
    point: TrackPoint, categories: Sequence[Category] = DEFAULT_CATEGORIES
) -> float:
    """Wind override when present, else the category default (0 if unknown)."""
    if point.wind is not None:
        return point.wind
    category = _category(point.category, categories)
    return category.speed if category else 0.0


def effective_pressure(
    point: TrackPoint, categories: Sequence[Category] = DEFAULT_CATEGORIES
) -> float:
    if point.pressure is not None:
        return point.pressure
    category = _category(point.category, categories)
    return category.pressure if category else FALLBACK_PRESSURE
