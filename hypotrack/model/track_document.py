"""The single mutation gateway for the editor's track list.

Every change to track structure, point positions, point attributes or track
metadata goes through :class:`TrackDocument`. Structural and positional
changes emit ``geometry_changed``; anything that derives screen positions
from the tracks (the point index) listens to it instead of being invalidated
by hand at each call site.
"""
from __future__ import annotations

import logging
from typing import Iterable

from PyQt5 import QtCore

from hypotrack.model.track_models import (
    PointAttributes,
    Track,
    TrackPoint,
    index_of_track,
    insert_point,
    remove_point,
)

logger = logging.getLogger(__name__)


class TrackDocument(QtCore.QObject):
    geometry_changed = QtCore.pyqtSignal()
    metadata_changed = QtCore.pyqtSignal(int)
    tracks_replaced = QtCore.pyqtSignal()

    def __init__(
        self, tracks: Iterable[Track] | None = None, parent: QtCore.QObject | None = None
    ) -> None:
        super().__init__(parent)
        self._tracks: list[Track] = list(tracks or [])

    @property
    def tracks(self) -> list[Track]:
        """The live track list. Read it, do not mutate it directly."""
        return self._tracks

    def __len__(self) -> int:
        return len(self._tracks)

    def is_empty(self) -> bool:
        return not self._tracks

    def track_at(self, track_index: int) -> Track:
        if not 0 <= track_index < len(self._tracks):
            raise IndexError(f"Track index {track_index} out of range.")
        return self._tracks[track_index]

    def point_at(self, track_index: int, point_index: int) -> TrackPoint:
        track = self.track_at(track_index)
        if not 0 <= point_index < len(track.points):
            raise IndexError(
                f"Point index {point_index} out of range for track {track_index}."
            )
        return track.points[point_index]

    def index_of(self, track: Track | None) -> int:
        return index_of_track(self._tracks, track)

    def locate(self, track: Track | None, point: TrackPoint | None) -> tuple[int, int]:
        """Return ``(track_index, point_index)``; ``-1`` for anything missing."""
        track_index = self.index_of(track)
        if track_index == -1 or point is None or track is None:
            return track_index, -1
        return track_index, track.index_of(point)

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------
    def insert_track(self, track_index: int, track: Track | None = None) -> Track:
        if not 0 <= track_index <= len(self._tracks):
            raise IndexError(f"Cannot insert track at index {track_index}.")
        track = track if track is not None else Track()
        self._tracks.insert(track_index, track)
        self.geometry_changed.emit()
        return track

    def append_track(self, track: Track | None = None) -> Track:
        return self.insert_track(len(self._tracks), track)

    def remove_track(self, track_index: int) -> Track:
        track = self.track_at(track_index)
        del self._tracks[track_index]
        self.geometry_changed.emit()
        return track

    def insert_point(self, track_index: int, point_index: int, point: TrackPoint) -> None:
        insert_point(self.track_at(track_index), point_index, point)
        self.geometry_changed.emit()

    def remove_point(self, track_index: int, point_index: int) -> tuple[TrackPoint, bool]:
        """Remove a point, pruning its track when it becomes empty.

        Returns the removed point and whether the track was pruned.
        """
        track = self.track_at(track_index)
        point = remove_point(track, point_index)
        pruned = not track.points
        if pruned:
            del self._tracks[track_index]
        self.geometry_changed.emit()
        return point, pruned

    def replace_tracks(self, tracks: Iterable[Track]) -> None:
        self._tracks = list(tracks)
        logger.debug("Replaced track list: count=%s", len(self._tracks))
        self.tracks_replaced.emit()
        self.geometry_changed.emit()

    # ------------------------------------------------------------------
    # Point fields
    # ------------------------------------------------------------------
    def set_point_position(self, point: TrackPoint, long: float, lat: float) -> None:
        point.long = long
        point.lat = lat
        self.geometry_changed.emit()

    def move_point(self, track_index: int, point_index: int, long: float, lat: float) -> None:
        self.set_point_position(self.point_at(track_index, point_index), long, lat)

    def set_point_attributes(
        self, track_index: int, point_index: int, attrs: PointAttributes
    ) -> None:
        # category drives the drawn marker but not its position
        self.point_at(track_index, point_index).apply_attributes(attrs)
        self.metadata_changed.emit(track_index)

    # ------------------------------------------------------------------
    # Track metadata
    # ------------------------------------------------------------------
    def set_track_name(self, track_index: int, name: str | None) -> None:
        self.track_at(track_index).name = name
        self.metadata_changed.emit(track_index)

    def set_track_date(
        self, track_index: int, start_date: str | None, start_time: int | None
    ) -> None:
        track = self.track_at(track_index)
        track.start_date = start_date
        track.start_time = start_time
        self.metadata_changed.emit(track_index)

    def set_track_metadata(
        self,
        track_index: int,
        name: str | None,
        start_date: str | None,
        start_time: int | None,
    ) -> None:
        track = self.track_at(track_index)
        track.name = name
        track.start_date = start_date
        track.start_time = start_time
        self.metadata_changed.emit(track_index)
