"""Invariant checks for editable track lists."""

from __future__ import annotations

import re
from math import isfinite
from typing import Sequence

from hypotrack.model.track_models import StormKind, Track

START_DATE_RE = re.compile(r"^\d{8}$")
START_HOURS = (0, 6, 12, 18)


class InvariantError(ValueError):
    """Raised when a track list violates a structural or geographic invariant."""


def is_valid_start_date(value: str | None) -> bool:
    return value is None or bool(START_DATE_RE.fullmatch(value))


def is_valid_start_time(value: int | None) -> bool:
    return value is None or value in START_HOURS


def assert_no_empty_tracks(tracks: Sequence[Track]) -> None:
    """Empty tracks are pruned as soon as their last point goes away."""

    for index, track in enumerate(tracks):
        if not track.points:
            raise InvariantError(f"Track {index} has no points.")


def assert_points_valid(tracks: Sequence[Track]) -> None:
    """Assert every point has finite coordinates, a latitude within the poles,
    a non-negative category and a known storm kind.
    """

    for track_index, track in enumerate(tracks):
        for point_index, point in enumerate(track.points):
            where = f"track {track_index} point {point_index}"
            if not (isfinite(point.long) and isfinite(point.lat)):
                raise InvariantError(f"Non-finite coordinates at {where}.")
            if not -90.0 <= point.lat <= 90.0:
                raise InvariantError(f"Latitude {point.lat} out of range at {where}.")
            if point.category < 0:
                raise InvariantError(f"Negative category {point.category} at {where}.")
            if not isinstance(point.kind, StormKind):
                raise InvariantError(f"Unknown storm kind {point.kind!r} at {where}.")
            for label, value in (("wind", point.wind), ("pressure", point.pressure)):
                if value is not None and not isfinite(value):
                    raise InvariantError(f"Non-finite {label} at {where}.")


def assert_metadata_valid(tracks: Sequence[Track]) -> None:
    for index, track in enumerate(tracks):
        if not is_valid_start_date(track.start_date):
            raise InvariantError(
                f"Track {index} start date {track.start_date!r} is not YYYYMMDD."
            )
        if not is_valid_start_time(track.start_time):
            raise InvariantError(
                f"Track {index} start time {track.start_time!r} is not one of {START_HOURS}."
            )


def validate_tracks(tracks: Sequence[Track]) -> None:
    """Run all track invariants."""

    assert_no_empty_tracks(tracks)
    assert_points_valid(tracks)
    assert_metadata_valid(tracks)
