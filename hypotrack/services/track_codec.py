"""JSON payloads for track lists.

Two shapes are understood when decoding:

* the native save format written by :func:`tracks_to_payload`::

    {"version": 1, "tracks": [{"name": ..., "start_date": ..., "start_time": ...,
                               "points": [{"long": ..., "lat": ..., ...}]}]}

* the export format written by :func:`tracks_to_export_payload` (and by other
  tools), where a track is a bare list of point records with hemisphere
  suffixed coordinates such as ``"12.5N"``. A bare list of such records is
  read as a single track.

Decoding is all-or-nothing: the payload is decoded and validated into a new
list, and :class:`TrackFormatError` is raised before anything is returned.
"""
from __future__ import annotations

import math
from typing import Any, Sequence

from hypotrack.model.coordinates import format_lat_lon, parse_coordinate
from hypotrack.model.invariants import InvariantError, validate_tracks
from hypotrack.model.track_models import (
    DEFAULT_CATEGORIES,
    UNKNOWN_CATEGORY,
    Category,
    StormKind,
    Track,
    TrackPoint,
    effective_pressure,
    effective_wind,
)

FORMAT_VERSION = 1

STAGE_TROPICAL = "Tropical cyclone"
STAGE_SUBTROPICAL = "Subtropical cyclone"
STAGE_EXTRATROPICAL = "Extratropical cyclone"
_STAGE_KINDS = {
    STAGE_SUBTROPICAL: StormKind.SUBTROPICAL,
    STAGE_EXTRATROPICAL: StormKind.EXTRATROPICAL,
}


class TrackFormatError(ValueError):
    """Raised when a payload cannot be decoded into a valid track list."""


# ----------------------------------------------------------------------
# Encoding
# ----------------------------------------------------------------------
def point_to_record(point: TrackPoint) -> dict[str, Any]:
    return {
        "long": point.long,
        "lat": point.lat,
        "category": point.category,
        "kind": int(point.kind),
        "wind": point.wind,
        "pressure": point.pressure,
    }


def track_to_record(track: Track) -> dict[str, Any]:
    return {
        "name": track.name,
        "start_date": track.start_date,
        "start_time": track.start_time,
        "points": [point_to_record(point) for point in track.points],
    }


def tracks_to_payload(tracks: Sequence[Track]) -> dict[str, Any]:
    return {
        "version": FORMAT_VERSION,
        "tracks": [track_to_record(track) for track in tracks if track.points],
    }


def stage_name(point: TrackPoint) -> str:
    if point.kind == StormKind.EXTRATROPICAL:
        return STAGE_EXTRATROPICAL
    if point.kind == StormKind.SUBTROPICAL:
        return STAGE_SUBTROPICAL
    return STAGE_TROPICAL


def tracks_to_export_payload(
    tracks: Sequence[Track],
    decimal_places: int = 1,
    categories: Sequence[Category] = DEFAULT_CATEGORIES,
) -> dict[str, Any]:
    """Export shape: resolved wind/pressure, category names and formatted coordinates."""
    result: list[list[dict[str, Any]]] = []
    for track_index, track in enumerate(tracks):
        if not track.points:
            continue
        storm_name = track.name or f"STORM {track_index + 1}"
        records = []
        for point in track.points:
            category = (
                categories[point.category]
                if 0 <= point.category < len(categories)
                else None
            )
            records.append(
                {
                    "name": storm_name,
                    "latitude": format_lat_lon(point.lat, True, decimal_places),
                    "longitude": format_lat_lon(point.long, False, decimal_places),
                    "speed": effective_wind(point, categories),
                    "pressure": effective_pressure(point, categories),
                    "category": category.name if category else "Unknown",
                    "stage": stage_name(point),
                }
            )
        result.append(records)
    return {"tracks": result}


# ----------------------------------------------------------------------
# Decoding
# ----------------------------------------------------------------------
def _optional_float(value: Any, label: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise TrackFormatError(f"Invalid {label}: {value!r}")
    try:
        result = float(value)
    except (TypeError, ValueError) as exc:
        raise TrackFormatError(f"Invalid {label}: {value!r}") from exc
    if math.isnan(result):
        return None
    return result


def category_for_record(
    name: Any, speed: float | None, categories: Sequence[Category] = DEFAULT_CATEGORIES
) -> int:
    """Match by category name, then by the highest category ``speed`` reaches."""
    if isinstance(name, str):
        for index, category in enumerate(categories):
            if category.name == name:
                return index
    if speed is not None:
        best = -1
        smallest_diff = math.inf
        for index, category in enumerate(categories):
            if speed >= category.speed and speed - category.speed < smallest_diff:
                smallest_diff = speed - category.speed
                best = index
        if best != -1:
            return best
    for index, category in enumerate(categories):
        if category.name == "Unknown":
            return index
    return UNKNOWN_CATEGORY


def _native_point(record: dict[str, Any]) -> TrackPoint:
    try:
        kind = StormKind(int(record.get("kind", 0)))
        category = record.get("category", 0)
        if isinstance(category, bool) or not isinstance(category, int):
            raise TrackFormatError(f"Invalid category: {category!r}")
        return TrackPoint(
            parse_coordinate(record["long"]),
            parse_coordinate(record["lat"]),
            category,
            kind,
            _optional_float(record.get("wind"), "wind"),
            _optional_float(record.get("pressure"), "pressure"),
        )
    except TrackFormatError:
        raise
    except KeyError as exc:
        raise TrackFormatError(f"Point record is missing {exc.args[0]!r}") from exc
    except (TypeError, ValueError) as exc:
        raise TrackFormatError(f"Invalid point record: {exc}") from exc


def _export_point(record: dict[str, Any], categories: Sequence[Category]) -> TrackPoint:
    try:
        long = parse_coordinate(record["longitude"])
        lat = parse_coordinate(record["latitude"])
    except KeyError as exc:
        raise TrackFormatError(f"Point record is missing {exc.args[0]!r}") from exc
    except ValueError as exc:
        raise TrackFormatError(f"Invalid coordinate: {exc}") from exc
    speed = _optional_float(record.get("speed"), "speed")
    return TrackPoint(
        long,
        lat,
        category_for_record(record.get("category"), speed, categories),
        _STAGE_KINDS.get(record.get("stage"), StormKind.TROPICAL),
        speed,
        _optional_float(record.get("pressure"), "pressure"),
    )


def _point_from_record(record: Any, categories: Sequence[Category]) -> TrackPoint:
    if not isinstance(record, dict):
        raise TrackFormatError(f"Point record must be an object, got {type(record).__name__}.")
    if "long" in record or "lat" in record:
        return _native_point(record)
    return _export_point(record, categories)


def _track_from_record(record: Any, categories: Sequence[Category]) -> Track:
    if isinstance(record, list):
        points = [_point_from_record(item, categories) for item in record]
        name = record[0].get("name") if record and isinstance(record[0], dict) else None
        return Track(points, name=name if isinstance(name, str) else None)
    if isinstance(record, dict):
        raw_points = record.get("points")
        if not isinstance(raw_points, list):
            raise TrackFormatError("Track record has no 'points' list.")
        name = record.get("name")
        start_date = record.get("start_date")
        start_time = record.get("start_time")
        if name is not None and not isinstance(name, str):
            raise TrackFormatError(f"Invalid track name: {name!r}")
        if start_date is not None and not isinstance(start_date, str):
            raise TrackFormatError(f"Invalid start date: {start_date!r}")
        if start_time is not None and (
            isinstance(start_time, bool) or not isinstance(start_time, int)
        ):
            raise TrackFormatError(f"Invalid start time: {start_time!r}")
        return Track(
            [_point_from_record(item, categories) for item in raw_points],
            name=name,
            start_date=start_date,
            start_time=start_time,
        )
    raise TrackFormatError(f"Track record must be a list or object, got {type(record).__name__}.")


def tracks_from_payload(
    payload: Any, categories: Sequence[Category] = DEFAULT_CATEGORIES
) -> list[Track]:
    """Decode and validate a payload; empty tracks are dropped."""
    if payload is None:
        return []
    if isinstance(payload, dict) and isinstance(payload.get("tracks"), list):
        records = payload["tracks"]
    elif isinstance(payload, list):
        records = [payload]
    else:
        raise TrackFormatError(
            "Expected an array of points or an object with a 'tracks' array."
        )

    tracks = [_track_from_record(record, categories) for record in records]
    tracks = [track for track in tracks if track.points]
    try:
        validate_tracks(tracks)
    except InvariantError as exc:
        raise TrackFormatError(str(exc)) from exc
    return tracks
