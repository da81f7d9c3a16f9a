import math

import pytest

from hypotrack.model.invariants import InvariantError, validate_tracks
from hypotrack.model.track_models import (
    DEFAULT_CATEGORIES,
    FALLBACK_PRESSURE,
    StormKind,
    Track,
    TrackPoint,
    copy_tracks,
    effective_pressure,
    effective_wind,
    index_of_track,
    insert_point,
    is_empty,
    remove_point,
    snapshot_tracks,
)


def test_insert_and_remove_respect_bounds():
    track = Track()
    first = TrackPoint(1.0, 2.0)
    second = TrackPoint(3.0, 4.0)

    insert_point(track, 0, first)
    insert_point(track, 1, second)
    assert track.points == [first, second]

    with pytest.raises(IndexError):
        insert_point(track, 3, TrackPoint(0.0, 0.0))
    with pytest.raises(IndexError):
        remove_point(track, 2)
    with pytest.raises(IndexError):
        remove_point(track, -1)

    assert remove_point(track, 0) is first
    assert not is_empty(track)
    assert remove_point(track, 0) is second
    assert is_empty(track)


def test_points_and_tracks_compare_by_identity():
    a = TrackPoint(10.0, 20.0)
    b = TrackPoint(10.0, 20.0)
    track = Track([a, b])

    assert a != b
    assert track.index_of(b) == 1
    assert track.index_of(TrackPoint(10.0, 20.0)) == -1

    other = Track([TrackPoint(10.0, 20.0)])
    assert index_of_track([track, other], other) == 1
    assert index_of_track([track], Track()) == -1
    assert index_of_track([track], None) == -1


def test_effective_values_fall_back_to_category_table():
    point = TrackPoint(0.0, 0.0, category=2)
    assert effective_wind(point) == DEFAULT_CATEGORIES[2].speed
    assert effective_pressure(point) == DEFAULT_CATEGORIES[2].pressure

    point.wind = 72.0
    point.pressure = 980.0
    assert effective_wind(point) == 72.0
    assert effective_pressure(point) == 980.0

    unknown = TrackPoint(0.0, 0.0, category=42)
    assert effective_wind(unknown) == 0.0
    assert effective_pressure(unknown) == FALLBACK_PRESSURE


def test_copy_tracks_is_detached():
    tracks = [Track([TrackPoint(1.0, 2.0, 3, StormKind.SUBTROPICAL, 50.0)], name="ALPHA")]

    copied = copy_tracks(tracks)
    copied[0].points[0].long = 99.0

    assert tracks[0].points[0].long == 1.0
    assert snapshot_tracks(copy_tracks(tracks)) == snapshot_tracks(tracks)


def test_validate_tracks_accepts_well_formed_list():
    validate_tracks(
        [
            Track(
                [TrackPoint(-75.0, 25.0, 1), TrackPoint(-76.0, 26.0, 2, StormKind.EXTRATROPICAL)],
                name="BERTHA",
                start_date="20240812",
                start_time=18,
            )
        ]
    )


def test_validate_tracks_rejects_empty_track():
    with pytest.raises(InvariantError, match="no points"):
        validate_tracks([Track()])


def test_validate_tracks_rejects_bad_points():
    with pytest.raises(InvariantError, match="Latitude"):
        validate_tracks([Track([TrackPoint(0.0, 91.0)])])
    with pytest.raises(InvariantError, match="Negative category"):
        validate_tracks([Track([TrackPoint(0.0, 0.0, -1)])])
    with pytest.raises(InvariantError, match="Non-finite"):
        validate_tracks([Track([TrackPoint(math.inf, 0.0)])])


def test_validate_tracks_rejects_bad_metadata():
    with pytest.raises(InvariantError, match="YYYYMMDD"):
        validate_tracks([Track([TrackPoint(0.0, 0.0)], start_date="2024-08-12")])
    with pytest.raises(InvariantError, match="start time"):
        validate_tracks([Track([TrackPoint(0.0, 0.0)], start_date="20240812", start_time=3)])
