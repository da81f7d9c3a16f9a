import math
import random

import pytest

from hypotrack.model.coordinates import (
    clamp_latitude,
    constrain_latitude,
    format_lat_lon,
    normalize_longitude,
    parse_coordinate,
)


def test_normalize_longitude_edges():
    assert normalize_longitude(180.0) == -180.0
    assert normalize_longitude(-180.0) == -180.0
    assert normalize_longitude(540.0) == -180.0
    assert normalize_longitude(-181.0) == pytest.approx(179.0)
    assert normalize_longitude(0.0) == 0.0
    assert normalize_longitude(359.5) == pytest.approx(-0.5)


def test_normalize_longitude_range_and_congruence():
    rng = random.Random(1234)
    for _ in range(2000):
        long = rng.uniform(-10000.0, 10000.0)
        result = normalize_longitude(long)
        assert -180.0 <= result < 180.0
        assert math.remainder(result - long, 360.0) == pytest.approx(0.0, abs=1e-9)


def test_normalize_longitude_tiny_negative_stays_in_range():
    result = normalize_longitude(-180.0 - 1e-15)
    assert -180.0 <= result < 180.0


def test_constrain_latitude_keeps_view_between_poles():
    assert constrain_latitude(95.0, 180.0) == 90.0
    assert constrain_latitude(-89.0, 180.0) == 90.0
    assert constrain_latitude(-80.0, 20.0) == -70.0
    assert constrain_latitude(10.0, 20.0) == 10.0


def test_clamp_latitude():
    assert clamp_latitude(91.0) == 90.0
    assert clamp_latitude(-91.0) == -90.0
    assert clamp_latitude(12.5) == 12.5


def test_format_lat_lon():
    assert format_lat_lon(-12.34, True) == "12.3S"
    assert format_lat_lon(12.34, True, 2) == "12.34N"
    assert format_lat_lon(-12.34, False) == "12.3W"
    assert format_lat_lon(200.0, False) == "160.0W"
    assert format_lat_lon(0.0, False) == "0.0E"


def test_parse_coordinate():
    assert parse_coordinate("12.5W") == -12.5
    assert parse_coordinate("12.5S") == -12.5
    assert parse_coordinate(" 40.1N ") == 40.1
    assert parse_coordinate("75E") == 75.0
    assert parse_coordinate(-3) == -3.0
    assert parse_coordinate("-7.25") == -7.25


@pytest.mark.parametrize("raw", ["", "W", "abc", None, True, float("nan"), "inf"])
def test_parse_coordinate_rejects_garbage(raw):
    with pytest.raises(ValueError):
        parse_coordinate(raw)
