"""Longitude/latitude helpers shared by the viewport and the track codec."""
from __future__ import annotations

import math


def normalize_longitude(long: float) -> float:
    """Map ``long`` into ``[-180, 180)``, keeping it congruent modulo 360."""
    result = (long + 180.0) % 360.0 - 180.0
    # a tiny negative remainder rounds up to exactly 360
    if result >= 180.0:
        result -= 360.0
    return result


def constrain_latitude(lat: float, view_height: float) -> float:
    """Clamp a pan latitude so a view ``view_height`` tall stays within the poles."""
    return min(90.0, max(-90.0 + view_height, lat))


def clamp_latitude(lat: float) -> float:
    return min(90.0, max(-90.0, lat))


def format_lat_lon(value: float, is_lat: bool, decimal_places: int = 1) -> str:
    """Format e.g. ``-12.34`` as ``12.3S`` (latitude) or ``12.3W`` (longitude)."""
    adjusted = value if is_lat else normalize_longitude(value)
    if is_lat:
        hemisphere = "N" if adjusted >= 0 else "S"
    else:
        hemisphere = "E" if adjusted >= 0 else "W"
    return f"{abs(adjusted):.{decimal_places}f}{hemisphere}"


def parse_coordinate(raw: object) -> float:
    """Parse ``"12.5W"``-style strings (S/W negate) or plain numbers.

    Raises ``ValueError`` when no number can be read.
    """
    if isinstance(raw, bool):
        raise ValueError(f"Invalid coordinate: {raw!r}")
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        if not text:
            raise ValueError("Empty coordinate")
        suffix = text[-1].upper()
        if suffix in "NSEW":
            text = text[:-1].strip()
        value = float(text)
        if suffix in ("S", "W"):
            value = -value
    else:
        raise ValueError(f"Invalid coordinate: {raw!r}")
    if not math.isfinite(value):
        raise ValueError(f"Non-finite coordinate: {raw!r}")
    return value
