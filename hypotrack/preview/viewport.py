"""Geo <-> screen projection for the equirectangular map strip.

The map is an equirectangular strip ``view_height_ratio`` times as tall as it
is wide, anchored so that ``pan`` is the geo-coordinate of the top-left
visible pixel of the strip. The strip sits at the bottom of the canvas;
``top_bound`` is its first screen row.

Zooming multiplies the visible span by ``zoom_base ** -zoom``. Longitude is
periodic, so the world is laid out as horizontal copies ``world_width`` pixels
apart and a point may show up at ``x - world_width`` and ``x + world_width``
as well as at ``x``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from hypotrack.model.coordinates import constrain_latitude, normalize_longitude

GeoPoint = Tuple[float, float]

MIN_ZOOM = 0.0
MAX_ZOOM = 15.0


@dataclass
class ViewportState:
    pan_long: float = -180.0
    pan_lat: float = 90.0
    zoom: float = 0.0


@dataclass(frozen=True)
class ScreenPoint:
    x: float
    y: float
    in_bounds: bool


class Viewport:
    """Owns pan/zoom state and the projection between geo and screen space."""

    def __init__(
        self,
        state: ViewportState | None = None,
        *,
        width: int = 1000,
        height: int = 500,
        zoom_base: float = 1.25,
        view_height_ratio: float = 0.5,
        min_zoom: float = MIN_ZOOM,
        max_zoom: float = MAX_ZOOM,
    ) -> None:
        self.state = state or ViewportState()
        self.width = width
        self.height = height
        self.zoom_base = zoom_base
        self.view_height_ratio = view_height_ratio
        self.min_zoom = min_zoom
        self.max_zoom = max_zoom
        self._normalize()

    # ------------------------------------------------------------------
    # Derived quantities
    # ------------------------------------------------------------------
    @property
    def zoom(self) -> float:
        return self.state.zoom

    @property
    def pan(self) -> GeoPoint:
        return self.state.pan_long, self.state.pan_lat

    @property
    def strip_height(self) -> float:
        """Screen height of the map strip in pixels."""
        return self.width * self.view_height_ratio

    @property
    def top_bound(self) -> float:
        return self.height - self.strip_height

    def zoom_mult(self, zoom: float | None = None) -> float:
        return self.zoom_base ** (self.state.zoom if zoom is None else zoom)

    def view_width(self, zoom: float | None = None) -> float:
        """Visible longitude span in degrees."""
        return 360.0 / self.zoom_mult(zoom)

    def view_height(self, zoom: float | None = None) -> float:
        """Visible latitude span in degrees."""
        return self.view_width(zoom) * self.view_height_ratio

    @property
    def world_width(self) -> float:
        """Screen width of one full 360 degree copy of the world."""
        return self.width * self.zoom_mult()

    @property
    def search_radius(self) -> float:
        """Hit-test radius in pixels; it grows with zoom like the drawn markers."""
        return self.zoom_mult()

    def default_pivot(self) -> tuple[float, float]:
        return self.width / 2, self.top_bound + self.strip_height / 2

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------
    def in_bounds(self, x: float, y: float) -> bool:
        return 0 <= x < self.width and self.top_bound <= y < self.height

    def contains_pointer(self, x: float, y: float) -> bool:
        """Whether a pointer position is strictly inside the map strip."""
        return 0 < x < self.width and self.top_bound < y < self.height

    def geo_to_screen(self, long: float, lat: float) -> ScreenPoint:
        x = ((long - self.state.pan_long + 360.0) % 360.0) / self.view_width() * self.width
        y = (self.state.pan_lat - lat) / self.view_height() * self.strip_height + self.top_bound
        return ScreenPoint(x, y, self.in_bounds(x, y))

    def screen_to_geo(self, x: float, y: float) -> GeoPoint:
        long = self.state.pan_long + x * self.view_width() / self.width
        lat = self.state.pan_lat - (y - self.top_bound) * self.view_height() / self.strip_height
        return long, lat

    def project_many(
        self, longs: Sequence[float] | np.ndarray, lats: Sequence[float] | np.ndarray
    ) -> tuple[np.ndarray, np.ndarray]:
        """Vectorised :meth:`geo_to_screen` returning ``(xs, ys)`` arrays."""
        longs_arr = np.asarray(longs, dtype=float)
        lats_arr = np.asarray(lats, dtype=float)
        xs = np.mod(longs_arr - self.state.pan_long + 360.0, 360.0) / self.view_width() * self.width
        ys = (self.state.pan_lat - lats_arr) / self.view_height() * self.strip_height + self.top_bound
        return xs, ys

    def wrapped_xs(self, x: float) -> tuple[float, float, float]:
        """The three horizontal copies of a screen x used for drawing and hit-testing."""
        world = self.world_width
        return x, x - world, x + world

    # ------------------------------------------------------------------
    # Pan / zoom
    # ------------------------------------------------------------------
    def _normalize(self) -> None:
        self.state.zoom = max(self.min_zoom, min(self.max_zoom, self.state.zoom))
        self.state.pan_long = normalize_longitude(self.state.pan_long)
        self.state.pan_lat = constrain_latitude(self.state.pan_lat, self.view_height())

    def set_pan(self, long: float, lat: float) -> None:
        self.state.pan_long = normalize_longitude(long)
        self.state.pan_lat = constrain_latitude(lat, self.view_height())

    def pan_from(self, origin: GeoPoint, dx: float, dy: float) -> None:
        """Pan so the map moves by ``(dx, dy)`` pixels relative to ``origin``."""
        origin_long, origin_lat = origin
        self.set_pan(
            origin_long - self.view_width() * dx / self.width,
            origin_lat + self.view_height() * dy / self.strip_height,
        )

    def pan_by(self, dx: float, dy: float) -> None:
        self.pan_from(self.pan, dx, dy)

    def zoom_absolute(
        self, new_zoom: float, pivot_x: float | None = None, pivot_y: float | None = None
    ) -> bool:
        """Zoom to ``new_zoom`` keeping the geo-coordinate under the pivot fixed.

        Returns True when the zoom level changed.
        """
        default_x, default_y = self.default_pivot()
        pivot_x = default_x if pivot_x is None else pivot_x
        pivot_y = default_y if pivot_y is None else pivot_y

        clamped = max(self.min_zoom, min(self.max_zoom, new_zoom))
        old_view_w, old_view_h = self.view_width(), self.view_height()
        new_view_w, new_view_h = self.view_width(clamped), self.view_height(clamped)

        long = self.state.pan_long + (old_view_w - new_view_w) * (pivot_x / self.width)
        lat = self.state.pan_lat - (old_view_h - new_view_h) * (
            (pivot_y - self.top_bound) / self.strip_height
        )
        changed = clamped != self.state.zoom
        self.state.zoom = clamped
        self.set_pan(long, lat)
        return changed

    def zoom_relative(
        self, delta: float, pivot_x: float | None = None, pivot_y: float | None = None
    ) -> bool:
        return self.zoom_absolute(self.state.zoom + delta, pivot_x, pivot_y)
