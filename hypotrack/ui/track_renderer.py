"""Plain QPainter rendering of the map strip and the tracks."""
from __future__ import annotations

from typing import Sequence

from PyQt5 import QtCore, QtGui

from hypotrack.model.track_models import DEFAULT_CATEGORIES, Category, StormKind
from hypotrack.preview.runtime import RenderSnapshot
from hypotrack.preview.viewport import Viewport

BACKGROUND = QtGui.QColor(24, 24, 24)
OCEAN = QtGui.QColor(18, 44, 78)
LINE_COLOR = QtGui.QColor(255, 255, 255, 180)
SELECTED_LINE_COLOR = QtGui.QColor(255, 255, 255)
HOVER_COLOR = QtGui.QColor(255, 255, 255)


class TrackRenderer:
    """Draws one frame from a :class:`RenderSnapshot`.

    Base-map images, when present, are tiled horizontally like the tracks so
    the antimeridian seam stays continuous.
    """

    def __init__(self, categories: Sequence[Category] = DEFAULT_CATEGORIES) -> None:
        self._categories = categories
        self._map_images: list[QtGui.QImage] = []

    def set_map_images(self, images: Sequence[QtGui.QImage]) -> None:
        self._map_images = list(images)

    def has_map(self) -> bool:
        return bool(self._map_images)

    def paint(self, painter: QtGui.QPainter, snapshot: RenderSnapshot, viewport: Viewport) -> None:
        painter.fillRect(
            QtCore.QRectF(0, 0, viewport.width, viewport.height), BACKGROUND
        )
        strip = QtCore.QRectF(0, viewport.top_bound, viewport.width, viewport.strip_height)
        painter.save()
        painter.setClipRect(strip)
        painter.fillRect(strip, OCEAN)
        self._paint_map(painter, viewport)
        painter.setRenderHint(QtGui.QPainter.Antialiasing, True)
        self._paint_tracks(painter, snapshot, viewport)
        painter.restore()

    def _paint_map(self, painter: QtGui.QPainter, viewport: Viewport) -> None:
        if not self._map_images:
            return
        image = self._map_images[0]
        origin = viewport.geo_to_screen(-180.0, 90.0)
        world = viewport.world_width
        target_h = viewport.strip_height * viewport.zoom_mult()
        for x in viewport.wrapped_xs(origin.x):
            painter.drawImage(QtCore.QRectF(x, origin.y, world, target_h), image)

    def _point_color(self, category: int) -> QtGui.QColor:
        if 0 <= category < len(self._categories):
            return QtGui.QColor(self._categories[category].color)
        return QtGui.QColor(0, 0, 0)

    def _paint_tracks(self, painter: QtGui.QPainter, snapshot: RenderSnapshot, viewport: Viewport) -> None:
        radius = max(2.0, viewport.zoom_mult() * 0.75)
        for track in snapshot.tracks:
            selected = track is snapshot.selected_track
            if snapshot.hide_non_selected_tracks and snapshot.selected_track is not None and not selected:
                continue
            projected = [viewport.geo_to_screen(point.long, point.lat) for point in track.points]
            pen = QtGui.QPen(SELECTED_LINE_COLOR if selected else LINE_COLOR, 2 if selected else 1)
            painter.setPen(pen)
            for start, end in zip(projected, projected[1:]):
                dx = end.x - start.x
                # take the short way round the antimeridian
                if abs(dx) > viewport.world_width / 2:
                    dx -= viewport.world_width if dx > 0 else -viewport.world_width
                for x in viewport.wrapped_xs(start.x):
                    painter.drawLine(
                        QtCore.QPointF(x, start.y), QtCore.QPointF(x + dx, end.y)
                    )
            for point, screen in zip(track.points, projected):
                painter.setBrush(self._point_color(point.category))
                is_hover = point is snapshot.hover_point
                painter.setPen(QtGui.QPen(HOVER_COLOR, 2) if is_hover else QtCore.Qt.NoPen)
                for x in viewport.wrapped_xs(screen.x):
                    self._paint_marker(painter, point.kind, QtCore.QPointF(x, screen.y), radius)
            if selected and snapshot.selected_point is not None:
                point = snapshot.selected_point
                screen = viewport.geo_to_screen(point.long, point.lat)
                painter.setBrush(QtCore.Qt.NoBrush)
                painter.setPen(QtGui.QPen(SELECTED_LINE_COLOR, 1, QtCore.Qt.DashLine))
                for x in viewport.wrapped_xs(screen.x):
                    painter.drawEllipse(QtCore.QPointF(x, screen.y), radius * 1.8, radius * 1.8)

    @staticmethod
    def _paint_marker(painter: QtGui.QPainter, kind: StormKind, center: QtCore.QPointF, radius: float) -> None:
        if kind == StormKind.SUBTROPICAL:
            painter.drawRect(QtCore.QRectF(center.x() - radius, center.y() - radius, radius * 2, radius * 2))
        elif kind == StormKind.EXTRATROPICAL:
            triangle = QtGui.QPolygonF(
                [
                    QtCore.QPointF(center.x(), center.y() - radius),
                    QtCore.QPointF(center.x() + radius, center.y() + radius),
                    QtCore.QPointF(center.x() - radius, center.y() + radius),
                ]
            )
            painter.drawPolygon(triangle)
        else:
            painter.drawEllipse(center, radius, radius)
