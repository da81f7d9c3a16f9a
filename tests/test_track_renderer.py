import os
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

try:
    from PyQt5 import QtGui, QtWidgets

    from hypotrack.model.track_models import StormKind, Track, TrackPoint
    from hypotrack.preview.runtime import RenderSnapshot
    from hypotrack.preview.viewport import Viewport
    from hypotrack.ui.track_renderer import OCEAN, TrackRenderer
except ImportError:  # pragma: no cover
    pytest.skip("PyQt5 not available", allow_module_level=True)


@pytest.fixture(scope="module")
def qapp():
    app = QtWidgets.QApplication.instance()
    if app is None:
        app = QtWidgets.QApplication([])
    yield app


def _render(tracks, viewport=None, **snapshot_kwargs):
    viewport = viewport or Viewport()
    image = QtGui.QImage(viewport.width, viewport.height, QtGui.QImage.Format_ARGB32)
    snapshot = RenderSnapshot(
        tracks=tuple(tracks),
        pan=viewport.pan,
        zoom=viewport.zoom,
        selected_track=snapshot_kwargs.get("selected_track"),
        selected_point=snapshot_kwargs.get("selected_point"),
        hover_track=None,
        hover_point=None,
        hide_non_selected_tracks=snapshot_kwargs.get("hide", False),
    )
    painter = QtGui.QPainter(image)
    try:
        TrackRenderer().paint(painter, snapshot, viewport)
    finally:
        painter.end()
    return image


def test_points_are_drawn_in_category_colour(qapp):
    image = _render([Track([TrackPoint(0.0, 0.0, 4, StormKind.SUBTROPICAL)])])

    assert image.pixelColor(500, 250).name() == "#ffc140"
    assert image.pixelColor(100, 100) == OCEAN


def test_single_track_mode_hides_other_tracks(qapp):
    shown = Track([TrackPoint(0.0, 0.0, 6)])
    hidden = Track([TrackPoint(36.0, 0.0, 6)])

    image = _render(
        [shown, hidden], selected_track=shown, selected_point=shown.points[0], hide=True
    )

    assert image.pixelColor(500, 250).name() == "#ff6060"
    assert image.pixelColor(600, 250) == OCEAN
