"""Qt surface for the track editor.

The widget only translates Qt events into :class:`EditorRuntime` calls and
paints through :class:`TrackRenderer`. Widget coordinates are scaled to the
fixed canvas size the viewport works in.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional, Sequence

from PyQt5 import QtCore, QtGui, QtWidgets

from hypotrack.preview.redraw import RedrawScheduler
from hypotrack.preview.runtime import EditorRuntime
from hypotrack.services.imagery import ImageryLoadTask
from hypotrack.ui.track_renderer import TrackRenderer

logger = logging.getLogger(__name__)

_ARROW_KEYS = {
    QtCore.Qt.Key_Up: "up",
    QtCore.Qt.Key_Down: "down",
    QtCore.Qt.Key_Left: "left",
    QtCore.Qt.Key_Right: "right",
}


def key_name(key: int) -> Optional[str]:
    """Lower-case character or arrow name for a ``QtCore.Qt.Key`` value."""
    if key in _ARROW_KEYS:
        return _ARROW_KEYS[key]
    if key == QtCore.Qt.Key_Space:
        return " "
    if 0x21 <= key <= 0x7E:
        return chr(key).lower()
    return None


def _qt_next_frame(callback: Callable[[], None]) -> None:
    QtCore.QTimer.singleShot(0, callback)


class MapWidget(QtWidgets.QWidget):
    """Interactive map canvas backed by an :class:`EditorRuntime`."""

    statusMessage = QtCore.pyqtSignal(str)
    imageryLoaded = QtCore.pyqtSignal(int)

    def __init__(
        self,
        runtime_factory: Callable[..., EditorRuntime],
        renderer: TrackRenderer | None = None,
        parent: QtWidgets.QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.setMouseTracking(True)
        self.setFocusPolicy(QtCore.Qt.StrongFocus)
        self.setAttribute(QtCore.Qt.WA_AcceptTouchEvents, True)

        self._redraw = RedrawScheduler(_qt_next_frame, self.update)
        self.runtime = runtime_factory(
            request_redraw=self._redraw.request,
            show_status=self.statusMessage.emit,
        )
        self._renderer = renderer or TrackRenderer()
        self._imagery_generation = 0
        self._imagery_tasks: set[ImageryLoadTask] = set()

        viewport = self.runtime.viewport
        self.setMinimumSize(viewport.width // 2, viewport.height // 2)
        self.resize(viewport.width, viewport.height)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def sizeHint(self) -> QtCore.QSize:  # noqa: D401 - Qt signature
        viewport = self.runtime.viewport
        return QtCore.QSize(viewport.width, viewport.height)

    def request_redraw(self) -> None:
        self._redraw.request()

    def load_imagery(self, paths: Sequence[Path]) -> None:
        """Fetch base-map images in the background; older requests are dropped."""
        self._imagery_generation += 1
        task = ImageryLoadTask(self._imagery_generation, paths)
        task.signals.loaded.connect(
            lambda generation, buffers, task=task: self._handle_imagery_loaded(
                task, generation, buffers
            )
        )
        task.signals.failed.connect(
            lambda generation, message, task=task: self._handle_imagery_failed(
                task, generation, message
            )
        )
        self._imagery_tasks.add(task)
        QtCore.QThreadPool.globalInstance().start(task)

    def _handle_imagery_loaded(self, task: ImageryLoadTask, generation: int, buffers: list) -> None:
        self._imagery_tasks.discard(task)
        if generation != self._imagery_generation:
            return
        images = []
        for data in buffers:
            image = QtGui.QImage.fromData(data)
            if image.isNull():
                self.statusMessage.emit("Could not decode map image.")
                logger.error("Could not decode map image (%s bytes)", len(data))
                return
            images.append(image)
        self._renderer.set_map_images(images)
        self.imageryLoaded.emit(generation)
        self.request_redraw()

    def _handle_imagery_failed(self, task: ImageryLoadTask, generation: int, message: str) -> None:
        self._imagery_tasks.discard(task)
        if generation == self._imagery_generation:
            self.statusMessage.emit(f"Map load failed: {message}")

    # ------------------------------------------------------------------
    # Coordinates
    # ------------------------------------------------------------------
    def _to_canvas(self, pos: QtCore.QPointF) -> tuple[float, float]:
        viewport = self.runtime.viewport
        sx = viewport.width / max(1, self.width())
        sy = viewport.height / max(1, self.height())
        return pos.x() * sx, pos.y() * sy

    # ------------------------------------------------------------------
    # Qt events
    # ------------------------------------------------------------------
    def paintEvent(self, event) -> None:  # noqa: D401 - Qt signature
        viewport = self.runtime.viewport
        painter = QtGui.QPainter(self)
        try:
            painter.scale(self.width() / viewport.width, self.height() / viewport.height)
            self._renderer.paint(painter, self.runtime.snapshot(), viewport)
        finally:
            painter.end()

    def wheelEvent(self, event: QtGui.QWheelEvent) -> None:  # noqa: D401 - Qt signature
        delta = event.angleDelta().y()
        if delta == 0:
            return
        x, y = self._to_canvas(QtCore.QPointF(event.pos()))
        if self.runtime.on_wheel(-delta, x, y):
            event.accept()
        else:
            super().wheelEvent(event)

    def mousePressEvent(self, event: QtGui.QMouseEvent) -> None:  # noqa: D401 - Qt signature
        if event.button() == QtCore.Qt.LeftButton:
            if self.runtime.on_press(*self._to_canvas(QtCore.QPointF(event.pos()))):
                event.accept()
                return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event: QtGui.QMouseEvent) -> None:  # noqa: D401 - Qt signature
        self.runtime.on_move(*self._to_canvas(QtCore.QPointF(event.pos())))
        event.accept()

    def mouseReleaseEvent(self, event: QtGui.QMouseEvent) -> None:  # noqa: D401 - Qt signature
        if event.button() == QtCore.Qt.LeftButton:
            if self.runtime.on_release(*self._to_canvas(QtCore.QPointF(event.pos()))):
                event.accept()
                return
        super().mouseReleaseEvent(event)

    def leaveEvent(self, event) -> None:  # noqa: D401 - Qt signature
        self.runtime.on_leave()
        super().leaveEvent(event)

    def keyPressEvent(self, event: QtGui.QKeyEvent) -> None:  # noqa: D401 - Qt signature
        if event.key() == QtCore.Qt.Key_Escape:
            self.runtime.cancel_gesture()
            event.accept()
            return
        name = key_name(event.key())
        modifiers = event.modifiers()
        if name is not None and self.runtime.on_key(
            name,
            ctrl=bool(modifiers & QtCore.Qt.ControlModifier),
            shift=bool(modifiers & QtCore.Qt.ShiftModifier),
        ):
            event.accept()
            return
        super().keyPressEvent(event)

    def event(self, event: QtCore.QEvent) -> bool:  # noqa: D401 - Qt signature
        kind = event.type()
        if kind == QtCore.QEvent.TouchCancel:
            self.runtime.on_touch_cancel()
            event.accept()
            return True
        if kind in (QtCore.QEvent.TouchBegin, QtCore.QEvent.TouchUpdate, QtCore.QEvent.TouchEnd):
            self._handle_touch(event)
            event.accept()
            return True
        return super().event(event)

    def _handle_touch(self, event: QtGui.QTouchEvent) -> None:
        touch_points = event.touchPoints()
        active = [
            self._to_canvas(point.pos())
            for point in touch_points
            if point.state() != QtCore.Qt.TouchPointReleased
        ]
        pressed = any(point.state() == QtCore.Qt.TouchPointPressed for point in touch_points)
        released = any(point.state() == QtCore.Qt.TouchPointReleased for point in touch_points)
        if event.type() == QtCore.QEvent.TouchBegin or pressed:
            self.runtime.on_touch_start(active)
        elif event.type() == QtCore.QEvent.TouchEnd or released:
            self.runtime.on_touch_end(active)
        else:
            self.runtime.on_touch_move(active)
