"""Editing runtime: turns pointer, touch, wheel and key input into track edits.

The runtime owns the document, the undo/redo log and the point index, and
works against an :class:`EditorContext` so several editors can coexist. Side
effects leave through three hooks: ``request_redraw``, ``request_persist``
(autosave; the persistence layer decides between save and delete) and
``show_status``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from hypotrack.model.coordinates import clamp_latitude, normalize_longitude
from hypotrack.model.edit_commands import (
    AddPointCommand,
    DeletePointCommand,
    EditCommand,
    EditEffect,
    ModifyPointCommand,
    MovePointCommand,
    SetTrackDateCommand,
    SetTrackNameCommand,
)
from hypotrack.model.edit_manager import EditManager
from hypotrack.model.invariants import (
    START_HOURS,
    is_valid_start_date,
    is_valid_start_time,
    validate_tracks,
)
from hypotrack.model.track_document import TrackDocument
from hypotrack.model.track_models import (
    PointAttributes,
    StormKind,
    Track,
    TrackPoint,
)
from hypotrack.preview.context import EditorContext
from hypotrack.preview.interaction_state import (
    GestureMode,
    Point,
    choose_gesture_mode,
    pinch_zoom,
    touch_distance,
    touch_midpoint,
)
from hypotrack.preview.point_index import PointIndex
from hypotrack.preview.spatial_index import SpatialIndexEntry

logger = logging.getLogger(__name__)

KEY_CATEGORIES = {"d": 0, "s": 1, "1": 2, "2": 3, "3": 4, "4": 5, "5": 6, "u": 7}
KEY_KINDS = {
    "t": StormKind.TROPICAL,
    "b": StormKind.SUBTROPICAL,
    "x": StormKind.EXTRATROPICAL,
}
NUDGE_KEYS = {"up": (0, 1), "down": (0, -1), "left": (-1, 0), "right": (1, 0)}


@dataclass(frozen=True)
class RenderSnapshot:
    """What an external renderer needs to draw one frame."""

    tracks: Sequence[Track]
    pan: Point
    zoom: float
    selected_track: Optional[Track]
    selected_point: Optional[TrackPoint]
    hover_track: Optional[Track]
    hover_point: Optional[TrackPoint]
    hide_non_selected_tracks: bool


def _noop() -> None:
    return None


class EditorRuntime:
    def __init__(
        self,
        context: EditorContext | None = None,
        document: TrackDocument | None = None,
        *,
        request_redraw: Callable[[], None] = _noop,
        request_persist: Callable[[], None] = _noop,
        is_ready: Callable[[], bool] = lambda: True,
        show_status: Callable[[str], None] | None = None,
        index_capacity: int | None = None,
        index_max_depth: int | None = None,
        wrap_margin: float | None = None,
    ) -> None:
        self.context = context or EditorContext()
        self.document = document or TrackDocument()
        self.history = EditManager(self.document)
        index_kwargs = {
            key: value
            for key, value in (
                ("capacity", index_capacity),
                ("max_depth", index_max_depth),
                ("wrap_margin", wrap_margin),
            )
            if value is not None
        }
        self.point_index = PointIndex(
            lambda: self.document.tracks, self.context.viewport, **index_kwargs
        )
        self.document.geometry_changed.connect(self.point_index.invalidate)
        self._request_redraw = request_redraw
        self._request_persist = request_persist
        self._is_ready = is_ready
        self._show_status = show_status

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------
    @property
    def viewport(self):
        return self.context.viewport

    @property
    def selection(self):
        return self.context.selection

    @property
    def tools(self):
        return self.context.tools

    @property
    def gesture(self):
        return self.context.gesture

    @property
    def tracks(self) -> list[Track]:
        return self.document.tracks

    def snapshot(self) -> RenderSnapshot:
        selection = self.selection
        return RenderSnapshot(
            tracks=tuple(self.document.tracks),
            pan=self.viewport.pan,
            zoom=self.viewport.zoom,
            selected_track=selection.selected_track,
            selected_point=selection.selected_point,
            hover_track=selection.hover_track,
            hover_point=selection.hover_point,
            hide_non_selected_tracks=self.tools.hide_non_selected_tracks,
        )

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def can_redo(self) -> bool:
        return self.history.can_redo()

    def set_status(self, text: str) -> None:
        if self._show_status is not None:
            self._show_status(text)

    # ------------------------------------------------------------------
    # Hit testing
    # ------------------------------------------------------------------
    def pick_nearest(self, x: float, y: float, radius: float | None = None) -> SpatialIndexEntry | None:
        return self.point_index.nearest(x, y, radius)

    def update_hover(self, x: float, y: float) -> bool:
        """Recompute hover from a pointer position, returning True on change."""
        only_track = None
        if self.tools.hide_non_selected_tracks:
            only_track = self.selection.selected_track
        hit = self.point_index.nearest(x, y, back_to_front=True, only_track=only_track)
        if hit is None:
            changed = self.selection.clear_hover()
        else:
            changed = self.selection.set_hover(hit.track, hit.point)
        if changed:
            self._request_redraw()
        return changed

    def clear_hover(self) -> None:
        if self.selection.clear_hover():
            self._request_redraw()

    # ------------------------------------------------------------------
    # Viewport
    # ------------------------------------------------------------------
    def zoom_absolute(self, level: float, pivot_x: float | None = None, pivot_y: float | None = None) -> None:
        self.viewport.zoom_absolute(level, pivot_x, pivot_y)
        self.point_index.invalidate()
        self._request_redraw()

    def zoom_relative(self, delta: float, pivot_x: float | None = None, pivot_y: float | None = None) -> None:
        self.zoom_absolute(self.viewport.zoom + delta, pivot_x, pivot_y)

    def _pan_to_pointer(self, pos: Point) -> None:
        gesture = self.gesture
        if gesture.begin is None:
            return
        if gesture.begin_pan is None:
            gesture.begin_pan = self.viewport.pan
        self.viewport.pan_from(
            gesture.begin_pan, pos[0] - gesture.begin[0], pos[1] - gesture.begin[1]
        )
        # screen positions depend on pan, so the cached index is stale now
        self.point_index.invalidate()
        self._request_redraw()

    def on_wheel(self, delta_y: float, x: float, y: float) -> bool:
        """``delta_y`` follows the browser convention: negative scrolls up (zoom in)."""
        if not self.viewport.contains_pointer(x, y) or delta_y == 0:
            return False
        self.zoom_relative(-delta_y * self.context.wheel_sensitivity, x, y)
        return True

    # ------------------------------------------------------------------
    # Pointer gestures
    # ------------------------------------------------------------------
    def _begin_gesture(self, x: float, y: float) -> None:
        gesture = self.gesture
        gesture.begin = (x, y)
        gesture.begin_pan = None
        gesture.is_dragging = True
        gesture.point_moved = False
        ready = self._is_ready()
        gesture.blocked = not ready
        gesture.mode = choose_gesture_mode(
            ready=ready,
            delete_mode=self.tools.delete_mode,
            on_selected_point=self.selection.hover_is_selection(),
        )
        if gesture.mode == GestureMode.MOVE_POINT:
            point = self.selection.selected_point
            gesture.begin_point = (point.long, point.lat)
        self._request_redraw()

    def _drag_to(self, x: float, y: float) -> None:
        gesture = self.gesture
        if gesture.mode == GestureMode.MOVE_POINT:
            point = self.selection.selected_point
            if point is not None:
                long, lat = self._pointer_geo(x, y)
                self.document.set_point_position(point, long, lat)
                gesture.point_moved = True
                self._request_redraw()
            return
        if gesture.mode == GestureMode.PAN or gesture.drag_distance((x, y)) >= self.context.drag_threshold:
            gesture.mode = GestureMode.PAN
            self._pan_to_pointer((x, y))

    def _finish_gesture(self, x: float, y: float) -> None:
        gesture = self.gesture
        mode = gesture.mode
        if gesture.blocked:
            logger.debug("Ignoring gesture while a save/load is in flight")
        elif mode == GestureMode.ADD:
            self.add_point_at(x, y)
        elif mode == GestureMode.MOVE_POINT:
            self._finish_move()
        elif mode == GestureMode.DELETE_POINT:
            self.delete_point_at(x, y)
        gesture.reset()
        self._request_redraw()

    def on_press(self, x: float, y: float) -> bool:
        if not self.viewport.contains_pointer(x, y):
            return False
        self.update_hover(x, y)
        self._begin_gesture(x, y)
        return True

    def on_move(self, x: float, y: float) -> bool:
        if not self.gesture.is_dragging:
            if self.viewport.contains_pointer(x, y):
                return self.update_hover(x, y)
            return False
        self._drag_to(x, y)
        return True

    def on_release(self, x: float, y: float) -> bool:
        if not self.gesture.is_dragging:
            return False
        self._finish_gesture(x, y)
        return True

    def on_leave(self) -> None:
        self.clear_hover()

    def cancel_gesture(self) -> None:
        """Abort the gesture in progress without touching the history."""
        gesture = self.gesture
        if gesture.mode == GestureMode.MOVE_POINT and gesture.point_moved:
            point = self.selection.selected_point
            if point is not None and gesture.begin_point is not None:
                self.document.set_point_position(point, *gesture.begin_point)
        gesture.pinch.active = False
        gesture.suppress_next_tap = False
        gesture.reset()
        self._request_redraw()

    # ------------------------------------------------------------------
    # Touch gestures
    # ------------------------------------------------------------------
    def on_touch_start(self, touches: Sequence[Point]) -> bool:
        if not touches:
            return False
        gesture = self.gesture
        if len(touches) == 1:
            gesture.suppress_next_tap = False
            x, y = touches[0]
            gesture.touch_start = gesture.touch_last = (x, y)
            if not self.viewport.contains_pointer(x, y):
                gesture.touch_started_inside = False
                return True
            gesture.touch_started_inside = True
            gesture.is_touching = True
            # there is no hover on touch screens, so emulate it at the finger
            self.update_hover(x, y)
            self._begin_gesture(x, y)
            return True

        gesture.suppress_next_tap = True
        pinch = gesture.pinch
        pinch.active = True
        pinch.start_dist = touch_distance(touches)
        pinch.start_zoom = self.viewport.zoom
        pinch.center = touch_midpoint(touches)
        return True

    def on_touch_move(self, touches: Sequence[Point]) -> bool:
        if not touches:
            return False
        gesture = self.gesture
        pinch = gesture.pinch
        if len(touches) >= 2 and pinch.active:
            gesture.suppress_next_tap = True
            level = pinch_zoom(
                pinch.start_zoom,
                pinch.start_dist,
                touch_distance(touches),
                self.viewport.zoom_base,
            )
            mid_x, mid_y = touch_midpoint(touches)
            self.zoom_absolute(level, mid_x, mid_y)
            return True

        if len(touches) == 1 and gesture.is_touching and gesture.touch_started_inside:
            x, y = touches[0]
            self._drag_to(x, y)
            gesture.touch_last = (x, y)
            return True
        return False

    def on_touch_end(self, remaining: Sequence[Point] = ()) -> bool:
        gesture = self.gesture
        if len(remaining) < 2 and gesture.pinch.active:
            gesture.pinch.active = False

        if gesture.suppress_next_tap:
            # a pinch happened during this gesture: no tap action on last finger up
            if not remaining:
                gesture.suppress_next_tap = False
                gesture.reset()
                self._request_redraw()
            return True

        if not gesture.is_touching:
            return False
        self._finish_gesture(*gesture.touch_last)
        return True

    def on_touch_cancel(self) -> None:
        self.cancel_gesture()

    # ------------------------------------------------------------------
    # Editing operations
    # ------------------------------------------------------------------
    def _pointer_geo(self, x: float, y: float) -> Point:
        long, lat = self.viewport.screen_to_geo(x, y)
        return normalize_longitude(long), clamp_latitude(lat)

    def add_point_at(self, x: float, y: float) -> TrackPoint | None:
        """Select the point under ``(x, y)``, or place a new one after the selection.

        Returns the new point, or None when an existing point was selected.
        """
        self.update_hover(x, y)
        selection = self.selection
        if selection.hover_track is not None:
            selection.select(selection.hover_track, selection.hover_point)
            self._request_redraw()
            return None

        track = selection.selected_track
        was_new_track = track is None
        if was_new_track:
            track_index = len(self.document)
            point_index = 0
        else:
            track_index = self.document.index_of(track)
            point_index = track.index_of(selection.selected_point) + 1

        long, lat = self._pointer_geo(x, y)
        point = TrackPoint(long, lat, self.tools.category_to_place, self.tools.kind_to_place)
        effect = self._execute(
            AddPointCommand(track_index, point_index, point.snapshot(), was_new_track)
        )
        return effect.inserted.point if effect.inserted else None

    def _finish_move(self) -> None:
        gesture = self.gesture
        point = self.selection.selected_point
        if point is None or gesture.begin_point is None or not gesture.point_moved:
            return
        track_index, point_index = self.document.locate(self.selection.selected_track, point)
        if point_index == -1:
            return
        long0, lat0 = gesture.begin_point
        self.history.record(
            MovePointCommand(track_index, point_index, long0, lat0, point.long, point.lat)
        )
        self._after_edit()

    def delete_point_at(self, x: float, y: float) -> bool:
        """Delete the point nearest to ``(x, y)`` within the search radius."""
        hit = self.pick_nearest(x, y)
        if hit is None:
            self._request_redraw()
            return False
        track_index, point_index = self.document.locate(hit.track, hit.point)
        if track_index == -1 or point_index == -1:
            return False
        self.delete_point(track_index, point_index)
        return True

    def delete_point(self, track_index: int, point_index: int) -> None:
        track = self.document.track_at(track_index)
        point = self.document.point_at(track_index, point_index)
        self._execute(
            DeletePointCommand(
                track_index,
                point_index,
                point.snapshot(),
                track_was_deleted=len(track.points) == 1,
                track_name=track.name,
                start_date=track.start_date,
                start_time=track.start_time,
            )
        )

    def nudge_selected(self, dx: float, dy: float) -> bool:
        """Move the selected point by ``(dx, dy)`` degrees as one undoable edit."""
        point = self.selection.selected_point
        if point is None:
            return False
        track_index, point_index = self.document.locate(self.selection.selected_track, point)
        if point_index == -1:
            return False
        long1 = normalize_longitude(point.long + dx)
        lat1 = clamp_latitude(point.lat + dy)
        self._execute(
            MovePointCommand(track_index, point_index, point.long, point.lat, long1, lat1)
        )
        return True

    def modify_selected_point(
        self,
        category: int,
        kind: StormKind,
        wind: float | None = None,
        pressure: float | None = None,
    ) -> bool:
        point = self.selection.selected_point
        if point is None:
            return False
        if category < 0:
            raise ValueError(f"Category must be >= 0, got {category}.")
        track_index, point_index = self.document.locate(self.selection.selected_track, point)
        if point_index == -1:
            return False
        new = PointAttributes(category, StormKind(kind), wind, pressure)
        old = point.attributes()
        if new == old:
            return False
        self._execute(ModifyPointCommand(track_index, point_index, old, new))
        return True

    def set_selected_track_name(self, name: str | None) -> bool:
        track = self.selection.selected_track
        if track is None:
            return False
        new_name = (name or "").strip() or None
        if new_name == track.name:
            return False
        self._execute(
            SetTrackNameCommand(self.document.index_of(track), track.name, new_name)
        )
        return True

    def set_selected_track_date(self, start_date: str | None, start_time: int | None) -> bool:
        track = self.selection.selected_track
        if track is None:
            return False
        if not is_valid_start_date(start_date):
            raise ValueError(f"Start date must be YYYYMMDD, got {start_date!r}.")
        if not is_valid_start_time(start_time):
            raise ValueError(f"Start time must be one of {START_HOURS}, got {start_time!r}.")
        if (start_date, start_time) == (track.start_date, track.start_time):
            return False
        self._execute(
            SetTrackDateCommand(
                self.document.index_of(track),
                track.start_date,
                track.start_time,
                start_date,
                start_time,
            )
        )
        return True

    def deselect(self) -> None:
        self.selection.deselect()
        self.tools.hide_non_selected_tracks = False
        self._request_redraw()

    # ------------------------------------------------------------------
    # Undo / redo
    # ------------------------------------------------------------------
    def undo(self) -> bool:
        return self._replay(self.history.undo())

    def redo(self) -> bool:
        return self._replay(self.history.redo())

    def _replay(self, effect: EditEffect | None) -> bool:
        if effect is None:
            return False
        self.selection.apply_effect(effect)
        # metadata-only actions do not touch geometry, invalidate anyway
        self.point_index.invalidate()
        self._after_edit()
        return True

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def load_tracks(self, tracks: Iterable[Track]) -> None:
        """Replace every track (load or import); clears history and selection.

        The new list is validated first; on failure nothing changes.
        """
        new_tracks = list(tracks)
        validate_tracks(new_tracks)
        self.cancel_gesture()
        self.document.replace_tracks(new_tracks)
        self.history.reset()
        self.deselect()
        logger.info("Loaded %s tracks", len(new_tracks))

    # ------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------
    def on_key(self, key: str, *, ctrl: bool = False, shift: bool = False) -> bool:
        """Handle a key press. ``key`` is a lower-case character or an arrow name."""
        if ctrl and key in ("z", "y"):
            if key == "y" or shift:
                self.redo()
            else:
                self.undo()
            return True
        if ctrl:
            return False

        if key in NUDGE_KEYS and self.selection.selected_point is not None:
            dx, dy = NUDGE_KEYS[key]
            step = self.context.nudge_step
            return self.nudge_selected(dx * step, dy * step)

        tools = self.tools
        if key in KEY_CATEGORIES:
            tools.category_to_place = KEY_CATEGORIES[key]
        elif key in KEY_KINDS:
            tools.kind_to_place = KEY_KINDS[key]
        elif key == " ":
            self.deselect()
        elif key == "h":
            if self.selection.selected_track is None:
                return False
            tools.hide_non_selected_tracks = not tools.hide_non_selected_tracks
        elif key == "q":
            tools.delete_mode = not tools.delete_mode
        elif key == "a":
            tools.autosave = not tools.autosave
        else:
            return False
        self._request_redraw()
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _execute(self, command: EditCommand) -> EditEffect:
        effect = self.history.execute(command)
        self.selection.apply_effect(effect, select_inserted=True)
        self._after_edit()
        return effect

    def _after_edit(self) -> None:
        if self.tools.autosave:
            self._request_persist()
        self._request_redraw()
