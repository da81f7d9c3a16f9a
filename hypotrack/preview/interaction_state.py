from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional, Sequence, Tuple

Point = Tuple[float, float]

DRAG_THRESHOLD = 20.0


class GestureMode(IntEnum):
    ADD = 0
    PAN = 1
    MOVE_POINT = 2
    DELETE_POINT = 3


@dataclass
class PinchState:
    active: bool = False
    start_dist: float = 0.0
    start_zoom: float = 0.0
    center: Point = (0.0, 0.0)


@dataclass
class GestureState:
    """Transient state of the pointer or touch gesture in progress."""

    is_dragging: bool = False
    mode: GestureMode = GestureMode.ADD
    # set when the gesture started while a save/load was in flight
    blocked: bool = False
    begin: Optional[Point] = None
    begin_pan: Optional[Point] = None
    begin_point: Optional[Point] = None
    point_moved: bool = False
    is_touching: bool = False
    touch_start: Point = (0.0, 0.0)
    touch_last: Point = (0.0, 0.0)
    touch_started_inside: bool = False
    suppress_next_tap: bool = False
    pinch: PinchState = field(default_factory=PinchState)

    def reset(self) -> None:
        """Forget the gesture in progress (pinch bookkeeping is handled by touch events)."""
        self.is_dragging = False
        self.is_touching = False
        self.mode = GestureMode.ADD
        self.blocked = False
        self.begin = None
        self.begin_pan = None
        self.begin_point = None
        self.point_moved = False

    def drag_distance(self, pos: Point) -> float:
        if self.begin is None:
            return 0.0
        return math.hypot(pos[0] - self.begin[0], pos[1] - self.begin[1])


def choose_gesture_mode(*, ready: bool, delete_mode: bool, on_selected_point: bool) -> GestureMode:
    """Decide the gesture mode at press time; it stays fixed until release."""
    if not ready:
        return GestureMode.ADD
    if delete_mode:
        return GestureMode.DELETE_POINT
    if on_selected_point:
        return GestureMode.MOVE_POINT
    return GestureMode.ADD


def touch_distance(touches: Sequence[Point]) -> float:
    (x1, y1), (x2, y2) = touches[0], touches[1]
    return math.hypot(x2 - x1, y2 - y1)


def touch_midpoint(touches: Sequence[Point]) -> Point:
    (x1, y1), (x2, y2) = touches[0], touches[1]
    return (x1 + x2) / 2, (y1 + y2) / 2


def pinch_zoom(start_zoom: float, start_dist: float, dist: float, zoom_base: float) -> float:
    """Zoom level for a pinch whose finger spread went from ``start_dist`` to ``dist``."""
    scale = dist / (start_dist or dist) if dist else 1.0
    return start_zoom + math.log(scale) / math.log(zoom_base)
