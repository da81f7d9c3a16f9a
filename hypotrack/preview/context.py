"""Per-editor mutable context: viewport, selection, tool settings and gesture."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from hypotrack.model.selection import SelectionState
from hypotrack.model.track_models import StormKind
from hypotrack.preview.interaction_state import DRAG_THRESHOLD, GestureState
from hypotrack.preview.viewport import Viewport

if TYPE_CHECKING:
    from hypotrack.config import EditorSettings

WHEEL_SENSITIVITY = 1 / 125
NUDGE_STEP = 0.01


@dataclass
class ToolSettings:
    category_to_place: int = 0
    kind_to_place: StormKind = StormKind.TROPICAL
    delete_mode: bool = False
    autosave: bool = True
    hide_non_selected_tracks: bool = False


@dataclass
class EditorContext:
    viewport: Viewport = field(default_factory=Viewport)
    selection: SelectionState = field(default_factory=SelectionState)
    tools: ToolSettings = field(default_factory=ToolSettings)
    gesture: GestureState = field(default_factory=GestureState)
    drag_threshold: float = DRAG_THRESHOLD
    wheel_sensitivity: float = WHEEL_SENSITIVITY
    nudge_step: float = NUDGE_STEP


def context_from_settings(settings: "EditorSettings") -> EditorContext:
    viewport = Viewport(
        width=settings.canvas_width,
        height=settings.canvas_height,
        zoom_base=settings.zoom_base,
        view_height_ratio=settings.view_height_ratio,
        min_zoom=settings.min_zoom,
        max_zoom=settings.max_zoom,
    )
    return EditorContext(
        viewport=viewport,
        tools=ToolSettings(autosave=settings.autosave),
        drag_threshold=settings.drag_threshold,
        wheel_sensitivity=settings.wheel_sensitivity,
        nudge_step=settings.nudge_step,
    )
