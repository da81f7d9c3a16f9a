"""Selection and hover state for the editor."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from hypotrack.model.edit_commands import EditEffect
from hypotrack.model.track_models import Track, TrackPoint


@dataclass
class SelectionState:
    """References into the document; never owners of the tracks."""

    selected_track: Optional[Track] = None
    selected_point: Optional[TrackPoint] = None
    hover_track: Optional[Track] = None
    hover_point: Optional[TrackPoint] = None

    def select(self, track: Track | None, point: TrackPoint | None) -> None:
        self.selected_track = track
        self.selected_point = point

    def deselect(self) -> None:
        self.selected_track = None
        self.selected_point = None
        self.clear_hover()

    def set_hover(self, track: Track | None, point: TrackPoint | None) -> bool:
        """Update hover state, returning True on change."""
        if track is self.hover_track and point is self.hover_point:
            return False
        self.hover_track = track
        self.hover_point = point
        return True

    def clear_hover(self) -> bool:
        return self.set_hover(None, None)

    def hover_is_selection(self) -> bool:
        return (
            self.hover_track is not None
            and self.hover_track is self.selected_track
            and self.hover_point is not None
            and self.hover_point is self.selected_point
        )

    def repair_after_removal(self, track: Track, point: TrackPoint, track_removed: bool) -> None:
        """Reseat the selection after ``point`` left ``track``.

        A removed selected point falls back to the track's new last point; a
        removed selected track clears the selection.
        """
        if self.hover_point is point:
            self.clear_hover()
        if track_removed:
            if self.selected_track is track:
                self.deselect()
            return
        if self.selected_point is point and track.points:
            self.select(track, track.points[-1])

    def apply_effect(self, effect: EditEffect | None, select_inserted: bool = False) -> None:
        """Follow an edit effect: repair after removals, then select an inserted point.

        An inserted point is only selected when ``select_inserted`` is set or
        nothing is selected, so undo/redo leaves a live selection alone.
        """
        if effect is None:
            return
        if effect.removed is not None:
            removed = effect.removed
            self.repair_after_removal(removed.track, removed.point, removed.track_removed)
        if effect.inserted is not None and (select_inserted or self.selected_point is None):
            self.select(effect.inserted.track, effect.inserted.point)
