"""Reversible history actions for track edits.

Each action is a frozen payload carrying enough data to both apply and revert
itself against a :class:`TrackDocument`. ``apply`` performs the forward edit
(used for redo and for direct execution); ``revert`` undoes it. Both return an
:class:`EditEffect` describing which point was inserted or removed so the
caller can repair the selection.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Optional, Union

from hypotrack.model.track_models import (
    PointAttributes,
    PointSnapshot,
    Track,
    TrackPoint,
)

if TYPE_CHECKING:
    from hypotrack.model.track_document import TrackDocument


class ActionKind(Enum):
    ADD_POINT = 0
    MOVE_POINT = 1
    MODIFY_POINT = 2
    DELETE_POINT = 3
    SET_TRACK_DATE = 4
    SET_TRACK_NAME = 5


@dataclass(frozen=True)
class PointInserted:
    track: Track
    point: TrackPoint


@dataclass(frozen=True)
class PointRemoved:
    track: Track
    point: TrackPoint
    track_removed: bool


@dataclass(frozen=True)
class EditEffect:
    inserted: Optional[PointInserted] = None
    removed: Optional[PointRemoved] = None


NO_EFFECT = EditEffect()


class EditCommand(ABC):
    """Base class for reversible track edits."""

    kind: ClassVar[ActionKind]

    @abstractmethod
    def apply(self, document: "TrackDocument") -> EditEffect:
        """Perform the forward edit."""

    @abstractmethod
    def revert(self, document: "TrackDocument") -> EditEffect:
        """Undo the forward edit."""


def _insert(
    document: "TrackDocument",
    track_index: int,
    point_index: int,
    snapshot: PointSnapshot,
    *,
    new_track: Track | None = None,
) -> EditEffect:
    if new_track is not None:
        document.insert_track(track_index, new_track)
    point = TrackPoint.from_snapshot(snapshot)
    document.insert_point(track_index, point_index, point)
    return EditEffect(inserted=PointInserted(document.track_at(track_index), point))


def _remove(document: "TrackDocument", track_index: int, point_index: int) -> EditEffect:
    track = document.track_at(track_index)
    point, pruned = document.remove_point(track_index, point_index)
    return EditEffect(removed=PointRemoved(track, point, pruned))


@dataclass(frozen=True)
class AddPointCommand(EditCommand):
    kind: ClassVar[ActionKind] = ActionKind.ADD_POINT

    track_index: int
    point_index: int
    point: PointSnapshot
    was_new_track: bool

    def apply(self, document: "TrackDocument") -> EditEffect:
        new_track = Track() if self.was_new_track else None
        return _insert(
            document, self.track_index, self.point_index, self.point, new_track=new_track
        )

    def revert(self, document: "TrackDocument") -> EditEffect:
        return _remove(document, self.track_index, self.point_index)


@dataclass(frozen=True)
class MovePointCommand(EditCommand):
    kind: ClassVar[ActionKind] = ActionKind.MOVE_POINT

    track_index: int
    point_index: int
    long0: float
    lat0: float
    long1: float
    lat1: float

    def apply(self, document: "TrackDocument") -> EditEffect:
        document.move_point(self.track_index, self.point_index, self.long1, self.lat1)
        return NO_EFFECT

    def revert(self, document: "TrackDocument") -> EditEffect:
        document.move_point(self.track_index, self.point_index, self.long0, self.lat0)
        return NO_EFFECT


@dataclass(frozen=True)
class ModifyPointCommand(EditCommand):
    kind: ClassVar[ActionKind] = ActionKind.MODIFY_POINT

    track_index: int
    point_index: int
    old: PointAttributes
    new: PointAttributes

    def apply(self, document: "TrackDocument") -> EditEffect:
        document.set_point_attributes(self.track_index, self.point_index, self.new)
        return NO_EFFECT

    def revert(self, document: "TrackDocument") -> EditEffect:
        document.set_point_attributes(self.track_index, self.point_index, self.old)
        return NO_EFFECT


@dataclass(frozen=True)
class DeletePointCommand(EditCommand):
    """Remove a point; the track metadata is kept so a pruned track comes back whole."""

    kind: ClassVar[ActionKind] = ActionKind.DELETE_POINT

    track_index: int
    point_index: int
    point: PointSnapshot
    track_was_deleted: bool
    track_name: Optional[str] = None
    start_date: Optional[str] = None
    start_time: Optional[int] = None

    def apply(self, document: "TrackDocument") -> EditEffect:
        return _remove(document, self.track_index, self.point_index)

    def revert(self, document: "TrackDocument") -> EditEffect:
        new_track = None
        if self.track_was_deleted:
            new_track = Track(
                name=self.track_name,
                start_date=self.start_date,
                start_time=self.start_time,
            )
        return _insert(
            document, self.track_index, self.point_index, self.point, new_track=new_track
        )


@dataclass(frozen=True)
class SetTrackDateCommand(EditCommand):
    kind: ClassVar[ActionKind] = ActionKind.SET_TRACK_DATE

    track_index: int
    old_start_date: Optional[str]
    old_start_time: Optional[int]
    new_start_date: Optional[str]
    new_start_time: Optional[int]

    def apply(self, document: "TrackDocument") -> EditEffect:
        document.set_track_date(self.track_index, self.new_start_date, self.new_start_time)
        return NO_EFFECT

    def revert(self, document: "TrackDocument") -> EditEffect:
        document.set_track_date(self.track_index, self.old_start_date, self.old_start_time)
        return NO_EFFECT


@dataclass(frozen=True)
class SetTrackNameCommand(EditCommand):
    kind: ClassVar[ActionKind] = ActionKind.SET_TRACK_NAME

    track_index: int
    old_name: Optional[str]
    new_name: Optional[str]

    def apply(self, document: "TrackDocument") -> EditEffect:
        document.set_track_name(self.track_index, self.new_name)
        return NO_EFFECT

    def revert(self, document: "TrackDocument") -> EditEffect:
        document.set_track_name(self.track_index, self.old_name)
        return NO_EFFECT


HistoryAction = Union[
    AddPointCommand,
    MovePointCommand,
    ModifyPointCommand,
    DeletePointCommand,
    SetTrackDateCommand,
    SetTrackNameCommand,
]

COMMAND_TYPES: dict[ActionKind, type[EditCommand]] = {
    cls.kind: cls
    for cls in (
        AddPointCommand,
        MovePointCommand,
        ModifyPointCommand,
        DeletePointCommand,
        SetTrackDateCommand,
        SetTrackNameCommand,
    )
}
