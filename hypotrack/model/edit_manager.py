"""Undo/redo manager for track edit commands."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from hypotrack.model.edit_commands import EditCommand, EditEffect

if TYPE_CHECKING:
    from hypotrack.model.track_document import TrackDocument

logger = logging.getLogger(__name__)


class EditManager:
    """Record reversible edit commands and replay them against a document."""

    def __init__(self, document: "TrackDocument") -> None:
        self._document = document
        self._undo_stack: list[EditCommand] = []
        self._redo_stack: list[EditCommand] = []

    @property
    def undo_stack(self) -> tuple[EditCommand, ...]:
        return tuple(self._undo_stack)

    @property
    def redo_stack(self) -> tuple[EditCommand, ...]:
        return tuple(self._redo_stack)

    def record(self, command: EditCommand) -> None:
        """Push an already-applied command and clear redo history."""
        self._undo_stack.append(command)
        self._redo_stack.clear()
        logger.debug("Recorded %s (undo depth %s)", command.kind.name, len(self._undo_stack))

    def execute(self, command: EditCommand) -> EditEffect:
        """Apply a command, then record it."""
        effect = command.apply(self._document)
        self.record(command)
        return effect

    def undo(self) -> EditEffect | None:
        """Revert the latest command; ``None`` when there is nothing to undo."""
        if not self._undo_stack:
            return None
        command = self._undo_stack.pop()
        effect = command.revert(self._document)
        self._redo_stack.append(command)
        return effect

    def redo(self) -> EditEffect | None:
        """Reapply the latest undone command; ``None`` when there is nothing to redo."""
        if not self._redo_stack:
            return None
        command = self._redo_stack.pop()
        effect = command.apply(self._document)
        self._undo_stack.append(command)
        return effect

    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    def reset(self) -> None:
        self._undo_stack.clear()
        self._redo_stack.clear()
