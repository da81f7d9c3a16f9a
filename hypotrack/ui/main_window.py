"""Main window: wires the map widget, persistence and menus together."""
from __future__ import annotations

from functools import partial
import json
import logging
from pathlib import Path
from typing import Optional

from PyQt5 import QtWidgets

from hypotrack import TITLE, VERSION
from hypotrack.config import EditorSettings, save_settings
from hypotrack.model.invariants import START_HOURS, InvariantError
from hypotrack.model.track_models import Track
from hypotrack.preview.context import context_from_settings
from hypotrack.preview.runtime import EditorRuntime
from hypotrack.services.persistence import PersistenceController
from hypotrack.services.track_codec import (
    TrackFormatError,
    tracks_from_payload,
    tracks_to_export_payload,
)
from hypotrack.services.track_store import JsonTrackStore, TrackStore
from hypotrack.ui.map_widget import MapWidget

logger = logging.getLogger(__name__)


class HypoTrackWindow(QtWidgets.QMainWindow):
    def __init__(
        self,
        settings: EditorSettings,
        store: TrackStore | None = None,
        settings_path: Optional[Path] = None,
        parent: Optional[QtWidgets.QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self.settings = settings
        self.settings_path = settings_path
        self.setWindowTitle(f"{TITLE} v{VERSION}")

        if store is None:
            store = JsonTrackStore(settings.storage_dir or Path.cwd() / "saves")
        self.persistence = PersistenceController(
            store,
            lambda: self.runtime.tracks,
            save_name=settings.save_name,
            interval_ms=settings.save_interval_ms,
            parent=self,
        )
        factory = partial(
            EditorRuntime,
            context_from_settings(settings),
            request_persist=self.persistence.request_autosave,
            is_ready=lambda: self.persistence.ready,
            index_capacity=settings.index_capacity,
            index_max_depth=settings.index_max_depth,
            wrap_margin=settings.wrap_margin,
        )
        self.map_widget = MapWidget(factory, parent=self)
        self.runtime = self.map_widget.runtime
        self.setCentralWidget(self.map_widget)

        self.map_widget.statusMessage.connect(self._show_status)
        self.persistence.loaded.connect(self._apply_loaded)
        self.persistence.saved.connect(lambda key: self._show_status(f"Saved {key}"))
        self.persistence.deleted.connect(lambda key: self._show_status(f"Deleted {key}"))
        self.persistence.failed.connect(self._handle_persistence_failure)
        self.persistence.keys_listed.connect(self._choose_save_to_load)

        self._create_menus()
        self.statusBar().showMessage("Click the map to place a point.")

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------
    def start(self) -> None:
        if self.settings.map_images:
            self.load_map_images(list(self.settings.map_images))
        self.persistence.try_load()

    def load_map_images(self, paths: list[Path]) -> None:
        self.map_widget.load_imagery(paths)

    # ------------------------------------------------------------------
    # Menus
    # ------------------------------------------------------------------
    def _action(self, menu: QtWidgets.QMenu, text: str, slot) -> QtWidgets.QAction:
        action = QtWidgets.QAction(text, self)
        action.triggered.connect(slot)
        menu.addAction(action)
        return action

    def _create_menus(self) -> None:
        file_menu = self.menuBar().addMenu("File")
        self._action(file_menu, "Load save...", self.persistence.list_keys)
        self._action(file_menu, "Save as...", self._save_as)
        self._action(file_menu, "Delete current save", self._delete_save)
        file_menu.addSeparator()
        self._action(file_menu, "Import JSON...", self._import_json)
        self._action(file_menu, "Export JSON...", self._export_json)
        file_menu.addSeparator()
        self._action(file_menu, "Load map image...", self._choose_map_image)
        self._action(file_menu, "Quit", QtWidgets.qApp.quit)

        edit_menu = self.menuBar().addMenu("Edit")
        self._undo_action = self._action(edit_menu, "Undo", self.runtime.undo)
        self._redo_action = self._action(edit_menu, "Redo", self.runtime.redo)
        edit_menu.addSeparator()
        self._delete_mode_action = self._action(edit_menu, "Delete mode", self._toggle_delete_mode)
        self._delete_mode_action.setCheckable(True)
        self._autosave_action = self._action(edit_menu, "Autosave", self._toggle_autosave)
        self._autosave_action.setCheckable(True)
        self._action(edit_menu, "Deselect", self.runtime.deselect)
        edit_menu.aboutToShow.connect(self._sync_edit_actions)

        track_menu = self.menuBar().addMenu("Track")
        self._action(track_menu, "Rename selected track...", self._rename_track)
        self._action(track_menu, "Set start date...", self._set_start_date)

        help_menu = self.menuBar().addMenu("Help")
        self._action(help_menu, "About", self._show_about_dialog)

    def _sync_edit_actions(self) -> None:
        self._undo_action.setEnabled(self.runtime.can_undo())
        self._redo_action.setEnabled(self.runtime.can_redo())
        self._delete_mode_action.setChecked(self.runtime.tools.delete_mode)
        self._autosave_action.setChecked(self.runtime.tools.autosave)

    def _toggle_delete_mode(self) -> None:
        self.runtime.on_key("q")

    def _toggle_autosave(self) -> None:
        self.runtime.on_key("a")

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def _show_status(self, message: str) -> None:
        self.statusBar().showMessage(message, 5000)

    def _apply_loaded(self, key: str, tracks: list) -> None:
        try:
            self.runtime.load_tracks(tracks)
        except InvariantError as exc:
            logger.error("Save %r is not usable: %s", key, exc)
            self._show_status(f"Could not load {key}: {exc}")
            return
        self._show_status(f"Loaded {key} ({len(tracks)} tracks)")

    def _handle_persistence_failure(self, operation: str, message: str) -> None:
        self._show_status(f"Could not {operation}: {message}")

    def _choose_save_to_load(self, keys: list) -> None:
        if not keys:
            QtWidgets.QMessageBox.information(self, "Load save", "There are no saves yet.")
            return
        key, accepted = QtWidgets.QInputDialog.getItem(
            self, "Load save", "Save:", keys, 0, False
        )
        if accepted and key:
            self.persistence.save_name = key
            if not self.persistence.try_load(key):
                self._show_status("Busy, try again in a moment.")

    def _save_as(self) -> None:
        name, accepted = QtWidgets.QInputDialog.getText(
            self, "Save as", "Save name:", text=self.persistence.save_name
        )
        name = name.strip()
        if not accepted or not name:
            return
        self.persistence.save_name = name
        if not self.persistence.try_save(name):
            self._show_status("Busy, try again in a moment.")

    def _delete_save(self) -> None:
        key = self.persistence.save_name
        answer = QtWidgets.QMessageBox.question(
            self, "Delete save", f"Delete the save {key!r}?"
        )
        if answer == QtWidgets.QMessageBox.Yes and not self.persistence.try_delete(key):
            self._show_status("Busy, try again in a moment.")

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------
    def _import_json(self) -> None:
        filename, _ = QtWidgets.QFileDialog.getOpenFileName(
            self, "Import JSON", "", "JSON files (*.json);;All files (*)"
        )
        if filename:
            self.import_json(Path(filename))

    def import_json(self, path: Path) -> list[Track] | None:
        if not self.persistence.ready:
            self._show_status("Busy, try again in a moment.")
            return None
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            tracks = tracks_from_payload(payload)
        except (OSError, json.JSONDecodeError, TrackFormatError) as exc:
            logger.error("Import of %s aborted: %s", path, exc)
            QtWidgets.QMessageBox.warning(self, "Import JSON", f"Error importing JSON: {exc}")
            return None
        self.runtime.load_tracks(tracks)
        if self.runtime.tools.autosave:
            self.persistence.request_autosave()
        self._show_status(f"Imported {len(tracks)} tracks from {path.name}")
        return tracks

    def _export_json(self) -> None:
        filename, _ = QtWidgets.QFileDialog.getSaveFileName(
            self, "Export JSON", "tracks.json", "JSON files (*.json)"
        )
        if not filename:
            return
        payload = tracks_to_export_payload(self.runtime.tracks)
        try:
            Path(filename).write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.exception("Export to %s failed", filename)
            QtWidgets.QMessageBox.warning(self, "Export JSON", str(exc))
            return
        self._show_status(f"Exported {len(payload['tracks'])} tracks")

    def _choose_map_image(self) -> None:
        filename, _ = QtWidgets.QFileDialog.getOpenFileName(
            self, "Load map image", "", "Images (*.png *.jpg *.jpeg *.bmp);;All files (*)"
        )
        if not filename:
            return
        self.settings.map_images = (Path(filename),)
        if self.settings_path is not None:
            save_settings(self.settings_path, self.settings)
        self.load_map_images(list(self.settings.map_images))

    # ------------------------------------------------------------------
    # Track metadata
    # ------------------------------------------------------------------
    def _rename_track(self) -> None:
        track = self.runtime.selection.selected_track
        if track is None:
            self._show_status("Select a track first.")
            return
        name, accepted = QtWidgets.QInputDialog.getText(
            self, "Rename track", "Name:", text=track.name or ""
        )
        if accepted:
            self.runtime.set_selected_track_name(name)

    def _set_start_date(self) -> None:
        track = self.runtime.selection.selected_track
        if track is None:
            self._show_status("Select a track first.")
            return
        date, accepted = QtWidgets.QInputDialog.getText(
            self, "Start date", "Start date (YYYYMMDD):", text=track.start_date or ""
        )
        if not accepted:
            return
        hours = [f"{hour:02d}" for hour in START_HOURS]
        current = hours.index(f"{track.start_time:02d}") if track.start_time in START_HOURS else 0
        hour, accepted = QtWidgets.QInputDialog.getItem(
            self, "Start time", "Hour (UTC):", hours, current, False
        )
        if not accepted:
            return
        try:
            self.runtime.set_selected_track_date(date.strip() or None, int(hour))
        except ValueError as exc:
            QtWidgets.QMessageBox.warning(self, "Start date", str(exc))

    def _show_about_dialog(self) -> None:
        QtWidgets.QMessageBox.about(
            self,
            f"About {TITLE}",
            f"{TITLE} v{VERSION}\nStorm track editor",
        )
