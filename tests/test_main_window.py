import os
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import json

import pytest

try:
    from PyQt5 import QtWidgets

    from hypotrack.config import EditorSettings, load_settings
    from hypotrack.model.track_models import Track, TrackPoint
    from hypotrack.services.track_store import MemoryTrackStore
    from hypotrack.services.imagery import ImageryLoadTask
    from hypotrack.ui.main_window import HypoTrackWindow
    from hypotrack.ui import map_widget as map_widget_module
except ImportError:  # pragma: no cover
    pytest.skip("PyQt5 not available", allow_module_level=True)


@pytest.fixture(scope="module")
def qapp():
    app = QtWidgets.QApplication.instance()
    if app is None:
        app = QtWidgets.QApplication([])
    yield app


@pytest.fixture
def window(qapp):
    # no autosave, so nothing reaches the thread pool
    win = HypoTrackWindow(EditorSettings(autosave=False), store=MemoryTrackStore())
    yield win
    win.close()


def test_window_title_and_settings(window):
    assert window.windowTitle() == "HypoTrack v1.1.0"
    assert not window.runtime.tools.autosave
    assert window.persistence.save_name == "Autosave"


def test_import_json_replaces_tracks(window, tmp_path):
    path = tmp_path / "season.json"
    path.write_text(
        json.dumps({"tracks": [[{"name": "ECHO", "latitude": "20N", "longitude": "60W"}]]}),
        encoding="utf-8",
    )

    tracks = window.import_json(path)

    assert [track.name for track in tracks] == ["ECHO"]
    assert window.runtime.tracks == tracks
    assert window.runtime.tracks[0].points[0].long == -60.0
    assert not window.runtime.can_undo()


def test_import_json_failure_keeps_tracks(window, tmp_path, monkeypatch):
    warnings = []
    monkeypatch.setattr(
        QtWidgets.QMessageBox, "warning", lambda *args: warnings.append(args[-1])
    )
    window.runtime.load_tracks([Track([TrackPoint(1.0, 1.0)])])
    before = list(window.runtime.tracks)
    path = tmp_path / "broken.json"
    path.write_text('{"tracks": [[{"latitude": "95N", "longitude": "0"}]]}', encoding="utf-8")

    assert window.import_json(path) is None

    assert window.runtime.tracks == before
    assert len(warnings) == 1
    assert warnings[0].startswith("Error importing JSON")


def test_loaded_save_is_applied(window):
    tracks = [Track([TrackPoint(5.0, 5.0)], name="FOXTROT")]

    window.persistence.loaded.emit("Autosave", tracks)

    assert [track.name for track in window.runtime.tracks] == ["FOXTROT"]
    assert window.runtime.tracks[0].points[0].long == 5.0


def test_import_is_rejected_while_persistence_is_busy(window, tmp_path):
    window.runtime.load_tracks([Track([TrackPoint(1.0, 1.0)], name="GOLF")])
    path = tmp_path / "season.json"
    path.write_text(
        json.dumps({"tracks": [[{"name": "HOTEL", "latitude": "20N", "longitude": "60W"}]]}),
        encoding="utf-8",
    )
    window.persistence.gate.acquire("load")
    try:
        assert window.import_json(path) is None
    finally:
        window.persistence.gate.release()

    assert [track.name for track in window.runtime.tracks] == ["GOLF"]
    assert window.statusBar().currentMessage() == "Busy, try again in a moment."


class _IdleImageryTask(ImageryLoadTask):
    created = []

    def __init__(self, generation, paths):
        super().__init__(generation, paths)
        _IdleImageryTask.created.append((generation, list(paths)))

    def run(self):
        pass


def test_start_loads_stored_map_images(qapp, tmp_path, monkeypatch):
    monkeypatch.setattr(map_widget_module, "ImageryLoadTask", _IdleImageryTask)
    _IdleImageryTask.created.clear()
    image = tmp_path / "world.png"
    win = HypoTrackWindow(
        EditorSettings(autosave=False, map_images=(image,)), store=MemoryTrackStore()
    )
    loads = []
    monkeypatch.setattr(win.persistence, "try_load", lambda *args: loads.append(args) or True)
    try:
        win.start()
    finally:
        win.close()

    assert _IdleImageryTask.created == [(1, [image])]
    assert loads == [()]


def test_start_without_map_images_skips_imagery(qapp, monkeypatch):
    monkeypatch.setattr(map_widget_module, "ImageryLoadTask", _IdleImageryTask)
    _IdleImageryTask.created.clear()
    win = HypoTrackWindow(EditorSettings(autosave=False), store=MemoryTrackStore())
    monkeypatch.setattr(win.persistence, "try_load", lambda *args: True)
    try:
        win.start()
    finally:
        win.close()

    assert _IdleImageryTask.created == []


def test_chosen_map_image_is_saved_to_settings(qapp, tmp_path, monkeypatch):
    monkeypatch.setattr(map_widget_module, "ImageryLoadTask", _IdleImageryTask)
    _IdleImageryTask.created.clear()
    ini = tmp_path / "hypotrack.ini"
    image = tmp_path / "world.png"
    monkeypatch.setattr(
        QtWidgets.QFileDialog, "getOpenFileName", lambda *args: (str(image), "")
    )
    win = HypoTrackWindow(
        EditorSettings(autosave=False), store=MemoryTrackStore(), settings_path=ini
    )
    try:
        win._choose_map_image()
    finally:
        win.close()

    assert win.settings.map_images == (image,)
    assert load_settings(ini).map_images == (image,)
    assert _IdleImageryTask.created == [(1, [image])]
