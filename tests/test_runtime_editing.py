from __future__ import annotations

import pytest

pytest.importorskip("PyQt5")

from hypotrack.model.invariants import InvariantError
from hypotrack.model.track_models import StormKind, Track, TrackPoint
from hypotrack.preview.runtime import EditorRuntime, RenderSnapshot


def _loaded(*tracks: Track, **kwargs) -> EditorRuntime:
    runtime = EditorRuntime(**kwargs)
    runtime.load_tracks(list(tracks))
    return runtime


def _select_first(runtime: EditorRuntime) -> TrackPoint:
    track = runtime.tracks[0]
    runtime.selection.select(track, track.points[0])
    return track.points[0]


def test_placement_keys_set_category_and_kind():
    runtime = EditorRuntime()

    assert runtime.on_key("3")
    assert runtime.on_key("x")
    runtime.on_press(500, 250)
    runtime.on_release(500, 250)

    point = runtime.tracks[0].points[0]
    assert point.category == 4
    assert point.kind == StormKind.EXTRATROPICAL

    runtime.on_key("u")
    runtime.on_key("b")
    assert runtime.tools.category_to_place == 7
    assert runtime.tools.kind_to_place == StormKind.SUBTROPICAL
    assert not runtime.on_key("z")


def test_toggle_keys():
    runtime = _loaded(Track([TrackPoint(0.0, 0.0)]))

    assert not runtime.on_key("h")
    assert not runtime.tools.hide_non_selected_tracks

    _select_first(runtime)
    assert runtime.on_key("h")
    assert runtime.tools.hide_non_selected_tracks

    assert runtime.on_key(" ")
    assert runtime.selection.selected_point is None
    assert not runtime.tools.hide_non_selected_tracks

    runtime.on_key("a")
    assert not runtime.tools.autosave
    runtime.on_key("q")
    runtime.on_key("q")
    assert not runtime.tools.delete_mode


def test_undo_redo_shortcuts():
    runtime = EditorRuntime()
    runtime.on_press(500, 250)
    runtime.on_release(500, 250)

    assert runtime.on_key("z", ctrl=True)
    assert runtime.tracks == []
    assert runtime.on_key("z", ctrl=True, shift=True)
    assert len(runtime.tracks) == 1
    runtime.on_key("z", ctrl=True)
    assert runtime.on_key("y", ctrl=True)
    assert len(runtime.tracks) == 1
    assert not runtime.on_key("s", ctrl=True)


def test_undo_of_add_selects_previous_last_point_and_redo_keeps_it():
    runtime = EditorRuntime()
    for x in (500, 600):
        runtime.on_press(x, 250)
        runtime.on_release(x, 250)
    track = runtime.tracks[0]
    first = track.points[0]

    runtime.undo()
    assert runtime.selection.selected_point is first

    runtime.redo()
    assert runtime.selection.selected_point is first
    assert track.points[1].long == pytest.approx(36.0)


def test_undo_redo_of_add_keeps_selection_on_other_track():
    runtime = EditorRuntime()
    runtime.on_press(500, 250)
    runtime.on_release(500, 250)
    first = runtime.tracks[0].points[0]
    runtime.deselect()
    runtime.on_press(700, 250)
    runtime.on_release(700, 250)
    assert len(runtime.tracks) == 2
    runtime.on_press(500, 250)
    runtime.on_release(500, 250)
    assert runtime.selection.selected_point is first

    runtime.undo()
    runtime.redo()

    assert len(runtime.tracks) == 2
    assert runtime.selection.selected_track is runtime.tracks[0]
    assert runtime.selection.selected_point is first


def test_undo_redo_of_delete_keeps_selection():
    runtime = _loaded(
        Track([TrackPoint(-72.0, 0.0), TrackPoint(-36.0, 0.0), TrackPoint(0.0, 0.0)])
    )
    track = runtime.tracks[0]
    first = _select_first(runtime)
    runtime.on_key("q")
    runtime.on_press(400, 250)
    runtime.on_release(400, 250)
    assert [point.long for point in track.points] == [-72.0, 0.0]

    runtime.undo()
    assert runtime.selection.selected_point is first
    runtime.redo()

    assert [point.long for point in track.points] == [-72.0, 0.0]
    assert runtime.selection.selected_point is first


def test_arrow_keys_nudge_selected_point():
    runtime = _loaded(Track([TrackPoint(179.995, 0.0)]))
    point = _select_first(runtime)

    assert runtime.on_key("up")
    assert point.lat == pytest.approx(0.01)
    assert runtime.on_key("right")
    assert point.long == pytest.approx(-179.995)

    runtime.undo()
    assert point.long == pytest.approx(179.995)
    runtime.undo()
    assert point.lat == pytest.approx(0.0)


def test_arrow_keys_without_selection_do_nothing():
    runtime = _loaded(Track([TrackPoint(0.0, 0.0)]))

    assert not runtime.on_key("left")
    assert not runtime.can_undo()


def test_nudge_clamps_latitude_at_pole():
    runtime = _loaded(Track([TrackPoint(0.0, 89.995)]))
    point = _select_first(runtime)

    runtime.on_key("up")

    assert point.lat == 90.0


def test_modify_selected_point_is_undoable():
    calls = []
    runtime = _loaded(
        Track([TrackPoint(0.0, 0.0, 1)]), request_persist=lambda: calls.append(1)
    )
    point = _select_first(runtime)

    assert runtime.modify_selected_point(4, StormKind.SUBTROPICAL, 105.0, 955.0)
    assert (point.category, point.kind, point.wind, point.pressure) == (
        4,
        StormKind.SUBTROPICAL,
        105.0,
        955.0,
    )
    assert calls == [1]

    assert not runtime.modify_selected_point(4, StormKind.SUBTROPICAL, 105.0, 955.0)

    runtime.undo()
    assert (point.category, point.kind, point.wind, point.pressure) == (
        1,
        StormKind.TROPICAL,
        None,
        None,
    )


def test_modify_selected_point_rejects_negative_category():
    runtime = _loaded(Track([TrackPoint(0.0, 0.0)]))
    _select_first(runtime)

    with pytest.raises(ValueError):
        runtime.modify_selected_point(-1, StormKind.TROPICAL)
    assert not runtime.can_undo()


def test_modify_without_selection_is_a_no_op():
    runtime = _loaded(Track([TrackPoint(0.0, 0.0)]))

    assert not runtime.modify_selected_point(3, StormKind.TROPICAL)


def test_track_name_is_trimmed_and_undoable():
    runtime = _loaded(Track([TrackPoint(0.0, 0.0)], name="OLD"))
    _select_first(runtime)
    track = runtime.tracks[0]

    assert runtime.set_selected_track_name("  ALPHA ")
    assert track.name == "ALPHA"
    assert not runtime.set_selected_track_name("ALPHA")

    assert runtime.set_selected_track_name("   ")
    assert track.name is None

    runtime.undo()
    runtime.undo()
    assert track.name == "OLD"


def test_track_date_validation():
    runtime = _loaded(Track([TrackPoint(0.0, 0.0)]))
    _select_first(runtime)
    track = runtime.tracks[0]

    with pytest.raises(ValueError):
        runtime.set_selected_track_date("2024-08-01", 0)
    with pytest.raises(ValueError):
        runtime.set_selected_track_date("20240801", 5)
    assert not runtime.can_undo()

    assert runtime.set_selected_track_date("20240801", 18)
    assert (track.start_date, track.start_time) == ("20240801", 18)
    assert not runtime.set_selected_track_date("20240801", 18)

    runtime.undo()
    assert (track.start_date, track.start_time) == (None, None)


def test_metadata_edit_keeps_selection():
    runtime = _loaded(Track([TrackPoint(0.0, 0.0)]))
    point = _select_first(runtime)

    runtime.set_selected_track_name("ALPHA")
    runtime.undo()

    assert runtime.selection.selected_point is point


def test_load_tracks_resets_history_and_selection():
    runtime = EditorRuntime()
    runtime.on_press(500, 250)
    runtime.on_release(500, 250)
    assert runtime.can_undo()

    replacement = [Track([TrackPoint(10.0, 10.0)]), Track([TrackPoint(20.0, 20.0)])]
    runtime.load_tracks(replacement)

    assert runtime.tracks == replacement
    assert not runtime.can_undo()
    assert not runtime.can_redo()
    assert runtime.selection.selected_track is None


def test_load_tracks_rejects_invalid_list_without_changes():
    runtime = _loaded(Track([TrackPoint(0.0, 0.0)]))
    before = list(runtime.tracks)

    with pytest.raises(InvariantError):
        runtime.load_tracks([Track([TrackPoint(0.0, 0.0)]), Track()])

    assert runtime.tracks == before


def test_loaded_tracks_are_hit_testable():
    runtime = EditorRuntime()
    runtime.load_tracks([Track([TrackPoint(0.0, 0.0)])])

    assert runtime.pick_nearest(500, 250) is not None


def test_autosave_off_skips_persist_requests():
    calls = []
    runtime = EditorRuntime(request_persist=lambda: calls.append(1))
    runtime.on_key("a")

    runtime.on_press(500, 250)
    runtime.on_release(500, 250)
    runtime.undo()

    assert calls == []


def test_snapshot_reflects_state():
    runtime = _loaded(Track([TrackPoint(0.0, 0.0)]))
    point = _select_first(runtime)
    runtime.update_hover(500, 250)
    runtime.zoom_absolute(3.0)

    snapshot = runtime.snapshot()

    assert isinstance(snapshot, RenderSnapshot)
    assert snapshot.tracks == tuple(runtime.tracks)
    assert snapshot.zoom == 3.0
    assert snapshot.selected_point is point
    assert snapshot.hover_point is point
    assert not snapshot.hide_non_selected_tracks


def test_status_hook_receives_messages():
    messages = []
    runtime = EditorRuntime(show_status=messages.append)

    runtime.set_status("Saved")

    assert messages == ["Saved"]
