from pathlib import Path

from hypotrack.config import (
    CONFIG_FILENAME,
    EditorSettings,
    config_path,
    default_storage_dir,
    load_settings,
    save_settings,
)


def test_missing_file_gives_defaults(tmp_path):
    ini = tmp_path / CONFIG_FILENAME

    settings = load_settings(ini)

    assert settings.canvas_width == 1000
    assert settings.zoom_base == 1.25
    assert settings.autosave is True
    assert settings.save_name == "Autosave"
    assert settings.storage_dir == default_storage_dir(ini)
    assert settings.storage_dir == tmp_path / "saves"


def test_values_are_parsed_by_type(tmp_path):
    ini = tmp_path / CONFIG_FILENAME
    ini.write_text(
        "[editor]\n"
        "canvas_width = 1200\n"
        "zoom_base = 1.5\n"
        "drag_threshold = 8\n"
        "[persistence]\n"
        "autosave = no\n"
        "save_interval_ms = 500\n"
        "save_name = Working\n"
        "storage_dir = data\n"
        "[index]\n"
        "index_capacity = 8\n",
        encoding="utf-8",
    )

    settings = load_settings(ini)

    assert settings.canvas_width == 1200
    assert settings.zoom_base == 1.5
    assert settings.drag_threshold == 8.0
    assert settings.autosave is False
    assert settings.save_interval_ms == 500
    assert settings.save_name == "Working"
    assert settings.storage_dir == (tmp_path / "data").resolve()
    assert settings.index_capacity == 8
    assert settings.index_max_depth == 5


def test_invalid_values_fall_back_per_key(tmp_path):
    ini = tmp_path / CONFIG_FILENAME
    ini.write_text(
        "[editor]\n"
        "canvas_width = wide\n"
        "canvas_height = -5\n"
        "zoom_base = 0.9\n"
        "nudge_step = 0.05\n"
        "[persistence]\n"
        "autosave = maybe\n"
        "save_name =   \n",
        encoding="utf-8",
    )

    settings = load_settings(ini)

    assert settings.canvas_width == 1000
    assert settings.canvas_height == 500
    assert settings.zoom_base == 1.25
    assert settings.nudge_step == 0.05
    assert settings.autosave is True
    assert settings.save_name == "Autosave"


def test_inverted_zoom_range_reverts_to_defaults(tmp_path):
    ini = tmp_path / CONFIG_FILENAME
    ini.write_text("[editor]\nmin_zoom = 10\nmax_zoom = 2\n", encoding="utf-8")

    settings = load_settings(ini)

    assert (settings.min_zoom, settings.max_zoom) == (0.0, 15.0)


def test_unreadable_file_gives_defaults(tmp_path):
    ini = tmp_path / CONFIG_FILENAME
    ini.write_text("no section header\n", encoding="utf-8")

    assert load_settings(ini).canvas_width == 1000


def test_save_then_load_keeps_values(tmp_path):
    ini = tmp_path / CONFIG_FILENAME
    settings = EditorSettings(
        canvas_width=800,
        autosave=False,
        save_name="Season",
        storage_dir=tmp_path / "elsewhere",
        index_max_depth=7,
        map_images=(tmp_path / "west.png", tmp_path / "east.png"),
    )

    save_settings(ini, settings)
    loaded = load_settings(ini)

    assert "autosave = false" in ini.read_text(encoding="utf-8")
    assert loaded == settings


def test_config_path_sits_next_to_script(tmp_path):
    script = tmp_path / "main.py"

    assert config_path(script) == script.resolve().parent / CONFIG_FILENAME
    assert config_path(Path(script)).name == "hypotrack.ini"


def test_map_images_are_read_one_per_line(tmp_path):
    ini = tmp_path / CONFIG_FILENAME
    ini.write_text(
        "[editor]\n"
        "map_images = maps/west.png\n"
        "    maps/east.png\n",
        encoding="utf-8",
    )

    settings = load_settings(ini)

    assert settings.map_images == (
        (tmp_path / "maps" / "west.png").resolve(),
        (tmp_path / "maps" / "east.png").resolve(),
    )
    assert load_settings(tmp_path / "missing.ini").map_images == ()
