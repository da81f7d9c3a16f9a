"""Configuration helpers for HypoTrack editor settings persistence."""
from __future__ import annotations

from configparser import ConfigParser, Error
from dataclasses import dataclass, fields
import logging
import os
from pathlib import Path
import sys
from typing import Optional

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "hypotrack.ini"
DEFAULT_STORAGE_DIRNAME = "saves"

_EDITOR_SECTION = "editor"
_PERSISTENCE_SECTION = "persistence"
_INDEX_SECTION = "index"


@dataclass
class EditorSettings:
    canvas_width: int = 1000
    canvas_height: int = 500
    zoom_base: float = 1.25
    min_zoom: float = 0.0
    max_zoom: float = 15.0
    view_height_ratio: float = 0.5
    drag_threshold: float = 20.0
    wheel_sensitivity: float = 1 / 125
    nudge_step: float = 0.01
    map_images: tuple = ()
    autosave: bool = True
    save_interval_ms: int = 2000
    save_name: str = "Autosave"
    storage_dir: Optional[Path] = None
    wrap_margin: float = 100.0
    index_capacity: int = 4
    index_max_depth: int = 5


_SECTIONS = {
    "canvas_width": _EDITOR_SECTION,
    "canvas_height": _EDITOR_SECTION,
    "zoom_base": _EDITOR_SECTION,
    "min_zoom": _EDITOR_SECTION,
    "max_zoom": _EDITOR_SECTION,
    "view_height_ratio": _EDITOR_SECTION,
    "drag_threshold": _EDITOR_SECTION,
    "wheel_sensitivity": _EDITOR_SECTION,
    "nudge_step": _EDITOR_SECTION,
    "map_images": _EDITOR_SECTION,
    "autosave": _PERSISTENCE_SECTION,
    "save_interval_ms": _PERSISTENCE_SECTION,
    "save_name": _PERSISTENCE_SECTION,
    "storage_dir": _PERSISTENCE_SECTION,
    "wrap_margin": _INDEX_SECTION,
    "index_capacity": _INDEX_SECTION,
    "index_max_depth": _INDEX_SECTION,
}

_POSITIVE = {
    "canvas_width",
    "canvas_height",
    "view_height_ratio",
    "wheel_sensitivity",
    "nudge_step",
    "index_capacity",
}


def _config_dir(main_script_path: Optional[Path]) -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable).parent
    if main_script_path is not None:
        return main_script_path.resolve().parent
    main_module = sys.modules.get("__main__")
    if main_module and getattr(main_module, "__file__", None):
        return Path(main_module.__file__).resolve().parent
    return Path.cwd()


def config_path(main_script_path: Optional[Path]) -> Path:
    return _config_dir(main_script_path) / CONFIG_FILENAME


def default_storage_dir(ini_path: Path) -> Path:
    return ini_path.parent / DEFAULT_STORAGE_DIRNAME


def _parse_value(parser: ConfigParser, section: str, name: str, default: object) -> object:
    if isinstance(default, bool):
        return parser.getboolean(section, name)
    if isinstance(default, int):
        return parser.getint(section, name)
    if isinstance(default, float):
        return parser.getfloat(section, name)
    raw = parser.get(section, name).strip()
    if not raw:
        raise ValueError(f"{name} is empty")
    return raw


def _parse_paths(raw: str, base_dir: Path) -> tuple:
    """One path per line; relative paths are taken from the settings directory."""
    paths = []
    for line in raw.splitlines():
        line = line.strip()
        if not line:
            continue
        path = Path(line)
        paths.append(path if path.is_absolute() else (base_dir / path).resolve())
    return tuple(paths)


def _valid(name: str, value: object) -> bool:
    if name in _POSITIVE and value <= 0:
        return False
    if name == "zoom_base" and value <= 1:
        return False
    if name in ("drag_threshold", "wrap_margin", "save_interval_ms", "index_max_depth", "min_zoom"):
        return value >= 0
    return True


def load_settings(ini_path: Path) -> EditorSettings:
    """Read settings from ``ini_path``; anything missing or invalid keeps its default."""
    settings = EditorSettings()
    if ini_path.exists():
        parser = ConfigParser()
        try:
            with ini_path.open("r", encoding="utf-8") as handle:
                parser.read_file(handle)
        except (OSError, Error) as exc:
            logger.warning("Ignoring unreadable settings file %s: %s", ini_path, exc)
            parser = ConfigParser()
        for field_info in fields(EditorSettings):
            name = field_info.name
            section = _SECTIONS[name]
            if not parser.has_option(section, name):
                continue
            default = getattr(settings, name)
            try:
                if name == "storage_dir":
                    raw = parser.get(section, name).strip()
                    value: object = Path(raw) if raw else None
                    if value is not None and not value.is_absolute():
                        value = (ini_path.parent / value).resolve()
                elif name == "map_images":
                    value = _parse_paths(parser.get(section, name), ini_path.parent)
                else:
                    value = _parse_value(parser, section, name, default)
            except (Error, ValueError) as exc:
                logger.warning("Invalid %s in %s: %s", name, ini_path, exc)
                continue
            if name not in ("storage_dir", "map_images") and not _valid(name, value):
                logger.warning("Out of range %s=%r in %s", name, value, ini_path)
                continue
            setattr(settings, name, value)
    if settings.max_zoom < settings.min_zoom:
        logger.warning("max_zoom below min_zoom in %s; using defaults", ini_path)
        settings.min_zoom = EditorSettings.min_zoom
        settings.max_zoom = EditorSettings.max_zoom
    if settings.storage_dir is None:
        settings.storage_dir = default_storage_dir(ini_path)
    return settings


def save_settings(ini_path: Path, settings: EditorSettings) -> None:
    config = ConfigParser()
    if ini_path.exists():
        try:
            with ini_path.open("r", encoding="utf-8") as handle:
                config.read_file(handle)
        except (OSError, Error):
            return
    for field_info in fields(EditorSettings):
        name = field_info.name
        section = _SECTIONS[name]
        if not config.has_section(section):
            config.add_section(section)
        value = getattr(settings, name)
        if value is None or value == ():
            config.remove_option(section, name)
            continue
        if name == "map_images":
            config.set(section, name, "\n".join(str(path) for path in value))
            continue
        config.set(section, name, str(value).lower() if isinstance(value, bool) else str(value))
    try:
        with ini_path.open("w", encoding="utf-8") as handle:
            config.write(handle)
            handle.flush()
            os.fsync(handle.fileno())
    except OSError:
        return
