"""Key/value storage backends for saved track lists."""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Protocol, Sequence

from hypotrack.model.track_models import Track
from hypotrack.services.track_codec import (
    TrackFormatError,
    tracks_from_payload,
    tracks_to_payload,
)

logger = logging.getLogger(__name__)

DEFAULT_SAVE_NAME = "Autosave"
_SUFFIX = ".json"


class TrackStore(Protocol):
    def save(self, key: str, tracks: Sequence[Track]) -> None:
        ...

    def load(self, key: str) -> list[Track]:
        ...

    def list_keys(self) -> list[str]:
        ...

    def delete(self, key: str) -> None:
        ...


def _check_key(key: str) -> str:
    if not key or key.strip() != key or any(sep in key for sep in ("/", "\\", os.sep)):
        raise ValueError(f"Invalid save name: {key!r}")
    if key in (".", ".."):
        raise ValueError(f"Invalid save name: {key!r}")
    return key


class JsonTrackStore:
    """Persists each saved track list as ``<key>.json`` inside a directory."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        return self._directory / f"{_check_key(key)}{_SUFFIX}"

    def save(self, key: str, tracks: Sequence[Track]) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = tracks_to_payload(tracks)
        # the file on disk is always either the previous save or the complete new one
        temp_path = path.with_suffix(path.suffix + ".tmp")
        temp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.replace(temp_path, path)
        logger.debug("Saved %s tracks to %s", len(payload["tracks"]), path)

    def load(self, key: str) -> list[Track]:
        """Tracks stored under ``key``; a missing key is an empty list."""
        path = self._path(key)
        if not path.exists():
            return []
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise TrackFormatError(f"{path.name} is not valid JSON: {exc}") from exc
        return tracks_from_payload(payload)

    def list_keys(self) -> list[str]:
        if not self._directory.is_dir():
            return []
        return sorted(path.stem for path in self._directory.glob(f"*{_SUFFIX}"))

    def delete(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()
            logger.debug("Deleted save %s", path)


class MemoryTrackStore:
    """In-process store; keeps value snapshots so later edits do not leak in."""

    def __init__(self) -> None:
        self._saves: dict[str, dict] = {}

    def save(self, key: str, tracks: Sequence[Track]) -> None:
        self._saves[_check_key(key)] = tracks_to_payload(tracks)

    def load(self, key: str) -> list[Track]:
        return tracks_from_payload(self._saves.get(key))

    def list_keys(self) -> list[str]:
        return sorted(self._saves)

    def delete(self, key: str) -> None:
        self._saves.pop(key, None)
