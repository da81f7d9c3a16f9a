"""Background loading of base-map imagery."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from PyQt5 import QtCore

logger = logging.getLogger(__name__)


def load_image_buffers(paths: Sequence[Path]) -> list[bytes]:
    """Read every image in order; any unreadable file fails the whole batch."""
    buffers: list[bytes] = []
    for path in paths:
        data = Path(path).read_bytes()
        if not data:
            raise ValueError(f"Image file {path} is empty.")
        buffers.append(data)
    return buffers


class ImageryLoadSignals(QtCore.QObject):
    loaded = QtCore.pyqtSignal(int, list)
    failed = QtCore.pyqtSignal(int, str)


class ImageryLoadTask(QtCore.QRunnable):
    """One request/response exchange: paths in, ordered buffers (or an error) out.

    ``generation`` lets the receiver drop results of a superseded request when
    the base map changes while a load is still running.
    """

    def __init__(self, generation: int, paths: Sequence[Path]) -> None:
        super().__init__()
        self.setAutoDelete(True)
        self.signals = ImageryLoadSignals()
        self._generation = generation
        self._paths = [Path(path) for path in paths]

    def run(self) -> None:
        try:
            buffers = load_image_buffers(self._paths)
        except (OSError, ValueError) as exc:
            logger.error("Failed to load map imagery: %s", exc)
            self.signals.failed.emit(self._generation, str(exc))
            return
        logger.debug("Loaded %s map images", len(buffers))
        self.signals.loaded.emit(self._generation, buffers)
