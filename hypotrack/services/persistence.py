"""Serialized, throttled persistence of the track list.

Only one save/load runs at a time. The :class:`PersistenceGate` is closed when
an operation starts and reopened when it completes, whether it succeeded or
failed. Work runs on a :class:`QtCore.QThreadPool`; results come back to the
GUI thread through the task's signals.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, Sequence

from PyQt5 import QtCore

from hypotrack.model.track_models import Track, copy_tracks
from hypotrack.services.track_store import DEFAULT_SAVE_NAME, TrackStore

logger = logging.getLogger(__name__)

SAVE_INTERVAL_MS = 2000

Scheduler = Callable[[int, Callable[[], None]], None]


class PersistenceBusyError(RuntimeError):
    """Raised when a save/load starts while another one is still in flight."""


class PersistenceGate:
    """Boolean readiness flag serializing persistence operations."""

    def __init__(self) -> None:
        self._ready = True
        self._current: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def current_operation(self) -> Optional[str]:
        return self._current

    def acquire(self, operation: str) -> None:
        if not self._ready:
            raise PersistenceBusyError(
                f"Cannot {operation} while {self._current} is in progress."
            )
        self._ready = False
        self._current = operation

    def try_acquire(self, operation: str) -> bool:
        try:
            self.acquire(operation)
        except PersistenceBusyError as exc:
            logger.warning("%s", exc)
            return False
        return True

    def release(self) -> None:
        self._ready = True
        self._current = None


def _qt_schedule(delay_ms: int, callback: Callable[[], None]) -> None:
    QtCore.QTimer.singleShot(delay_ms, callback)


class SaveThrottle:
    """At most one write per ``interval_ms``.

    The first request in a quiet period writes immediately. Requests arriving
    inside the window are coalesced into a single trailing write at the end of
    the window, so the latest state is always written eventually. ``write``
    returns False when the write was not started (e.g. the gate was closed);
    the throttle then retries one interval later.
    """

    def __init__(
        self,
        write: Callable[[], bool],
        *,
        interval_ms: int = SAVE_INTERVAL_MS,
        clock: Callable[[], float] = time.monotonic,
        schedule: Scheduler = _qt_schedule,
    ) -> None:
        self._write = write
        self._interval_ms = interval_ms
        self._clock = clock
        self._schedule = schedule
        self._last_write: Optional[float] = None
        self.trailing_pending = False

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    def request(self) -> None:
        if self.trailing_pending:
            logger.debug("Save coalesced into the pending trailing write")
            return
        now = self._clock()
        elapsed_ms = None if self._last_write is None else (now - self._last_write) * 1000.0
        if elapsed_ms is None or elapsed_ms >= self._interval_ms:
            self._flush()
            return
        self._arm(int(round(self._interval_ms - elapsed_ms)))

    def _arm(self, delay_ms: int) -> None:
        self.trailing_pending = True
        logger.debug("Save throttled for %s ms", delay_ms)
        self._schedule(max(0, delay_ms), self._trailing)

    def _trailing(self) -> None:
        self.trailing_pending = False
        self._flush()

    def _flush(self) -> None:
        if self._write():
            self._last_write = self._clock()
        else:
            self._arm(self._interval_ms)


class PersistenceSignals(QtCore.QObject):
    finished = QtCore.pyqtSignal(str, str, object)
    failed = QtCore.pyqtSignal(str, str, str)


class PersistenceTask(QtCore.QRunnable):
    """Runs one store operation off the GUI thread and reports back once."""

    def __init__(self, operation: str, key: str, job: Callable[[], Any]) -> None:
        super().__init__()
        self.setAutoDelete(True)
        self.signals = PersistenceSignals()
        self._operation = operation
        self._key = key
        self._job = job

    def run(self) -> None:
        try:
            result = self._job()
        except Exception as exc:  # reported to the GUI thread, which reopens the gate
            logger.exception("Persistence %s of %r failed", self._operation, self._key)
            self.signals.failed.emit(self._operation, self._key, str(exc))
            return
        self.signals.finished.emit(self._operation, self._key, result)


class PersistenceController(QtCore.QObject):
    """Front end for a :class:`TrackStore`: gate, autosave throttle and async tasks."""

    saved = QtCore.pyqtSignal(str)
    loaded = QtCore.pyqtSignal(str, list)
    deleted = QtCore.pyqtSignal(str)
    keys_listed = QtCore.pyqtSignal(list)
    failed = QtCore.pyqtSignal(str, str)
    ready_changed = QtCore.pyqtSignal(bool)

    def __init__(
        self,
        store: TrackStore,
        tracks: Callable[[], Sequence[Track]],
        *,
        save_name: str = DEFAULT_SAVE_NAME,
        interval_ms: int = SAVE_INTERVAL_MS,
        start: Callable[[QtCore.QRunnable], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
        schedule: Scheduler = _qt_schedule,
        parent: QtCore.QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._store = store
        self._tracks = tracks
        self.save_name = save_name or DEFAULT_SAVE_NAME
        self.gate = PersistenceGate()
        self._start = start or QtCore.QThreadPool.globalInstance().start
        self._throttle = SaveThrottle(
            self._flush_autosave, interval_ms=interval_ms, clock=clock, schedule=schedule
        )

    @property
    def ready(self) -> bool:
        return self.gate.ready

    @property
    def throttle(self) -> SaveThrottle:
        return self._throttle

    # ------------------------------------------------------------------
    # Autosave
    # ------------------------------------------------------------------
    def request_autosave(self) -> None:
        self._throttle.request()

    def _flush_autosave(self) -> bool:
        if not self._tracks():
            return self.try_delete(self.save_name)
        return self.try_save(self.save_name)

    # ------------------------------------------------------------------
    # Gated operations
    # ------------------------------------------------------------------
    def save(self, key: str | None = None) -> None:
        key = key or self.save_name
        self._begin("save")
        tracks = copy_tracks(self._tracks())
        self._run("save", key, lambda: self._store.save(key, tracks))

    def load(self, key: str | None = None) -> None:
        key = key or self.save_name
        self._begin("load")
        self._run("load", key, lambda: self._store.load(key))

    def delete(self, key: str | None = None) -> None:
        key = key or self.save_name
        self._begin("delete")
        self._run("delete", key, lambda: self._store.delete(key))

    def try_save(self, key: str | None = None) -> bool:
        return self._try(self.save, key)

    def try_load(self, key: str | None = None) -> bool:
        return self._try(self.load, key)

    def try_delete(self, key: str | None = None) -> bool:
        return self._try(self.delete, key)

    def list_keys(self) -> None:
        """Reads never conflict with each other, so listing skips the gate."""
        task = PersistenceTask("list", "", self._store.list_keys)
        task.signals.finished.connect(lambda _op, _key, keys: self.keys_listed.emit(list(keys)))
        task.signals.failed.connect(lambda op, _key, message: self.failed.emit(op, message))
        self._start(task)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _try(self, operation: Callable[[str | None], None], key: str | None) -> bool:
        try:
            operation(key)
        except PersistenceBusyError as exc:
            logger.warning("%s", exc)
            return False
        return True

    def _begin(self, operation: str) -> None:
        self.gate.acquire(operation)
        self.ready_changed.emit(False)

    def _run(self, operation: str, key: str, job: Callable[[], Any]) -> None:
        logger.info("Persistence %s of %r started", operation, key)
        task = PersistenceTask(operation, key, job)
        task.signals.finished.connect(self._on_finished)
        task.signals.failed.connect(self._on_failed)
        try:
            self._start(task)
        except Exception:
            self._reopen()
            raise

    def _on_finished(self, operation: str, key: str, result: object) -> None:
        try:
            logger.info("Persistence %s of %r finished", operation, key)
            if operation == "save":
                self.saved.emit(key)
            elif operation == "load":
                self.loaded.emit(key, list(result or []))
            elif operation == "delete":
                self.deleted.emit(key)
        finally:
            self._reopen()

    def _on_failed(self, operation: str, key: str, message: str) -> None:
        try:
            self.failed.emit(operation, message)
        finally:
            self._reopen()

    def _reopen(self) -> None:
        self.gate.release()
        self.ready_changed.emit(True)
