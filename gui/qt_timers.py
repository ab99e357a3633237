"""Timer scheduler driven by the Qt event loop.

Use this instead of ``ThreadedTimerScheduler`` when the engine lives inside a
Qt application: every playback callback then runs on the GUI thread.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from PySide6 import QtCore

from core.timers import TimerCallback, TimerHandle, TimerScheduler

logger = logging.getLogger(__name__)


class QtTimerHandle(TimerHandle):
    def __init__(self, timer: QtCore.QTimer, callback: TimerCallback, owner: "QtTimerScheduler") -> None:
        self._timer = timer
        self._callback: Optional[TimerCallback] = callback
        self._owner = owner
        self._cancelled = False
        timer.timeout.connect(self._fire)

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._callback = None
        self._timer.stop()
        self._owner._release(self)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def active(self) -> bool:
        return self._timer.isActive()

    def _fire(self) -> None:
        callback = self._callback
        self._callback = None
        self._owner._release(self)
        if callback is None or self._cancelled:
            return
        try:
            callback()
        except Exception:
            logger.exception("Timer callback failed")


class QtTimerScheduler(TimerScheduler):
    """One single-shot ``QTimer`` per ``call_later``; handles are kept alive until they fire."""

    def __init__(self, parent: Optional[QtCore.QObject] = None) -> None:
        self._parent = parent
        self._handles: List[QtTimerHandle] = []

    def call_later(self, delay_ms: float, callback: TimerCallback) -> TimerHandle:
        timer = QtCore.QTimer(self._parent)
        timer.setSingleShot(True)
        timer.setTimerType(QtCore.Qt.TimerType.PreciseTimer)
        handle = QtTimerHandle(timer, callback, self)
        self._handles.append(handle)
        timer.start(max(0, int(round(float(delay_ms)))))
        return handle

    def pending(self) -> int:
        return len(self._handles)

    def close(self) -> None:
        for handle in list(self._handles):
            handle.cancel()

    def _release(self, handle: QtTimerHandle) -> None:
        try:
            self._handles.remove(handle)
        except ValueError:
            pass


__all__ = ["QtTimerHandle", "QtTimerScheduler"]
