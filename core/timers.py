"""Cancellable one-shot timers for the playback scheduler.

``TimerScheduler`` is the injection seam: the engine runs on a background
thread by default, a Qt host can drive the same scheduler from its event loop
(``gui.qt_timers``), and tests use a virtual clock.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], None]


class TimerHandle(ABC):
    @abstractmethod
    def cancel(self) -> None:
        """Prevent the callback from running; a no-op once it ran or was cancelled."""

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        ...


class TimerScheduler(ABC):
    @abstractmethod
    def call_later(self, delay_ms: float, callback: TimerCallback) -> TimerHandle:
        """Run ``callback`` once, no sooner than ``delay_ms`` from now."""

    def close(self) -> None:
        return None


class _ThreadedHandle(TimerHandle):
    __slots__ = ("due", "callback", "_cancelled")

    def __init__(self, due: float, callback: TimerCallback) -> None:
        self.due = due
        self.callback: Optional[TimerCallback] = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True
        self.callback = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ThreadedTimerScheduler(TimerScheduler):
    """Single daemon thread serving a deadline heap; callbacks run one at a time."""

    def __init__(self, *, name: str = "EmgTimerThread") -> None:
        self._name = name
        self._cond = threading.Condition()
        self._heap: List[Tuple[float, int, _ThreadedHandle]] = []
        self._seq = itertools.count()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 1.0) -> None:
        self._stop_event.set()
        with self._cond:
            self._heap.clear()
            self._cond.notify_all()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None

    close = stop

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def call_later(self, delay_ms: float, callback: TimerCallback) -> TimerHandle:
        delay_s = max(0.0, float(delay_ms)) / 1000.0
        handle = _ThreadedHandle(time.monotonic() + delay_s, callback)
        if not self.running:
            self.start()
        with self._cond:
            heapq.heappush(self._heap, (handle.due, next(self._seq), handle))
            self._cond.notify()
        return handle

    def pending(self) -> int:
        with self._cond:
            return sum(1 for _, _, h in self._heap if not h.cancelled)

    def _run(self) -> None:
        while not self._stop_event.is_set():
            with self._cond:
                while self._heap and self._heap[0][2].cancelled:
                    heapq.heappop(self._heap)
                if not self._heap:
                    self._cond.wait(0.1)
                    continue
                due = self._heap[0][0]
                now = time.monotonic()
                if due > now:
                    self._cond.wait(due - now)
                    continue
                _, _, handle = heapq.heappop(self._heap)
                callback = handle.callback
                handle.callback = None
            if callback is None or handle.cancelled:
                continue
            try:
                callback()
            except Exception:
                logger.exception("Timer callback failed")


__all__ = ["ThreadedTimerScheduler", "TimerCallback", "TimerHandle", "TimerScheduler"]
