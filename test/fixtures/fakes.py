"""
Deterministic stand-ins for the audio device and the timer thread.

RecordingAudioOutput records every ScheduledSource instead of playing it, and
ManualTimerScheduler runs callbacks only when a test advances its virtual
clock. Together they make live playback fully inspectable:

    >>> timers = ManualTimerScheduler()
    >>> output = RecordingAudioOutput(clock=timers.now_s)
    >>> # ... start playback ...
    >>> timers.advance(1000.0)
    >>> len(output.scheduled)
"""
from __future__ import annotations

import heapq
import itertools
from typing import Callable, List, Optional, Tuple

from audio.output import AudioOutput
from audio.primitives import ScheduledSource
from core.timers import TimerCallback, TimerHandle, TimerScheduler
from shared.errors import AudioUnavailable


class RecordingAudioOutput(AudioOutput):
    """AudioOutput spy; ``disconnect()`` simulates the device disappearing."""

    def __init__(
        self,
        sample_rate: int = 44_100,
        *,
        clock: Optional[Callable[[], float]] = None,
        available: bool = True,
    ) -> None:
        self.sample_rate = sample_rate
        self.scheduled: List[ScheduledSource] = []
        self.closed = False
        self._available = available
        self._clock = clock
        self.time_s = 0.0

    @property
    def available(self) -> bool:
        return self._available and not self.closed

    def current_time(self) -> float:
        return self._clock() if self._clock is not None else self.time_s

    def schedule(self, source: ScheduledSource) -> None:
        if not self.available:
            raise AudioUnavailable("recording output disconnected")
        self.scheduled.append(source)

    def disconnect(self) -> None:
        self._available = False

    def close(self) -> None:
        self.closed = True

    def labels(self) -> List[str]:
        return [s.label for s in self.scheduled]


class ManualTimerHandle(TimerHandle):
    def __init__(self, owner: "ManualTimerScheduler", due_ms: float, callback: TimerCallback) -> None:
        self._owner = owner
        self.due_ms = due_ms
        self._callback: Optional[TimerCallback] = callback
        self._cancelled = False
        self.fired = False

    def cancel(self) -> None:
        if self._cancelled or self.fired:
            return
        self._cancelled = True
        self._callback = None
        self._owner.cancel_count += 1

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def _fire(self) -> None:
        callback, self._callback = self._callback, None
        self.fired = True
        if callback is not None:
            callback()


class ManualTimerScheduler(TimerScheduler):
    """Virtual-time scheduler: nothing runs until ``advance`` is called."""

    def __init__(self) -> None:
        self.now_ms = 0.0
        self._heap: List[Tuple[float, int, ManualTimerHandle]] = []
        self._seq = itertools.count()
        self.cancel_count = 0
        self.call_count = 0
        self.closed = False

    def now_s(self) -> float:
        return self.now_ms / 1000.0

    def call_later(self, delay_ms: float, callback: TimerCallback) -> TimerHandle:
        handle = ManualTimerHandle(self, self.now_ms + max(0.0, float(delay_ms)), callback)
        heapq.heappush(self._heap, (handle.due_ms, next(self._seq), handle))
        self.call_count += 1
        return handle

    def pending(self) -> int:
        return sum(1 for _, _, h in self._heap if not h.cancelled and not h.fired)

    def advance(self, ms: float) -> None:
        """Move the clock forward by ``ms``, firing every timer due on the way in order."""
        target = self.now_ms + float(ms)
        while self._heap and self._heap[0][0] <= target:
            due, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            self.now_ms = due
            handle._fire()
        self.now_ms = target

    def close(self) -> None:
        self.closed = True
        for _, _, handle in self._heap:
            handle.cancel()
