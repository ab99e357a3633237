"""Continuous playback of a pattern as a stream of discrete audio events.

A playback session is a ``RepeatingTask``: it fires one event immediately and
then re-arms a one-shot timer with the delay drawn from the pattern's timing
model. Each start bumps a generation token; a callback whose token is stale is
ignored, so once ``stop()`` returns no further event is synthesized for that
session.

Live re-trigger delays (ms):
- Normal 50-150, Fibrillation 70-200, PSW 70-200 (uniform)
- Fasciculation 500-3000 (uniform)
- CRD 300 (fixed cluster period)
- Myotonic 600 (500 ms discharge + 100 ms gap)
"""

from __future__ import annotations

import logging
import math
import threading
from typing import Callable, List, Literal, Optional

import numpy as np

from audio.synthesizer import AudioEventSynthesizer
from shared.catalog import PATTERN_CATALOG, resolve_pattern
from shared.errors import AudioUnavailable
from shared.models import (
    FixedBurstPeriod,
    InterEventTimingModel,
    PatternId,
    PatternLike,
    PoissonLike,
    SingleContinuousEvent,
    UniformRandomInterval,
)

from .timers import TimerHandle, TimerScheduler

logger = logging.getLogger(__name__)

PlaybackState = Literal["stopped", "playing"]


def next_event_delay_ms(timing: InterEventTimingModel, rng: np.random.Generator) -> float:
    """Delay until the next live event for ``timing``."""
    if isinstance(timing, PoissonLike):
        return float(rng.uniform(timing.min_gap_ms, timing.max_gap_ms))
    if isinstance(timing, UniformRandomInterval):
        return float(rng.uniform(timing.min_ms, timing.max_ms))
    if isinstance(timing, FixedBurstPeriod):
        return float(timing.playback_period_ms)
    if isinstance(timing, SingleContinuousEvent):
        return float(timing.duration_ms + timing.gap_ms)
    raise TypeError(f"unsupported timing model {type(timing).__name__}")


def plays_until_stopped(total_duration_ms: Optional[float]) -> bool:
    """``None``, infinity, NaN or a non-positive duration mean no deadline."""
    if total_duration_ms is None:
        return True
    value = float(total_duration_ms)
    return not math.isfinite(value) or value <= 0


class RepeatingTask:
    """
    Self-rescheduling action with a generation token.

    ``action`` returns the delay in ms until its next run, or ``None`` to end
    the task. The lock is held across the liveness check and the action, so a
    concurrent ``stop()`` waits for an in-flight run and no run starts after it.
    """

    def __init__(self, timers: TimerScheduler, action: Callable[[], Optional[float]], *, name: str = "") -> None:
        self._timers = timers
        self._action = action
        self.name = name
        self._lock = threading.RLock()
        self._generation = 0
        self._running = False
        self._pending: Optional[TimerHandle] = None

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    @property
    def generation(self) -> int:
        return self._generation

    def start(self, initial_delay_ms: Optional[float] = None) -> None:
        """Run now (``None``) or after ``initial_delay_ms``; no-op while running."""
        with self._lock:
            if self._running:
                return
            self._running = True
            self._generation += 1
            generation = self._generation
            if initial_delay_ms is None:
                self._run(generation)
            else:
                self._arm(generation, initial_delay_ms)

    def stop(self) -> bool:
        """Invalidate the current generation and cancel the pending timer."""
        with self._lock:
            if not self._running:
                return False
            self._running = False
            self._generation += 1
            pending, self._pending = self._pending, None
        if pending is not None:
            pending.cancel()
        return True

    def _alive(self, generation: int) -> bool:
        return self._running and generation == self._generation

    def _arm(self, generation: int, delay_ms: float) -> None:
        self._pending = self._timers.call_later(delay_ms, lambda: self._run(generation))

    def _run(self, generation: int) -> None:
        with self._lock:
            if not self._alive(generation):
                return
            self._pending = None
            try:
                delay_ms = self._action()
            except Exception:
                self._running = False
                self._generation += 1
                raise
            if not self._alive(generation):
                return
            if delay_ms is None:
                self._running = False
                return
            self._arm(generation, delay_ms)


class PlaybackHandle:
    """Caller's control over one playback session."""

    def __init__(self, pattern_id: PatternId, *, on_stop: Optional[Callable[["PlaybackHandle"], None]] = None) -> None:
        self.pattern_id = pattern_id
        self._on_stop = on_stop
        self._lock = threading.Lock()
        self._task: Optional[RepeatingTask] = None
        self._deadline: Optional[TimerHandle] = None
        self._stopped = False
        self.events_fired = 0

    @classmethod
    def inert(cls, pattern_id: PatternId) -> "PlaybackHandle":
        """An already-stopped handle, returned when nothing can be heard."""
        handle = cls(pattern_id)
        handle._stopped = True
        return handle

    @property
    def state(self) -> PlaybackState:
        return "playing" if self.is_playing else "stopped"

    @property
    def is_playing(self) -> bool:
        with self._lock:
            if self._stopped:
                return False
            task = self._task
        return task is not None and task.running

    def stop(self) -> None:
        """Cease scheduling further events; safe to call any number of times."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            task, self._task = self._task, None
            deadline, self._deadline = self._deadline, None
        if task is not None:
            task.stop()
        if deadline is not None:
            deadline.cancel()
        logger.info("Stopped %s playback after %d event(s)", self.pattern_id.value, self.events_fired)
        if self._on_stop is not None:
            self._on_stop(self)

    def _attach(self, task: RepeatingTask) -> None:
        with self._lock:
            self._task = task

    def _set_deadline(self, deadline: TimerHandle) -> None:
        with self._lock:
            if not self._stopped:
                self._deadline = deadline
                return
        deadline.cancel()

    def __repr__(self) -> str:
        return f"PlaybackHandle(pattern_id={self.pattern_id.value!r}, state={self.state!r}, events_fired={self.events_fired})"


class ContinuousPlaybackScheduler:
    """Starts independent playback sessions; sessions may overlap."""

    def __init__(
        self,
        synthesizer: AudioEventSynthesizer,
        timers: TimerScheduler,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self._synth = synthesizer
        self._timers = timers
        self._rng = rng if rng is not None else np.random.default_rng()
        self._lock = threading.Lock()
        self._active: List[PlaybackHandle] = []

    @property
    def active_handles(self) -> List[PlaybackHandle]:
        with self._lock:
            return list(self._active)

    def start(
        self,
        pattern: PatternLike,
        total_duration_ms: Optional[float] = None,
        volume: Optional[float] = None,
    ) -> PlaybackHandle:
        pattern_id = resolve_pattern(pattern)
        if not self._synth.output.available:
            logger.warning("Audio output unavailable; %s playback is visual only", pattern_id.value)
            return PlaybackHandle.inert(pattern_id)

        timing = PATTERN_CATALOG[pattern_id].timing
        handle = PlaybackHandle(pattern_id, on_stop=self._forget)

        def fire() -> Optional[float]:
            try:
                self._synth.synthesize_event(pattern_id, volume)
            except AudioUnavailable as exc:
                logger.warning("Audio output lost during %s playback: %s", pattern_id.value, exc)
                handle.stop()
                return None
            except Exception:
                logger.exception("Error synthesizing %s event; stopping playback", pattern_id.value)
                handle.stop()
                return None
            handle.events_fired += 1
            return next_event_delay_ms(timing, self._rng)

        task = RepeatingTask(self._timers, fire, name=pattern_id.value)
        handle._attach(task)
        with self._lock:
            self._active.append(handle)

        logger.info("Starting %s playback (duration=%s ms)", pattern_id.value, total_duration_ms)
        task.start()
        # deadline is armed against a running task
        if not plays_until_stopped(total_duration_ms) and handle.is_playing:
            handle._set_deadline(self._timers.call_later(float(total_duration_ms), handle.stop))
        return handle

    def stop_all(self) -> None:
        for handle in self.active_handles:
            handle.stop()

    def _forget(self, handle: PlaybackHandle) -> None:
        with self._lock:
            try:
                self._active.remove(handle)
            except ValueError:
                pass


__all__ = [
    "ContinuousPlaybackScheduler",
    "PlaybackHandle",
    "PlaybackState",
    "RepeatingTask",
    "next_event_delay_ms",
    "plays_until_stopped",
]
