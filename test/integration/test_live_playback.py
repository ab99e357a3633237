"""
End-to-end playback on the real timer thread.

These tests verify the full live path (engine -> scheduler -> synthesizer ->
output) with wall-clock timing:

1. Events keep firing until stop() and never after it returns
2. A finite duration stops playback on its own
3. Repeated start/stop cycles leave no pending timers or live threads
"""
from __future__ import annotations

import threading
import time

import numpy as np
import pytest

from core.engine import EmgSoundEngine
from core.timers import ThreadedTimerScheduler
from test.fixtures.fakes import RecordingAudioOutput

pytestmark = pytest.mark.slow


@pytest.fixture
def live_engine():
    t0 = time.monotonic()
    output = RecordingAudioOutput(clock=lambda: time.monotonic() - t0)
    timers = ThreadedTimerScheduler(name="LivePlaybackTimers")
    engine = EmgSoundEngine(audio_output=output, scheduler=timers, rng=np.random.default_rng(3))
    yield engine, output, timers
    engine.shutdown()


def wait_until(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class TestLivePlayback:
    def test_events_stop_with_handle(self, live_engine):
        engine, output, timers = live_engine
        handle = engine.start_pattern("normal")
        assert wait_until(lambda: handle.events_fired >= 3)
        handle.stop()
        count = len(output.scheduled)
        time.sleep(0.4)
        assert len(output.scheduled) == count
        assert timers.pending() == 0

    def test_duration_stops_playback(self, live_engine):
        engine, output, timers = live_engine
        handle = engine.start_pattern("fibrillation", 250.0)
        assert wait_until(lambda: not handle.is_playing)
        fired = handle.events_fired
        assert fired >= 1
        time.sleep(0.3)
        assert handle.events_fired == fired
        assert timers.pending() == 0

    def test_repeated_cycles_leave_nothing_behind(self, live_engine):
        engine, output, timers = live_engine
        for pattern in ("normal", "crd", "myotonic", "psw", "fasciculation", "fibrillation"):
            handle = engine.start_pattern(pattern)
            time.sleep(0.02)
            handle.stop()
        assert engine.playback.active_handles == []
        assert timers.pending() == 0
        engine.shutdown()
        assert not any(t.name == "LivePlaybackTimers" for t in threading.enumerate())
