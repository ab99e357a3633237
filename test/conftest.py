from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
ROOT_STR = str(ROOT)
if ROOT_STR not in sys.path:
    sys.path.insert(0, ROOT_STR)

import numpy as np
import pytest

from test.fixtures.fakes import ManualTimerScheduler, RecordingAudioOutput


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def manual_timers() -> ManualTimerScheduler:
    return ManualTimerScheduler()


@pytest.fixture
def recording_output(manual_timers: ManualTimerScheduler) -> RecordingAudioOutput:
    return RecordingAudioOutput(clock=manual_timers.now_s)
