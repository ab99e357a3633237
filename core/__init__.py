"""Core engine: waveform generation, buffer assembly and live playback."""

from .assembler import PatternAssembler
from .engine import EmgSoundEngine
from .playback import ContinuousPlaybackScheduler, PlaybackHandle, RepeatingTask
from .timers import ThreadedTimerScheduler, TimerHandle, TimerScheduler
from shared.models import PatternDescriptor, PatternId, SampleBuffer

__all__ = [
    "PatternId",
    "PatternDescriptor",
    "SampleBuffer",
    "PatternAssembler",
    "EmgSoundEngine",
    "ContinuousPlaybackScheduler",
    "PlaybackHandle",
    "RepeatingTask",
    "ThreadedTimerScheduler",
    "TimerHandle",
    "TimerScheduler",
]
