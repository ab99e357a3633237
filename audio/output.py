"""Audio output contract shared by the synthesizer and the playback scheduler.

The engine owns exactly one output per process: it is created at startup,
injected into the synthesizer, and closed at shutdown.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod

from shared.errors import AudioUnavailable

from .primitives import ScheduledSource


class AudioOutput(ABC):
    """A device clock plus a sink for independent, concurrently sounding sources."""

    sample_rate: int = 44_100

    @property
    @abstractmethod
    def available(self) -> bool:
        """False when nothing can be heard (no device, device closed)."""

    @abstractmethod
    def current_time(self) -> float:
        """Device clock in seconds; sources are scheduled relative to it."""

    @abstractmethod
    def schedule(self, source: ScheduledSource) -> None:
        """Queue ``source`` for playback; raises ``AudioUnavailable`` when not available."""

    def close(self) -> None:
        return None

    def __enter__(self) -> "AudioOutput":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class NullAudioOutput(AudioOutput):
    """Stand-in output for hosts without a usable device."""

    def __init__(self, sample_rate: int = 44_100, reason: str = "no audio output configured") -> None:
        self.sample_rate = int(sample_rate)
        self.reason = reason
        self._t0 = time.perf_counter()

    @property
    def available(self) -> bool:
        return False

    def current_time(self) -> float:
        return time.perf_counter() - self._t0

    def schedule(self, source: ScheduledSource) -> None:
        raise AudioUnavailable(self.reason)


__all__ = ["AudioOutput", "NullAudioOutput"]
