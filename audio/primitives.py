"""Short-lived sound sources handed to an ``AudioOutput``.

Every source is rendered to a finite mono float32 buffer at construction and
carries both its start and its stop time, so nothing scheduled can keep
sounding indefinitely.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Literal

import numpy as np

from .envelope import Automation

Waveform = Literal["sine", "square", "sawtooth", "triangle"]
SourceKind = Literal["tone", "sweep", "noise", "spike"]


@dataclass(frozen=True)
class ScheduledSource:
    """A rendered primitive with its placement on the output clock (seconds)."""

    kind: SourceKind
    start_s: float
    stop_s: float
    samples: np.ndarray
    sample_rate: int
    label: str = ""

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        if not self.stop_s > self.start_s:
            raise ValueError("stop_s must be after start_s")
        arr = np.array(self.samples, dtype=np.float32, copy=True, order="C")
        if arr.ndim != 1:
            raise ValueError(f"samples must be 1D, got {arr.ndim}D")
        arr.setflags(write=False)
        object.__setattr__(self, "samples", arr)

    @property
    def duration_s(self) -> float:
        return self.stop_s - self.start_s

    @property
    def n_frames(self) -> int:
        return int(self.samples.shape[0])

    @property
    def peak(self) -> float:
        return float(np.max(np.abs(self.samples))) if self.n_frames else 0.0


def frame_count(duration_s: float, sample_rate: int) -> int:
    return max(1, int(round(duration_s * sample_rate)))


def oscillator(waveform: Waveform, frequency_hz: np.ndarray, sample_rate: int) -> np.ndarray:
    """Render an oscillator by phase accumulation so frequency sweeps stay glitch-free."""
    freq = np.asarray(frequency_hz, dtype=np.float64)
    # Phase in cycles, starting at zero on the first frame.
    cycles = np.concatenate(([0.0], np.cumsum(freq[:-1] / float(sample_rate))))
    frac = cycles % 1.0
    if waveform == "sine":
        return np.sin(2.0 * math.pi * cycles)
    if waveform == "square":
        return np.where(frac < 0.5, 1.0, -1.0)
    if waveform == "sawtooth":
        return 2.0 * ((frac + 0.5) % 1.0) - 1.0
    if waveform == "triangle":
        return (2.0 / math.pi) * np.arcsin(np.sin(2.0 * math.pi * cycles))
    raise ValueError(f"unknown waveform {waveform!r}")


def tone_burst(
    *,
    start_s: float,
    duration_s: float,
    frequency_hz: float,
    gain: Automation,
    sample_rate: int,
    waveform: Waveform = "sine",
    kind: SourceKind = "tone",
    label: str = "",
) -> ScheduledSource:
    """Fixed-frequency oscillator under an amplitude envelope."""
    n = frame_count(duration_s, sample_rate)
    freq = np.full(n, float(frequency_hz))
    samples = oscillator(waveform, freq, sample_rate) * gain.render(n, sample_rate)
    return ScheduledSource(kind, start_s, start_s + duration_s, samples, sample_rate, label)


def swept_tone(
    *,
    start_s: float,
    duration_s: float,
    frequency: Automation,
    gain: Automation,
    sample_rate: int,
    waveform: Waveform = "sine",
    label: str = "",
) -> ScheduledSource:
    """Oscillator whose frequency follows an automation curve."""
    n = frame_count(duration_s, sample_rate)
    samples = oscillator(waveform, frequency.render(n, sample_rate), sample_rate) * gain.render(n, sample_rate)
    return ScheduledSource("sweep", start_s, start_s + duration_s, samples, sample_rate, label)


def noise_burst(
    *,
    start_s: float,
    duration_s: float,
    rng: np.random.Generator,
    envelope: Callable[[np.ndarray], np.ndarray],
    gain: float,
    sample_rate: int,
    label: str = "",
) -> ScheduledSource:
    """Uniform white noise shaped by ``envelope(u)`` over normalized time ``u`` in [0, 1)."""
    n = frame_count(duration_s, sample_rate)
    u = np.arange(n, dtype=np.float64) / n
    samples = (rng.random(n) * 2.0 - 1.0) * envelope(u) * float(gain)
    return ScheduledSource("noise", start_s, start_s + duration_s, samples, sample_rate, label)


__all__ = [
    "ScheduledSource",
    "SourceKind",
    "Waveform",
    "frame_count",
    "noise_burst",
    "oscillator",
    "swept_tone",
    "tone_burst",
]
