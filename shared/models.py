from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

import numpy as np

from .errors import InvalidPattern


def _freeze_array(array: np.ndarray, *, ndim: int | None = None, dtype=None) -> np.ndarray:
    """Return a read-only, C-contiguous copy of `array`, validating dimensions."""
    arr = np.array(array, copy=True, order="C", dtype=dtype)
    if ndim is not None and arr.ndim != ndim:
        raise ValueError(f"array must be {ndim}D, got {arr.ndim}D")
    arr.setflags(write=False)
    return arr


def sample_count(total_duration_ms: float, sample_rate_per_ms: float) -> int:
    """Number of samples covering `total_duration_ms` at `sample_rate_per_ms`."""
    # Guard against products like 0.7 * 10 == 7.000000000000001 / 6.999999999.
    return int(math.floor(total_duration_ms * sample_rate_per_ms + 1e-9))


# ----------------------------
# Pattern identifiers
# ----------------------------

class PatternId(str, Enum):
    """Closed catalog of clinical EMG patterns."""

    NORMAL = "normal"
    FIBRILLATION = "fibrillation"
    FASCICULATION = "fasciculation"
    MYOTONIC = "myotonic"
    COMPLEX_REPETITIVE_DISCHARGE = "crd"
    POSITIVE_SHARP_WAVE = "psw"

    @classmethod
    def parse(cls, value: Union["PatternId", str]) -> "PatternId":
        """Strict lookup by member, value, or name (snake or CamelCase)."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise InvalidPattern(f"pattern id must be a string, got {type(value).__name__}")
        key = value.strip()
        for member in cls:
            if key.lower() == member.value:
                return member
        folded = key.replace("_", "").replace("-", "").replace(" ", "").lower()
        for member in cls:
            if folded == member.name.replace("_", "").lower():
                return member
        raise InvalidPattern(f"unknown EMG pattern {value!r}")

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()


PatternLike = Union[PatternId, str]


# ----------------------------
# Inter-event timing models
# ----------------------------

@dataclass(frozen=True)
class PoissonLike:
    """Independent per-sample-step draws; live playback uses uniform gaps of the same mean."""

    min_gap_ms: float
    max_gap_ms: float

    def __post_init__(self) -> None:
        if self.min_gap_ms <= 0 or self.max_gap_ms < self.min_gap_ms:
            raise ValueError("PoissonLike gaps must satisfy 0 < min_gap_ms <= max_gap_ms")

    @property
    def mean_gap_ms(self) -> float:
        return 0.5 * (self.min_gap_ms + self.max_gap_ms)

    @property
    def rate_hz(self) -> float:
        return 1000.0 / self.mean_gap_ms

    def probability_per_step(self, sample_rate_per_ms: float) -> float:
        step_ms = 1.0 / sample_rate_per_ms
        return min(1.0, step_ms / self.mean_gap_ms)


@dataclass(frozen=True)
class UniformRandomInterval:
    """Next event after a gap drawn uniformly from [min_ms, max_ms]."""

    min_ms: float
    max_ms: float

    def __post_init__(self) -> None:
        if self.min_ms <= 0 or self.max_ms < self.min_ms:
            raise ValueError("UniformRandomInterval must satisfy 0 < min_ms <= max_ms")

    @property
    def mean_gap_ms(self) -> float:
        return 0.5 * (self.min_ms + self.max_ms)


@dataclass(frozen=True)
class FixedBurstPeriod:
    """One multi-spike burst every `period_ms`.

    The audible rendition groups spikes into clusters re-fired every
    `playback_period_ms`.
    """

    period_ms: float
    spike_window_ms: float = 15.0
    playback_period_ms: float = 300.0

    def __post_init__(self) -> None:
        if self.period_ms <= 0 or self.playback_period_ms <= 0:
            raise ValueError("FixedBurstPeriod periods must be positive")


@dataclass(frozen=True)
class SingleContinuousEvent:
    """One long event; live playback re-triggers after the event plus `gap_ms`."""

    duration_ms: float
    gap_ms: float = 100.0

    def __post_init__(self) -> None:
        if self.duration_ms <= 0 or self.gap_ms < 0:
            raise ValueError("SingleContinuousEvent needs a positive duration")


InterEventTimingModel = Union[PoissonLike, UniformRandomInterval, FixedBurstPeriod, SingleContinuousEvent]


# ----------------------------
# Catalog records
# ----------------------------

Range = Tuple[float, float]


@dataclass(frozen=True)
class PatternDescriptor:
    """Numeric and descriptive parameters of one clinical pattern."""

    pattern_id: PatternId
    name: str
    event_duration_ms: Union[float, Range]
    duration_label: str
    peak_amplitude_uv: float
    amplitude_label: str
    frequency_hz: Union[float, Range]
    firing_label: str
    timing: InterEventTimingModel
    sound: str
    clinical: str

    @property
    def nominal_duration_ms(self) -> float:
        if isinstance(self.event_duration_ms, tuple):
            low, high = self.event_duration_ms
            return 0.5 * (low + high)
        return float(self.event_duration_ms)


@dataclass(frozen=True)
class AudioCharacteristics:
    """Descriptive text shown next to the audio controls."""

    sound_description: str
    frequency: str
    timing: str
    clinical_note: str


# ----------------------------
# Sample buffers
# ----------------------------

@dataclass(frozen=True)
class SampleBuffer:
    """Read-only amplitude trace (µV) covering a finite time window."""

    samples: np.ndarray
    sample_rate_per_ms: float
    pattern_id: Optional[PatternId] = None
    units: str = field(default="uV")

    def __post_init__(self) -> None:
        if self.sample_rate_per_ms <= 0:
            raise ValueError("sample_rate_per_ms must be positive")
        object.__setattr__(self, "samples", _freeze_array(self.samples, ndim=1, dtype=np.float32))

    @classmethod
    def empty(cls, pattern_id: Optional[PatternId] = None, sample_rate_per_ms: float = 10.0) -> "SampleBuffer":
        return cls(samples=np.zeros(0, dtype=np.float32), sample_rate_per_ms=sample_rate_per_ms, pattern_id=pattern_id)

    def __len__(self) -> int:
        return int(self.samples.shape[0])

    def __array__(self, dtype=None, copy=None):
        if dtype is None:
            return self.samples
        return self.samples.astype(dtype)

    @property
    def duration_ms(self) -> float:
        return len(self) / self.sample_rate_per_ms

    def times_ms(self) -> np.ndarray:
        return np.arange(len(self), dtype=np.float64) / self.sample_rate_per_ms

    def at(self, t_ms: float) -> float:
        """Sample nearest to `t_ms` (clamped to the buffer)."""
        if not len(self):
            raise IndexError("empty sample buffer")
        idx = int(round(t_ms * self.sample_rate_per_ms))
        idx = max(0, min(len(self) - 1, idx))
        return float(self.samples[idx])


__all__ = [
    "AudioCharacteristics",
    "FixedBurstPeriod",
    "InterEventTimingModel",
    "PatternDescriptor",
    "PatternId",
    "PatternLike",
    "PoissonLike",
    "SampleBuffer",
    "SingleContinuousEvent",
    "UniformRandomInterval",
    "sample_count",
]
