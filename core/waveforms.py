"""Per-event EMG waveform generators.

Each generator maps elapsed time ``t`` (ms since the start of the event, or
since the start of the request for the myotonic and CRD trains) to a signed
amplitude in µV. They accept scalars or numpy arrays, are total over real
input, and return 0 outside the event window. Amplitude jitter is not part of
this layer; only shape is.

Shapes:
- Normal MUAP: triphasic, small positive / large negative / small positive.
- Fibrillation: biphasic, sharp positive then smaller negative half-sine.
- Fasciculation: identical to the normal MUAP.
- Myotonic: 150 → 20 Hz sweep under a waxing/holding/waning envelope.
- CRD: serrated three-harmonic spike every 1000/burst_frequency ms.
- Positive sharp wave: linear positive ramp then exponential negative decay.
"""

from __future__ import annotations

import math
from typing import Callable, Dict, Union

import numpy as np

from shared.models import PatternId

ArrayLike = Union[float, np.ndarray]

NORMAL_DURATION_MS = 12.0
NORMAL_AMPLITUDE_UV = 800.0
FIBRILLATION_DURATION_MS = 2.0
FIBRILLATION_AMPLITUDE_UV = 150.0
MYOTONIC_AMPLITUDE_UV = 200.0
MYOTONIC_START_HZ = 150.0
MYOTONIC_END_HZ = 20.0
CRD_SPIKE_WINDOW_MS = 15.0
CRD_AMPLITUDE_UV = 300.0
PSW_DURATION_MS = 20.0
PSW_AMPLITUDE_UV = 400.0


def _as_time(t: ArrayLike) -> np.ndarray:
    return np.asarray(t, dtype=np.float64)


def _result(out: np.ndarray, t: ArrayLike) -> ArrayLike:
    if np.ndim(t) == 0:
        return float(out)
    return out


def normal_muap(t_ms: ArrayLike) -> ArrayLike:
    t = _as_time(t_ms)
    u = t / NORMAL_DURATION_MS
    amp = NORMAL_AMPLITUDE_UV
    out = np.where(
        u < 0.15,
        amp * 0.2 * np.sin(u * math.pi / 0.15),
        np.where(
            u < 0.65,
            -amp * np.sin((u - 0.15) / 0.5 * math.pi),
            amp * 0.15 * np.sin((u - 0.65) / 0.35 * math.pi),
        ),
    )
    out = np.where((t < 0) | (t > NORMAL_DURATION_MS), 0.0, out)
    return _result(out, t_ms)


def fibrillation(t_ms: ArrayLike) -> ArrayLike:
    t = _as_time(t_ms)
    u = t / FIBRILLATION_DURATION_MS
    amp = FIBRILLATION_AMPLITUDE_UV
    out = np.where(
        u < 0.4,
        amp * np.sin(u * math.pi / 0.4),
        -amp * 0.7 * np.sin((u - 0.4) * math.pi / 0.6),
    )
    out = np.where((t < 0) | (t > FIBRILLATION_DURATION_MS), 0.0, out)
    return _result(out, t_ms)


def fasciculation(t_ms: ArrayLike) -> ArrayLike:
    # A fasciculation is a whole motor unit firing on its own: same shape.
    return normal_muap(t_ms)


def myotonic_frequency_hz(t_ms: ArrayLike, total_duration_ms: float = 500.0) -> ArrayLike:
    """Nominal sweep frequency at ``t_ms`` (linear 150 → 20 Hz)."""
    t = _as_time(t_ms)
    progress = t / total_duration_ms
    out = MYOTONIC_START_HZ - (MYOTONIC_START_HZ - MYOTONIC_END_HZ) * progress
    return _result(out, t_ms)


def myotonic_envelope(t_ms: ArrayLike, total_duration_ms: float = 500.0) -> ArrayLike:
    """Waxing over the first 30 %, flat for 40 %, waning over the last 30 %."""
    t = _as_time(t_ms)
    progress = t / total_duration_ms
    out = np.where(progress < 0.3, progress / 0.3, np.where(progress < 0.7, 1.0, (1.0 - progress) / 0.3))
    out = np.where((t < 0) | (t > total_duration_ms), 0.0, out)
    return _result(out, t_ms)


def myotonic_discharge(t_ms: ArrayLike, total_duration_ms: float = 500.0) -> ArrayLike:
    if total_duration_ms <= 0:
        raise ValueError("total_duration_ms must be positive")
    t = _as_time(t_ms)
    freq = myotonic_frequency_hz(t, total_duration_ms)
    envelope = myotonic_envelope(t, total_duration_ms)
    phase = 2.0 * math.pi * freq * t / 1000.0
    out = MYOTONIC_AMPLITUDE_UV * envelope * np.sin(phase)
    out = np.where((t < 0) | (t > total_duration_ms), 0.0, out)
    return _result(out, t_ms)


def complex_repetitive_discharge(t_ms: ArrayLike, burst_frequency_hz: float = 40.0) -> ArrayLike:
    if burst_frequency_hz <= 0:
        raise ValueError("burst_frequency_hz must be positive")
    t = _as_time(t_ms)
    period = 1000.0 / burst_frequency_hz
    in_period = np.mod(t, period)
    u = in_period / CRD_SPIKE_WINDOW_MS
    value = 0.5 * np.sin(u * math.pi * 2.0) + 0.3 * np.sin(u * math.pi * 3.0) + 0.2 * np.sin(u * math.pi * 4.0)
    out = np.where((t < 0) | (in_period > CRD_SPIKE_WINDOW_MS), 0.0, CRD_AMPLITUDE_UV * value)
    return _result(out, t_ms)


def positive_sharp_wave(t_ms: ArrayLike) -> ArrayLike:
    t = _as_time(t_ms)
    u = t / PSW_DURATION_MS
    amp = PSW_AMPLITUDE_UV
    out = np.where(u < 0.2, amp * (u / 0.2), -amp * 0.7 * np.exp(-(u - 0.2) * 5.0))
    out = np.where((t < 0) | (t > PSW_DURATION_MS), 0.0, out)
    return _result(out, t_ms)


_FIXED_SHAPES: Dict[PatternId, Callable[[ArrayLike], ArrayLike]] = {
    PatternId.NORMAL: normal_muap,
    PatternId.FIBRILLATION: fibrillation,
    PatternId.FASCICULATION: fasciculation,
    PatternId.POSITIVE_SHARP_WAVE: positive_sharp_wave,
}

_FIXED_DURATIONS_MS: Dict[PatternId, float] = {
    PatternId.NORMAL: NORMAL_DURATION_MS,
    PatternId.FIBRILLATION: FIBRILLATION_DURATION_MS,
    PatternId.FASCICULATION: NORMAL_DURATION_MS,
    PatternId.POSITIVE_SHARP_WAVE: PSW_DURATION_MS,
}


def event_duration_ms(
    pattern_id: PatternId,
    *,
    total_duration_ms: float = 500.0,
    burst_frequency_hz: float = 40.0,
) -> float:
    """Length of one generated event (one burst period for CRD)."""
    if pattern_id is PatternId.MYOTONIC:
        return float(total_duration_ms)
    if pattern_id is PatternId.COMPLEX_REPETITIVE_DISCHARGE:
        return 1000.0 / burst_frequency_hz
    return _FIXED_DURATIONS_MS[pattern_id]


def generate(
    pattern_id: PatternId,
    t_ms: ArrayLike,
    *,
    total_duration_ms: float = 500.0,
    burst_frequency_hz: float = 40.0,
) -> ArrayLike:
    """Dispatch to the generator for ``pattern_id``."""
    if pattern_id is PatternId.MYOTONIC:
        return myotonic_discharge(t_ms, total_duration_ms)
    if pattern_id is PatternId.COMPLEX_REPETITIVE_DISCHARGE:
        return complex_repetitive_discharge(t_ms, burst_frequency_hz)
    return _FIXED_SHAPES[pattern_id](t_ms)


__all__ = [
    "complex_repetitive_discharge",
    "event_duration_ms",
    "fasciculation",
    "fibrillation",
    "generate",
    "myotonic_discharge",
    "myotonic_envelope",
    "myotonic_frequency_hz",
    "normal_muap",
    "positive_sharp_wave",
]
