"""AudioEventSynthesizer - one audible EMG event per call.

Each pattern maps onto a primitive shape:
- tone burst: normal MUAP (100 Hz), fasciculation (80 Hz)
- noise burst: fibrillation (5 ms click)
- swept tone: myotonic "dive bomber" (1500 → 200 Hz), positive sharp wave (400 → 100 Hz)
- multi-spike burst: complex repetitive discharge (3-5 square spikes, 15 ms apart)

Envelopes mirror the clinical character of the waveform. Volume is a linear
multiplier in [0, 1] applied to the envelope peak.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Dict, List, Optional

import numpy as np

from shared.catalog import resolve_pattern
from shared.models import PatternId, PatternLike

from .envelope import Automation
from .output import AudioOutput
from .primitives import ScheduledSource, noise_burst, swept_tone, tone_burst

logger = logging.getLogger(__name__)

ENVELOPE_FLOOR = 0.001

DEFAULT_VOLUMES: Dict[PatternId, float] = {
    PatternId.NORMAL: 0.3,
    PatternId.FIBRILLATION: 0.25,
    PatternId.FASCICULATION: 0.3,
    PatternId.MYOTONIC: 0.2,
    PatternId.COMPLEX_REPETITIVE_DISCHARGE: 0.25,
    PatternId.POSITIVE_SHARP_WAVE: 0.25,
}

CRD_SPIKE_INTERVAL_S = 0.015
CRD_SPIKE_DURATION_S = 0.010


def clamp_volume(volume: float) -> float:
    v = float(volume)
    if math.isnan(v):
        return 0.0
    return max(0.0, min(1.0, v))


def _floor_for(peak: float) -> float:
    # The decay target may never sit above the peak it decays from.
    return min(ENVELOPE_FLOOR, peak)


def fibrillation_click_envelope(u: np.ndarray) -> np.ndarray:
    """Fast attack over the first 20 %, then e^(-10(u - 0.2))."""
    return np.where(u < 0.2, u / 0.2, np.exp(-(u - 0.2) * 10.0))


class AudioEventSynthesizer:
    def __init__(self, output: AudioOutput, rng: Optional[np.random.Generator] = None) -> None:
        self.output = output
        self._rng = rng if rng is not None else np.random.default_rng()
        self._dispatch: Dict[PatternId, Callable[[float], List[ScheduledSource]]] = {
            PatternId.NORMAL: self.play_normal_muap,
            PatternId.FIBRILLATION: self.play_fibrillation,
            PatternId.FASCICULATION: self.play_fasciculation,
            PatternId.MYOTONIC: self.play_myotonic_discharge,
            PatternId.COMPLEX_REPETITIVE_DISCHARGE: self.play_complex_repetitive_discharge,
            PatternId.POSITIVE_SHARP_WAVE: self.play_positive_sharp_wave,
        }

    @property
    def sample_rate(self) -> int:
        return int(self.output.sample_rate)

    def synthesize_event(self, pattern: PatternLike, volume: Optional[float] = None) -> List[ScheduledSource]:
        """Schedule one event for ``pattern`` starting now; returns what was scheduled."""
        pattern_id = resolve_pattern(pattern)
        if volume is None:
            volume = DEFAULT_VOLUMES[pattern_id]
        return self._dispatch[pattern_id](volume)

    # ---- Tone bursts ----------------------------------------------------------

    def play_normal_muap(self, volume: float = 0.3) -> List[ScheduledSource]:
        """Clean, brief pop: 100 Hz sine, 2 ms attack, 70 % sustain, decay by 15 ms."""
        v = clamp_volume(volume)
        gain = (
            Automation(0.0)
            .set_value_at_time(0.0, 0.0)
            .linear_ramp_to(v, 0.002)
            .linear_ramp_to(v * 0.7, 0.008)
            .exponential_ramp_to(_floor_for(v), 0.015)
        )
        source = tone_burst(
            start_s=self.output.current_time(),
            duration_s=0.015,
            frequency_hz=100.0,
            gain=gain,
            sample_rate=self.sample_rate,
            waveform="sine",
            label="normal",
        )
        return self._schedule([source])

    def play_fasciculation(self, volume: float = 0.3) -> List[ScheduledSource]:
        """Popcorn pop: 80 Hz sine, slightly longer than a MUAP."""
        v = clamp_volume(volume)
        gain = (
            Automation(0.0)
            .set_value_at_time(0.0, 0.0)
            .linear_ramp_to(v, 0.003)
            .linear_ramp_to(v * 0.6, 0.012)
            .exponential_ramp_to(_floor_for(v), 0.020)
        )
        source = tone_burst(
            start_s=self.output.current_time(),
            duration_s=0.020,
            frequency_hz=80.0,
            gain=gain,
            sample_rate=self.sample_rate,
            waveform="sine",
            label="fasciculation",
        )
        return self._schedule([source])

    # ---- Noise burst ----------------------------------------------------------

    def play_fibrillation(self, volume: float = 0.25) -> List[ScheduledSource]:
        """Crisp 5 ms noise click ("rain on a tin roof")."""
        source = noise_burst(
            start_s=self.output.current_time(),
            duration_s=0.005,
            rng=self._rng,
            envelope=fibrillation_click_envelope,
            gain=clamp_volume(volume),
            sample_rate=self.sample_rate,
            label="fibrillation",
        )
        return self._schedule([source])

    # ---- Swept tones ----------------------------------------------------------

    def play_myotonic_discharge(self, volume: float = 0.2, duration_s: float = 0.5) -> List[ScheduledSource]:
        """Dive bomber: buzzy sawtooth sweeping 1500 → 200 Hz with waxing-waning amplitude."""
        if duration_s <= 0:
            raise ValueError("duration_s must be positive")
        v = clamp_volume(volume)
        wax = duration_s * 0.3
        sustain = duration_s * 0.4
        frequency = Automation(1500.0).set_value_at_time(1500.0, 0.0).exponential_ramp_to(200.0, duration_s)
        gain = (
            Automation(0.0)
            .set_value_at_time(0.0, 0.0)
            .linear_ramp_to(v, wax)
            .set_value_at_time(v, wax + sustain)
            .exponential_ramp_to(_floor_for(v), duration_s)
        )
        source = swept_tone(
            start_s=self.output.current_time(),
            duration_s=duration_s,
            frequency=frequency,
            gain=gain,
            sample_rate=self.sample_rate,
            waveform="sawtooth",
            label="myotonic",
        )
        return self._schedule([source])

    def play_positive_sharp_wave(self, volume: float = 0.25) -> List[ScheduledSource]:
        """Triangle transient falling 400 → 100 Hz over 20 ms."""
        v = clamp_volume(volume)
        frequency = Automation(400.0).set_value_at_time(400.0, 0.0).exponential_ramp_to(100.0, 0.020)
        gain = (
            Automation(0.0)
            .set_value_at_time(0.0, 0.0)
            .linear_ramp_to(v, 0.002)
            .exponential_ramp_to(_floor_for(v), 0.020)
        )
        source = swept_tone(
            start_s=self.output.current_time(),
            duration_s=0.020,
            frequency=frequency,
            gain=gain,
            sample_rate=self.sample_rate,
            waveform="triangle",
            label="psw",
        )
        return self._schedule([source])

    # ---- Multi-spike burst ----------------------------------------------------

    def play_complex_repetitive_discharge(self, volume: float = 0.25) -> List[ScheduledSource]:
        """Machine-gun burst of 3-5 square spikes, 15 ms apart, each a little higher."""
        v = clamp_volume(volume)
        now = self.output.current_time()
        n_spikes = 3 + int(self._rng.integers(0, 3))
        sources = []
        for i in range(n_spikes):
            gain = (
                Automation(0.0)
                .set_value_at_time(0.0, 0.0)
                .linear_ramp_to(v, 0.001)
                .exponential_ramp_to(_floor_for(v), CRD_SPIKE_DURATION_S)
            )
            sources.append(
                tone_burst(
                    start_s=now + i * CRD_SPIKE_INTERVAL_S,
                    duration_s=CRD_SPIKE_DURATION_S,
                    frequency_hz=150.0 + i * 20.0,
                    gain=gain,
                    sample_rate=self.sample_rate,
                    waveform="square",
                    kind="spike",
                    label=f"crd-{i}",
                )
            )
        return self._schedule(sources)

    # ---- Helpers --------------------------------------------------------------

    def _schedule(self, sources: List[ScheduledSource]) -> List[ScheduledSource]:
        for source in sources:
            self.output.schedule(source)
        logger.debug("Scheduled %d source(s) for %s", len(sources), sources[0].label if sources else "?")
        return sources


__all__ = ["AudioEventSynthesizer", "DEFAULT_VOLUMES", "ENVELOPE_FLOOR", "clamp_volume"]
