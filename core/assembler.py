"""Places pattern events on a timeline and renders them into display buffers."""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional

import numpy as np

from shared.catalog import PATTERN_CATALOG, resolve_pattern
from shared.errors import DegenerateDuration
from shared.models import (
    FixedBurstPeriod,
    PatternId,
    PatternLike,
    PoissonLike,
    SampleBuffer,
    SingleContinuousEvent,
    UniformRandomInterval,
    sample_count,
)

from . import waveforms

logger = logging.getLogger(__name__)


class PatternAssembler:
    """
    Builds finite sample buffers for a pattern by placing individual events
    along the timeline according to the pattern's inter-event timing model.

    Overlapping events sum without clamping (superposition of nearby motor
    unit discharges). The random source is an injected numpy Generator so a
    fixed seed reproduces the exact placement.
    """

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        *,
        burst_frequency_hz: float = 40.0,
        baseline_noise_uv: float = 0.0,
    ) -> None:
        if burst_frequency_hz <= 0:
            raise ValueError("burst_frequency_hz must be positive")
        self._rng = rng if rng is not None else np.random.default_rng()
        self.burst_frequency_hz = float(burst_frequency_hz)
        self.baseline_noise_uv = max(0.0, float(baseline_noise_uv))

    # ---- Public API -----------------------------------------------------------

    def assemble(
        self,
        pattern: PatternLike,
        total_duration_ms: float,
        sample_rate_per_ms: float = 10.0,
    ) -> SampleBuffer:
        """Return a buffer of ``floor(total_duration_ms * sample_rate_per_ms)`` samples."""
        pattern_id = resolve_pattern(pattern)
        try:
            n_samples = self._checked_sample_count(total_duration_ms, sample_rate_per_ms)
        except DegenerateDuration as exc:
            logger.debug("Empty %s buffer: %s", pattern_id.value, exc)
            return self._empty(pattern_id, sample_rate_per_ms)

        onsets = self._draw_onsets(pattern_id, n_samples, sample_rate_per_ms)
        data = self._render(pattern_id, n_samples, sample_rate_per_ms, onsets)
        if self.baseline_noise_uv > 0.0:
            data += (self._rng.random(n_samples) - 0.5) * self.baseline_noise_uv
        return SampleBuffer(samples=data, sample_rate_per_ms=sample_rate_per_ms, pattern_id=pattern_id)

    def event_onsets(
        self,
        pattern: PatternLike,
        total_duration_ms: float,
        sample_rate_per_ms: float = 10.0,
    ) -> np.ndarray:
        """Sample indices at which events would be placed (consumes the rng)."""
        pattern_id = resolve_pattern(pattern)
        try:
            n_samples = self._checked_sample_count(total_duration_ms, sample_rate_per_ms)
        except DegenerateDuration:
            return np.zeros(0, dtype=np.int64)
        return self._draw_onsets(pattern_id, n_samples, sample_rate_per_ms)

    def render_events(
        self,
        pattern: PatternLike,
        total_duration_ms: float,
        sample_rate_per_ms: float,
        onsets: Iterable[int],
    ) -> SampleBuffer:
        """Place one event at each of the given sample indices (no randomness)."""
        pattern_id = resolve_pattern(pattern)
        try:
            n_samples = self._checked_sample_count(total_duration_ms, sample_rate_per_ms)
        except DegenerateDuration as exc:
            logger.debug("Empty %s buffer: %s", pattern_id.value, exc)
            return self._empty(pattern_id, sample_rate_per_ms)
        offs = np.asarray(list(onsets), dtype=np.int64)
        data = self._render(pattern_id, n_samples, sample_rate_per_ms, offs)
        return SampleBuffer(samples=data, sample_rate_per_ms=sample_rate_per_ms, pattern_id=pattern_id)

    def event_template(self, pattern: PatternLike, sample_rate_per_ms: float = 10.0) -> np.ndarray:
        """One event sampled at ``sample_rate_per_ms`` (a full burst period for CRD)."""
        pattern_id = resolve_pattern(pattern)
        duration = waveforms.event_duration_ms(pattern_id, burst_frequency_hz=self.burst_frequency_hz)
        n = int(math.ceil(duration * sample_rate_per_ms - 1e-9))
        t = np.arange(n, dtype=np.float64) / sample_rate_per_ms
        if pattern_id is PatternId.COMPLEX_REPETITIVE_DISCHARGE:
            return np.asarray(
                waveforms.complex_repetitive_discharge(t, self.burst_frequency_hz), dtype=np.float64
            )
        return np.asarray(waveforms.generate(pattern_id, t), dtype=np.float64)

    # ---- Placement ------------------------------------------------------------

    def _draw_onsets(self, pattern_id: PatternId, n_samples: int, sample_rate_per_ms: float) -> np.ndarray:
        timing = PATTERN_CATALOG[pattern_id].timing
        if isinstance(timing, PoissonLike):
            p_event = timing.probability_per_step(sample_rate_per_ms)
            events = self._rng.random(n_samples) < p_event
            return np.where(events)[0].astype(np.int64)
        if isinstance(timing, UniformRandomInterval):
            total_ms = n_samples / sample_rate_per_ms
            onsets = []
            t_ms = float(self._rng.uniform(timing.min_ms, timing.max_ms))
            while t_ms < total_ms:
                onsets.append(int(t_ms * sample_rate_per_ms))
                t_ms += float(self._rng.uniform(timing.min_ms, timing.max_ms))
            return np.asarray(onsets, dtype=np.int64)
        if isinstance(timing, FixedBurstPeriod):
            period_ms = 1000.0 / self.burst_frequency_hz
            total_ms = n_samples / sample_rate_per_ms
            n_bursts = int(math.ceil(total_ms / period_ms - 1e-9))
            starts = np.arange(n_bursts, dtype=np.float64) * period_ms * sample_rate_per_ms
            return np.round(starts).astype(np.int64)
        if isinstance(timing, SingleContinuousEvent):
            return np.zeros(1 if n_samples else 0, dtype=np.int64)
        raise TypeError(f"unsupported timing model {timing!r}")

    def _render(
        self,
        pattern_id: PatternId,
        n_samples: int,
        sample_rate_per_ms: float,
        onsets: np.ndarray,
    ) -> np.ndarray:
        # Private float64 accumulator; the caller only ever sees the finished trace.
        data = np.zeros(n_samples, dtype=np.float64)
        if n_samples == 0:
            return data

        if pattern_id is PatternId.MYOTONIC:
            total_ms = n_samples / sample_rate_per_ms
            for off in onsets:
                if off < 0 or off >= n_samples:
                    continue
                t = np.arange(n_samples - off, dtype=np.float64) / sample_rate_per_ms
                data[off:] += waveforms.myotonic_discharge(t, total_ms)
            return data

        template = self.event_template(pattern_id, sample_rate_per_ms)
        templ_len = template.shape[0]
        for off in onsets:
            off = int(off)
            if off < 0 or off >= n_samples:
                continue
            end = min(off + templ_len, n_samples)
            data[off:end] += template[: end - off]
        return data

    # ---- Helpers --------------------------------------------------------------

    @staticmethod
    def _checked_sample_count(total_duration_ms: float, sample_rate_per_ms: float) -> int:
        if not (math.isfinite(total_duration_ms) and math.isfinite(sample_rate_per_ms)):
            raise DegenerateDuration("duration and sample rate must be finite")
        if total_duration_ms <= 0:
            raise DegenerateDuration(f"duration must be positive, got {total_duration_ms} ms")
        if sample_rate_per_ms <= 0:
            raise DegenerateDuration(f"sample rate must be positive, got {sample_rate_per_ms}/ms")
        return sample_count(total_duration_ms, sample_rate_per_ms)

    @staticmethod
    def _empty(pattern_id: PatternId, sample_rate_per_ms: float) -> SampleBuffer:
        rate = sample_rate_per_ms if math.isfinite(sample_rate_per_ms) and sample_rate_per_ms > 0 else 10.0
        return SampleBuffer.empty(pattern_id, rate)


__all__ = ["PatternAssembler"]
