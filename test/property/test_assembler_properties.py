"""
Property-based tests for PatternAssembler using Hypothesis.

Properties verified:
1. Length: every buffer holds floor(duration * rate) finite samples
2. Superposition: rendering several onsets equals the sum of single renders
3. Reproducibility: equal seeds give identical buffers
"""
from __future__ import annotations

import math

import numpy as np
from hypothesis import given, settings, strategies as st

from core.assembler import PatternAssembler
from shared.models import PatternId

pattern_strategy = st.sampled_from(list(PatternId))
duration_strategy = st.floats(min_value=0.1, max_value=2000.0, allow_nan=False, allow_infinity=False)
rate_strategy = st.floats(min_value=0.5, max_value=20.0, allow_nan=False, allow_infinity=False)


class TestAssemblerProperties:
    @given(pid=pattern_strategy, duration=duration_strategy, rate=rate_strategy, seed=st.integers(0, 2**16))
    @settings(max_examples=60, deadline=None)
    def test_length_and_finiteness(self, pid, duration, rate, seed):
        buf = PatternAssembler(np.random.default_rng(seed)).assemble(pid, duration, rate)
        assert len(buf) == int(math.floor(duration * rate + 1e-9))
        assert np.all(np.isfinite(buf.samples))
        assert not buf.samples.flags.writeable

    @given(
        pid=st.sampled_from([PatternId.NORMAL, PatternId.FIBRILLATION, PatternId.POSITIVE_SHARP_WAVE]),
        onsets=st.lists(st.integers(min_value=0, max_value=499), min_size=1, max_size=8),
    )
    @settings(max_examples=60, deadline=None)
    def test_superposition(self, pid, onsets):
        assembler = PatternAssembler(np.random.default_rng(0))
        combined = assembler.render_events(pid, 50.0, 10.0, onsets).samples.astype(np.float64)
        parts = sum(
            assembler.render_events(pid, 50.0, 10.0, [onset]).samples.astype(np.float64) for onset in onsets
        )
        np.testing.assert_allclose(combined, parts, atol=1e-2)

    @given(pid=pattern_strategy, seed=st.integers(0, 2**16))
    @settings(max_examples=30, deadline=None)
    def test_seed_reproducibility(self, pid, seed):
        a = PatternAssembler(np.random.default_rng(seed)).assemble(pid, 300.0, 5.0)
        b = PatternAssembler(np.random.default_rng(seed)).assemble(pid, 300.0, 5.0)
        np.testing.assert_array_equal(a.samples, b.samples)

    @given(duration=duration_strategy, rate=rate_strategy)
    @settings(max_examples=40, deadline=None)
    def test_crd_never_active_outside_spike_window(self, duration, rate):
        buf = PatternAssembler(np.random.default_rng(0)).assemble("crd", duration, rate)
        t = buf.times_ms()
        in_period = np.mod(t, 25.0)
        # allow one sample of rounding at the burst boundaries
        outside = (in_period > 15.0 + 1.0 / rate) & (in_period < 25.0 - 1.0 / rate)
        assert np.all(buf.samples[outside] == 0.0)
