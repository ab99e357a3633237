"""
Unit tests for PatternAssembler.

The assembler is driven by a seeded numpy Generator so event placement is
reproducible; statistical checks average over several seeds.
"""
from __future__ import annotations

import math

import numpy as np
import pytest

from core import waveforms
from core.assembler import PatternAssembler
from shared.models import PatternId, SampleBuffer


def make_assembler(seed: int = 0, **kwargs) -> PatternAssembler:
    return PatternAssembler(np.random.default_rng(seed), **kwargs)


class TestBufferShape:
    @pytest.mark.parametrize("pid", list(PatternId))
    def test_sample_count_is_floor_of_duration_times_rate(self, pid):
        buf = make_assembler().assemble(pid, 1000.0, 10.0)
        assert isinstance(buf, SampleBuffer)
        assert len(buf) == 10_000
        assert buf.samples.dtype == np.float32
        assert buf.pattern_id is pid

    def test_fractional_products(self):
        assembler = make_assembler()
        assert len(assembler.assemble("normal", 0.7, 10.0)) == 7
        assert len(assembler.assemble("normal", 12.34, 2.5)) == 30

    @pytest.mark.parametrize(
        "duration, rate",
        [(0.0, 10.0), (-5.0, 10.0), (100.0, 0.0), (math.nan, 10.0), (math.inf, 10.0), (100.0, -1.0)],
    )
    def test_degenerate_inputs_give_empty_buffer(self, duration, rate):
        buf = make_assembler().assemble("fibrillation", duration, rate)
        assert len(buf) == 0
        assert buf.duration_ms == 0.0

    def test_buffer_is_read_only(self):
        buf = make_assembler().assemble("normal", 100.0, 10.0)
        with pytest.raises(ValueError):
            buf.samples[0] = 1.0

    def test_unknown_pattern_falls_back_to_normal(self):
        buf = make_assembler().assemble("tremor", 100.0, 10.0)
        assert buf.pattern_id is PatternId.NORMAL


class TestMyotonic:
    def test_single_discharge_spans_buffer(self):
        buf = make_assembler().assemble("myotonic", 500.0, 10.0)
        assert len(buf) == 5000
        assert abs(buf.samples[0]) < 2.0
        assert abs(buf.samples[-1]) < 2.0
        assert np.max(np.abs(buf.samples)) > 150.0

    def test_frequency_falls_over_buffer(self):
        samples = make_assembler().assemble("myotonic", 500.0, 10.0).samples.astype(np.float64)

        def crossings(seg: np.ndarray) -> int:
            s = np.sign(seg)
            s = s[s != 0]
            return int(np.count_nonzero(np.diff(s)))

        assert crossings(samples[100:600]) > crossings(samples[4250:4750])

    def test_deterministic(self):
        a = make_assembler(1).assemble("myotonic", 500.0, 10.0)
        b = make_assembler(99).assemble("myotonic", 500.0, 10.0)
        np.testing.assert_array_equal(a.samples, b.samples)


class TestComplexRepetitiveDischarge:
    def test_one_active_window_per_period(self):
        rate = 10.0
        buf = make_assembler().assemble("crd", 1000.0, rate)
        period = int(round(25.0 * rate))
        window = int(round(15.0 * rate))
        assert len(buf) == 40 * period
        for k in range(40):
            seg = buf.samples[k * period:(k + 1) * period]
            active = np.flatnonzero(np.abs(seg) > 1e-3)
            assert active.size > 0, f"period {k} is silent"
            assert active.max() <= window, f"period {k} active past the spike window"

    def test_burst_frequency_is_configurable(self):
        buf = make_assembler(burst_frequency_hz=20.0).assemble("crd", 1000.0, 10.0)
        onsets = make_assembler(burst_frequency_hz=20.0).event_onsets("crd", 1000.0, 10.0)
        assert onsets.tolist() == [k * 500 for k in range(20)]
        # silent between the 15 ms window and the next 50 ms burst
        assert np.all(buf.samples[160:490] == 0.0)


class TestFibrillation:
    def test_mean_rate_within_clinical_band(self):
        counts = [
            make_assembler(seed).event_onsets("fibrillation", 1000.0, 10.0).size
            for seed in range(20)
        ]
        mean_rate_hz = float(np.mean(counts))
        assert 2.0 <= mean_rate_hz <= 20.0

    def test_density_independent_of_sample_rate(self):
        coarse = np.mean([make_assembler(s).event_onsets("fibrillation", 10_000.0, 2.0).size for s in range(5)])
        fine = np.mean([make_assembler(s).event_onsets("fibrillation", 10_000.0, 20.0).size for s in range(5)])
        assert coarse == pytest.approx(fine, rel=0.25)

    def test_seed_reproduces_buffer(self):
        a = make_assembler(7).assemble("fibrillation", 1000.0, 10.0)
        b = make_assembler(7).assemble("fibrillation", 1000.0, 10.0)
        np.testing.assert_array_equal(a.samples, b.samples)


class TestFasciculation:
    def test_gaps_between_half_and_three_seconds(self):
        for seed in range(10):
            onsets = make_assembler(seed).event_onsets("fasciculation", 20_000.0, 10.0)
            assert onsets.size >= 1
            gaps_ms = np.diff(onsets) / 10.0
            assert np.all(gaps_ms >= 500.0 - 0.2)
            assert np.all(gaps_ms <= 3000.0 + 0.2)
            assert onsets[0] >= 5000


class TestSuperposition:
    def test_coincident_events_sum_exactly(self):
        assembler = make_assembler()
        single = assembler.render_events("normal", 50.0, 10.0, [100])
        double = assembler.render_events("normal", 50.0, 10.0, [100, 100])
        np.testing.assert_array_equal(double.samples, 2.0 * single.samples)
        assert np.min(double.samples) == pytest.approx(-1600.0, rel=1e-6)

    def test_partial_overlap_is_sum_of_parts(self):
        assembler = make_assembler()
        a = assembler.render_events("normal", 50.0, 10.0, [100]).samples.astype(np.float64)
        b = assembler.render_events("normal", 50.0, 10.0, [160]).samples.astype(np.float64)
        both = assembler.render_events("normal", 50.0, 10.0, [100, 160]).samples.astype(np.float64)
        np.testing.assert_allclose(both, a + b, atol=1e-3)

    def test_event_truncated_at_buffer_end(self):
        assembler = make_assembler()
        buf = assembler.render_events("psw", 10.0, 10.0, [95])
        template = assembler.event_template("psw", 10.0)
        np.testing.assert_allclose(buf.samples[95:], template[:5], rtol=1e-6)
        assert np.all(buf.samples[:95] == 0.0)

    def test_out_of_range_onsets_ignored(self):
        buf = make_assembler().render_events("normal", 10.0, 10.0, [-5, 100, 1000])
        assert np.all(buf.samples == 0.0)


class TestEventTemplate:
    def test_template_matches_generator(self):
        template = make_assembler().event_template("normal", 10.0)
        assert template.size == 120
        t = np.arange(120) / 10.0
        np.testing.assert_allclose(template, waveforms.normal_muap(t))


class TestBaselineNoise:
    def test_noise_bounded(self):
        buf = make_assembler(baseline_noise_uv=10.0).assemble("fasciculation", 400.0, 10.0)
        # no fasciculation fits before 500 ms; the trace is pure baseline
        assert np.max(np.abs(buf.samples)) <= 5.0 + 1e-6
        assert np.any(buf.samples != 0.0)
