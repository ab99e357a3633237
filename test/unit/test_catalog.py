"""Unit tests for the pattern catalog and pattern identifiers."""
from __future__ import annotations

import dataclasses
import logging

import pytest

from shared.catalog import (
    AUDIO_CHARACTERISTICS,
    PATTERN_CATALOG,
    get_audio_characteristics,
    get_pattern_metadata,
    resolve_pattern,
)
from shared.errors import InvalidPattern, SynthesisError
from shared.models import (
    FixedBurstPeriod,
    PatternId,
    PoissonLike,
    SingleContinuousEvent,
    UniformRandomInterval,
)


class TestCatalogCompleteness:
    def test_every_pattern_has_metadata(self):
        assert set(PATTERN_CATALOG) == set(PatternId)
        for pid in PatternId:
            desc = get_pattern_metadata(pid)
            assert desc.pattern_id is pid
            assert desc.name
            assert desc.duration_label
            assert desc.amplitude_label
            assert desc.firing_label
            assert desc.sound
            assert desc.clinical
            assert desc.nominal_duration_ms > 0
            assert desc.peak_amplitude_uv > 0

    def test_every_pattern_has_audio_characteristics(self):
        assert set(AUDIO_CHARACTERISTICS) == set(PatternId)
        for pid in PatternId:
            info = get_audio_characteristics(pid)
            assert info.sound_description
            assert info.frequency
            assert info.timing
            assert info.clinical_note

    def test_catalog_is_read_only(self):
        with pytest.raises(TypeError):
            PATTERN_CATALOG[PatternId.NORMAL] = PATTERN_CATALOG[PatternId.FIBRILLATION]  # type: ignore[index]
        with pytest.raises(dataclasses.FrozenInstanceError):
            PATTERN_CATALOG[PatternId.NORMAL].name = "changed"  # type: ignore[misc]

    def test_timing_models(self):
        assert isinstance(PATTERN_CATALOG[PatternId.NORMAL].timing, PoissonLike)
        assert isinstance(PATTERN_CATALOG[PatternId.FIBRILLATION].timing, PoissonLike)
        assert isinstance(PATTERN_CATALOG[PatternId.POSITIVE_SHARP_WAVE].timing, PoissonLike)
        assert isinstance(PATTERN_CATALOG[PatternId.FASCICULATION].timing, UniformRandomInterval)
        assert isinstance(PATTERN_CATALOG[PatternId.MYOTONIC].timing, SingleContinuousEvent)
        crd = PATTERN_CATALOG[PatternId.COMPLEX_REPETITIVE_DISCHARGE].timing
        assert isinstance(crd, FixedBurstPeriod)
        assert crd.period_ms == pytest.approx(25.0)
        assert crd.playback_period_ms == pytest.approx(300.0)

    def test_fibrillation_mean_rate_within_clinical_band(self):
        timing = PATTERN_CATALOG[PatternId.FIBRILLATION].timing
        assert 2.0 <= timing.rate_hz <= 20.0

    def test_fasciculation_interval_bounds(self):
        timing = PATTERN_CATALOG[PatternId.FASCICULATION].timing
        assert timing.min_ms == 500.0
        assert timing.max_ms == 3000.0


class TestPatternId:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("normal", PatternId.NORMAL),
            ("crd", PatternId.COMPLEX_REPETITIVE_DISCHARGE),
            ("CRD", PatternId.COMPLEX_REPETITIVE_DISCHARGE),
            ("psw", PatternId.POSITIVE_SHARP_WAVE),
            ("ComplexRepetitiveDischarge", PatternId.COMPLEX_REPETITIVE_DISCHARGE),
            ("POSITIVE_SHARP_WAVE", PatternId.POSITIVE_SHARP_WAVE),
            (" Myotonic ", PatternId.MYOTONIC),
            (PatternId.FIBRILLATION, PatternId.FIBRILLATION),
        ],
    )
    def test_parse_accepts_values_and_names(self, raw, expected):
        assert PatternId.parse(raw) is expected

    def test_parse_rejects_unknown(self):
        with pytest.raises(InvalidPattern):
            PatternId.parse("tremor")
        with pytest.raises(ValueError):
            PatternId.parse("")
        with pytest.raises(SynthesisError):
            PatternId.parse(42)  # type: ignore[arg-type]

    def test_label(self):
        assert PatternId.POSITIVE_SHARP_WAVE.label == "Positive Sharp Wave"


class TestResolvePattern:
    def test_unknown_falls_back_to_normal_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="shared.catalog"):
            assert resolve_pattern("tremor") is PatternId.NORMAL
        assert any("tremor" in rec.getMessage() for rec in caplog.records)

    def test_known_pattern_is_silent(self, caplog):
        with caplog.at_level(logging.WARNING, logger="shared.catalog"):
            assert resolve_pattern("fasciculation") is PatternId.FASCICULATION
        assert not caplog.records

    def test_metadata_lookup_uses_fallback(self):
        assert get_pattern_metadata("unknown").pattern_id is PatternId.NORMAL
