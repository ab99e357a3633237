"""Pattern catalog: the static parameter table for every clinical EMG pattern.

Values follow the usual electrodiagnostic references (Preston & Shapiro,
Dumitru). Numeric fields drive the generators and the schedulers; the label
fields are what the info panels display verbatim.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Mapping

from .errors import InvalidPattern
from .models import (
    AudioCharacteristics,
    FixedBurstPeriod,
    PatternDescriptor,
    PatternId,
    PatternLike,
    PoissonLike,
    SingleContinuousEvent,
    UniformRandomInterval,
)

logger = logging.getLogger(__name__)

CRD_BURST_FREQUENCY_HZ = 40.0
MYOTONIC_EVENT_MS = 500.0


_DESCRIPTORS = {
    PatternId.NORMAL: PatternDescriptor(
        pattern_id=PatternId.NORMAL,
        name="Normal Motor Unit",
        event_duration_ms=12.0,
        duration_label="8-15ms",
        peak_amplitude_uv=800.0,
        amplitude_label="200-2000μV",
        frequency_hz=(50.0, 150.0),
        firing_label="5-30Hz",
        timing=PoissonLike(min_gap_ms=50.0, max_gap_ms=150.0),
        sound="Clean pops",
        clinical="Normal voluntary recruitment",
    ),
    PatternId.FIBRILLATION: PatternDescriptor(
        pattern_id=PatternId.FIBRILLATION,
        name="Fibrillation Potential",
        event_duration_ms=2.0,
        duration_label="1-5ms",
        peak_amplitude_uv=150.0,
        amplitude_label="50-300μV",
        frequency_hz=(200.0, 1000.0),
        firing_label="Irregular 2-20Hz",
        timing=PoissonLike(min_gap_ms=70.0, max_gap_ms=200.0),
        sound="Rain on tin roof",
        clinical="Active denervation - seen in radiculopathies, neuropathies, myopathies",
    ),
    PatternId.FASCICULATION: PatternDescriptor(
        pattern_id=PatternId.FASCICULATION,
        name="Fasciculation Potential",
        event_duration_ms=12.0,
        duration_label="8-15ms (MUAP-like)",
        peak_amplitude_uv=800.0,
        amplitude_label="200-2000μV",
        frequency_hz=80.0,
        firing_label="Random, 0.5-5s apart",
        timing=UniformRandomInterval(min_ms=500.0, max_ms=3000.0),
        sound="Popcorn popping",
        clinical="Can be benign or pathologic (ALS, radiculopathy, metabolic)",
    ),
    PatternId.MYOTONIC: PatternDescriptor(
        pattern_id=PatternId.MYOTONIC,
        name="Myotonic Discharge",
        event_duration_ms=(100.0, 1000.0),
        duration_label="100-1000ms",
        peak_amplitude_uv=200.0,
        amplitude_label="Waxing-waning",
        frequency_hz=(20.0, 150.0),
        firing_label="20-150Hz sweep",
        timing=SingleContinuousEvent(duration_ms=MYOTONIC_EVENT_MS, gap_ms=100.0),
        sound="Dive bomber airplane",
        clinical="Myotonic dystrophy, myotonia congenita, paramyotonia",
    ),
    PatternId.COMPLEX_REPETITIVE_DISCHARGE: PatternDescriptor(
        pattern_id=PatternId.COMPLEX_REPETITIVE_DISCHARGE,
        name="Complex Repetitive Discharge",
        event_duration_ms=15.0,
        duration_label="10-20ms per spike",
        peak_amplitude_uv=300.0,
        amplitude_label="100-1000μV",
        frequency_hz=CRD_BURST_FREQUENCY_HZ,
        firing_label="Regular 20-50Hz",
        timing=FixedBurstPeriod(
            period_ms=1000.0 / CRD_BURST_FREQUENCY_HZ,
            spike_window_ms=15.0,
            playback_period_ms=300.0,
        ),
        sound="Machine gun / jackhammer",
        clinical="Chronic denervation, various myopathies, rare normal",
    ),
    PatternId.POSITIVE_SHARP_WAVE: PatternDescriptor(
        pattern_id=PatternId.POSITIVE_SHARP_WAVE,
        name="Positive Sharp Wave",
        event_duration_ms=20.0,
        duration_label="10-30ms",
        peak_amplitude_uv=400.0,
        amplitude_label="50-1000μV",
        frequency_hz=(100.0, 400.0),
        firing_label="Irregular 2-20Hz",
        timing=PoissonLike(min_gap_ms=70.0, max_gap_ms=200.0),
        sound="Dull pops, often mixed with fibrillations",
        clinical="Active denervation - usually accompanies fibrillation potentials",
    ),
}

_AUDIO = {
    PatternId.NORMAL: AudioCharacteristics(
        sound_description="Clean pops - voluntary muscle activation",
        frequency="50-150Hz dominant",
        timing="Regular when voluntarily recruited",
        clinical_note="Normal motor unit firing",
    ),
    PatternId.FIBRILLATION: AudioCharacteristics(
        sound_description="Rain on tin roof - short, crisp, irregular clicks",
        frequency="Brief transients (1-5ms)",
        timing="Irregular 2-20Hz",
        clinical_note="Active denervation marker",
    ),
    PatternId.FASCICULATION: AudioCharacteristics(
        sound_description="Popcorn popping - intermittent random pops",
        frequency="Similar to normal MUAP",
        timing="Random, 0.5-3 seconds apart",
        clinical_note="Can be benign or pathologic",
    ),
    PatternId.MYOTONIC: AudioCharacteristics(
        sound_description="Dive bomber airplane - high to low frequency sweep",
        frequency="1500Hz → 200Hz sweep",
        timing="Continuous 0.5-1 second duration",
        clinical_note="Pathognomonic for myotonia",
    ),
    PatternId.COMPLEX_REPETITIVE_DISCHARGE: AudioCharacteristics(
        sound_description="Machine gun / jackhammer - very regular mechanical rhythm",
        frequency="150-300Hz with harmonics",
        timing="Regular bursts at 20-50Hz",
        clinical_note="Chronic denervation/reinnervation",
    ),
    PatternId.POSITIVE_SHARP_WAVE: AudioCharacteristics(
        sound_description="Dull thud - sharper onset than fibrillation clicks",
        frequency="400Hz → 100Hz transient",
        timing="Irregular 2-20Hz",
        clinical_note="Active denervation marker",
    ),
}

PATTERN_CATALOG: Mapping[PatternId, PatternDescriptor] = MappingProxyType(_DESCRIPTORS)
AUDIO_CHARACTERISTICS: Mapping[PatternId, AudioCharacteristics] = MappingProxyType(_AUDIO)


def resolve_pattern(pattern: PatternLike) -> PatternId:
    """Lenient lookup used at the engine boundary.

    Unknown identifiers fall back to ``PatternId.NORMAL`` and log a warning;
    use ``PatternId.parse`` when an error is preferred.
    """
    try:
        return PatternId.parse(pattern)
    except InvalidPattern as exc:
        logger.warning("%s; falling back to %s", exc, PatternId.NORMAL.value)
        return PatternId.NORMAL


def get_pattern_metadata(pattern: PatternLike) -> PatternDescriptor:
    return PATTERN_CATALOG[resolve_pattern(pattern)]


def get_audio_characteristics(pattern: PatternLike) -> AudioCharacteristics:
    return AUDIO_CHARACTERISTICS[resolve_pattern(pattern)]


__all__ = [
    "AUDIO_CHARACTERISTICS",
    "CRD_BURST_FREQUENCY_HZ",
    "MYOTONIC_EVENT_MS",
    "PATTERN_CATALOG",
    "get_audio_characteristics",
    "get_pattern_metadata",
    "resolve_pattern",
]
