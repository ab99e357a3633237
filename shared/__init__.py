"""
Shared data structures available to the engine, the audio layer and any GUI host.
"""

from .catalog import AUDIO_CHARACTERISTICS, PATTERN_CATALOG, get_audio_characteristics, get_pattern_metadata, resolve_pattern
from .errors import AudioUnavailable, DegenerateDuration, InvalidPattern, SynthesisError
from .models import AudioCharacteristics, PatternDescriptor, PatternId, SampleBuffer

__all__ = [
    "AUDIO_CHARACTERISTICS",
    "AudioCharacteristics",
    "AudioUnavailable",
    "DegenerateDuration",
    "InvalidPattern",
    "PATTERN_CATALOG",
    "PatternDescriptor",
    "PatternId",
    "SampleBuffer",
    "SynthesisError",
    "get_audio_characteristics",
    "get_pattern_metadata",
    "resolve_pattern",
]
