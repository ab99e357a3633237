"""Error taxonomy for the synthesis engine.

Synthesis failures are local and recoverable: an unknown pattern can fall back
to the normal motor unit, a missing audio device degrades to visual-only
operation, and a degenerate duration yields an empty trace.
"""

from __future__ import annotations


class SynthesisError(Exception):
    """Base class for engine errors."""


class InvalidPattern(SynthesisError, ValueError):
    """A pattern identifier outside the closed catalog."""


class AudioUnavailable(SynthesisError, RuntimeError):
    """The host has no usable audio output."""


class DegenerateDuration(SynthesisError, ValueError):
    """A zero, negative or non-finite duration or sample rate."""


__all__ = ["AudioUnavailable", "DegenerateDuration", "InvalidPattern", "SynthesisError"]
