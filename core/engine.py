"""Headless facade: pattern catalog, display buffers and live playback behind one object."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from audio.output import AudioOutput, NullAudioOutput
from audio.synthesizer import AudioEventSynthesizer
from shared import catalog
from shared.app_settings import EngineSettings, EngineSettingsStore
from shared.errors import AudioUnavailable
from shared.models import AudioCharacteristics, PatternDescriptor, PatternLike, SampleBuffer

from .assembler import PatternAssembler
from .playback import ContinuousPlaybackScheduler, PlaybackHandle
from .timers import ThreadedTimerScheduler, TimerScheduler


class EmgSoundEngine:
    """
    Facade over the catalog, the display-buffer assembler and live playback.

    Owns exactly one audio output and one timer scheduler. Both are injected so a
    GUI host can hand over a Qt scheduler and tests can use spies; when omitted
    the engine is visual only (``NullAudioOutput``) on a background timer thread.
    """

    def __init__(
        self,
        *,
        audio_output: Optional[AudioOutput] = None,
        scheduler: Optional[TimerScheduler] = None,
        rng: Optional[np.random.Generator] = None,
        settings_store: Optional[EngineSettingsStore] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self.settings_store = settings_store if settings_store is not None else EngineSettingsStore()
        settings = self.settings_store.get()
        self._rng = rng if rng is not None else np.random.default_rng()
        self.audio_output = audio_output if audio_output is not None else NullAudioOutput(settings.audio_sample_rate)
        self.timers = scheduler if scheduler is not None else ThreadedTimerScheduler()
        self.assembler = self._make_assembler(settings)
        self.synthesizer = AudioEventSynthesizer(self.audio_output, rng=self._rng)
        self.playback = ContinuousPlaybackScheduler(self.synthesizer, self.timers, rng=self._rng)
        self._closed = False
        self._unsubscribe = self.settings_store.subscribe(self._on_settings_changed, replay=False)

    @classmethod
    def create_default(
        cls,
        settings_store: Optional[EngineSettingsStore] = None,
        *,
        rng: Optional[np.random.Generator] = None,
    ) -> "EmgSoundEngine":
        """Open the default (or configured) miniaudio device; fall back to visual only."""
        from audio.player import AudioConfig, MiniaudioOutput

        store = settings_store if settings_store is not None else EngineSettingsStore()
        settings = store.get()
        config = AudioConfig(
            out_samplerate=settings.audio_sample_rate,
            device=settings.output_device_key,
            gain=settings.output_gain,
            buffersize_msec=settings.output_buffer_ms,
        )
        try:
            output: AudioOutput = MiniaudioOutput(config)
        except AudioUnavailable as exc:
            logging.getLogger(__name__).warning("Audio output unavailable, running visual only: %s", exc)
            output = NullAudioOutput(settings.audio_sample_rate, reason=str(exc))
        return cls(audio_output=output, scheduler=ThreadedTimerScheduler(), rng=rng, settings_store=store)

    # ---- Display buffers ------------------------------------------------------

    def generate_pattern(
        self,
        pattern_id: PatternLike,
        total_duration_ms: Optional[float] = None,
        sample_rate_per_ms: Optional[float] = None,
    ) -> SampleBuffer:
        """Assemble a finite display buffer; degenerate durations give an empty buffer."""
        settings = self.settings_store.get()
        if total_duration_ms is None:
            total_duration_ms = settings.default_display_ms
        if sample_rate_per_ms is None:
            sample_rate_per_ms = settings.display_sample_rate_per_ms
        return self.assembler.assemble(pattern_id, total_duration_ms, sample_rate_per_ms)

    # ---- Metadata -------------------------------------------------------------

    def get_pattern_metadata(self, pattern_id: PatternLike) -> PatternDescriptor:
        return catalog.get_pattern_metadata(pattern_id)

    def get_audio_characteristics(self, pattern_id: PatternLike) -> AudioCharacteristics:
        return catalog.get_audio_characteristics(pattern_id)

    # ---- Live playback --------------------------------------------------------

    def start_pattern(
        self,
        pattern_id: PatternLike,
        total_duration_ms: Optional[float] = None,
        volume: Optional[float] = None,
    ) -> PlaybackHandle:
        """Start continuous playback; returns an already-stopped handle when audio is unavailable."""
        if self._closed:
            self.logger.warning("start_pattern called after shutdown; ignoring")
            return PlaybackHandle.inert(catalog.resolve_pattern(pattern_id))
        if volume is None:
            volume = self.settings_store.get().default_volume
        return self.playback.start(pattern_id, total_duration_ms, volume)

    def stop_all(self) -> None:
        self.playback.stop_all()

    @property
    def audio_available(self) -> bool:
        return self.audio_output.available

    # ---- Lifecycle ------------------------------------------------------------

    def shutdown(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._unsubscribe()
        self.stop_all()
        self.timers.close()
        self.audio_output.close()
        self.logger.info("EMG sound engine shut down")

    def __enter__(self) -> "EmgSoundEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    # ---- Settings -------------------------------------------------------------

    def _make_assembler(self, settings: EngineSettings) -> PatternAssembler:
        return PatternAssembler(
            self._rng,
            burst_frequency_hz=settings.crd_burst_frequency_hz,
            baseline_noise_uv=settings.baseline_noise_uv,
        )

    def _on_settings_changed(self, settings: EngineSettings) -> None:
        self.assembler = self._make_assembler(settings)
        self.logger.debug("Engine settings updated: %s", settings)


__all__ = ["EmgSoundEngine"]
