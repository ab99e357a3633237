"""Audio output through miniaudio: mixes scheduled sources into the device stream."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np

from shared.errors import AudioUnavailable

from .output import AudioOutput
from .primitives import ScheduledSource

logger = logging.getLogger(__name__)

try:
    import miniaudio
except ImportError as e:  # pragma: no cover
    miniaudio = None
    _IMPORT_ERR = e


@dataclass
class AudioConfig:
    out_samplerate: int = 44_100   # soundcard output Hz
    out_channels: int = 1          # mono only
    device: Any = None             # device key (id or name); None = default output device
    gain: float = 0.8              # master gain applied after mixing
    buffersize_msec: int = 20      # miniaudio hardware buffer
    max_voices: int = 64           # concurrently sounding sources before drop-oldest


def list_output_devices(list_all: bool = False) -> List[Dict[str, object]]:
    """Return a list of available output devices using miniaudio."""
    if miniaudio is None:
        return []
    devices: List[Dict[str, object]] = []
    try:
        playback_devices = miniaudio.Devices().get_playbacks()
        for idx, dev in enumerate(playback_devices):
            # Handle both object attributes and dict access (miniaudio version differences)
            if isinstance(dev, dict):
                dev_id = dev.get("id", idx)
                dev_name = dev.get("name", f"Device {idx}")
            else:
                dev_id = getattr(dev, "id", idx)
                dev_name = getattr(dev, "name", f"Device {idx}")

            devices.append({"id": dev_id, "label": dev_name, "name": dev_name})

            if not list_all:
                # Just return the first one (default)
                break
    except Exception as exc:
        logger.warning("Failed to list output devices: %s", exc)
        return []
    return devices


def resolve_output_device(key: Any) -> Any:
    """
    Map a stored device key to the miniaudio device id.

    A string key may match a device's ``str(id)`` or its name. ``None`` and
    unknown keys select the default output device; an unknown key is logged.
    Anything else is taken to be a miniaudio id already.
    """
    if key is None or not isinstance(key, str):
        return key
    for dev in list_output_devices(list_all=True):
        if str(dev["id"]) == key or dev["name"] == key:
            return dev["id"]
    logger.warning("Output device %r not found; using the default output device", key)
    return None


@dataclass
class _Voice:
    start_frame: int
    samples: np.ndarray
    label: str


class MiniaudioOutput(AudioOutput):
    """
    Plays ScheduledSources through a miniaudio PlaybackDevice.

    The device pulls frames from a generator; each pull advances the output
    clock and sums every voice overlapping the requested block. Sources
    scheduled in the past start at the current clock instead of being
    truncated.
    """

    def __init__(self, config: AudioConfig = AudioConfig(), *, autostart: bool = True) -> None:
        if miniaudio is None:
            raise AudioUnavailable(f"`miniaudio` is not available: {_IMPORT_ERR!r}")
        self.cfg = config
        self.sample_rate = int(config.out_samplerate)

        self._lock = threading.Lock()
        self._voices: List[_Voice] = []
        self._frame_clock = 0
        self._device: Optional["miniaudio.PlaybackDevice"] = None
        self._closed = False
        if autostart:
            self.open()

    # ---- Lifecycle ------------------------------------------------------------

    def open(self) -> None:
        if self._device is not None:
            return
        try:
            self._device = miniaudio.PlaybackDevice(
                device_id=resolve_output_device(self.cfg.device),
                nchannels=self.cfg.out_channels,
                sample_rate=self.sample_rate,
                output_format=miniaudio.SampleFormat.FLOAT32,
                buffersize_msec=self.cfg.buffersize_msec,
            )
            # Generator must be started (primed) before passing to start()
            gen = self._audio_generator()
            next(gen)
            self._device.start(gen)
        except Exception as exc:
            logger.error("Error starting miniaudio device: %s", exc)
            self._device = None
            raise AudioUnavailable(f"could not open audio output: {exc}") from exc
        self._closed = False
        logger.info("Audio output started: %d Hz, %d ms buffer", self.sample_rate, self.cfg.buffersize_msec)

    def close(self) -> None:
        device = self._device
        self._device = None
        self._closed = True
        with self._lock:
            self._voices.clear()
        if device is not None:
            try:
                if device.running:
                    device.stop()
                device.close()
                logger.info("Audio output closed")
            except Exception as exc:
                logger.warning("Error closing audio output: %s", exc)

    # ---- AudioOutput ----------------------------------------------------------

    @property
    def available(self) -> bool:
        return self._device is not None and not self._closed

    def current_time(self) -> float:
        with self._lock:
            return self._frame_clock / float(self.sample_rate)

    def schedule(self, source: ScheduledSource) -> None:
        if not self.available:
            raise AudioUnavailable("audio output is closed")
        if source.sample_rate != self.sample_rate:
            raise ValueError(
                f"source rendered at {source.sample_rate} Hz, output runs at {self.sample_rate} Hz"
            )
        with self._lock:
            start_frame = max(int(round(source.start_s * self.sample_rate)), self._frame_clock)
            self._voices.append(_Voice(start_frame, source.samples, source.label))
            if len(self._voices) > self.cfg.max_voices:
                # drop-oldest to keep the mix bounded
                dropped = self._voices.pop(0)
                logger.debug("Dropped voice %s (voice limit %d)", dropped.label, self.cfg.max_voices)

    @property
    def active_voices(self) -> int:
        with self._lock:
            return len(self._voices)

    # ---- Mixing ---------------------------------------------------------------

    def render_block(self, n_frames: int) -> np.ndarray:
        """Mix and consume the next ``n_frames`` of output (the device callback body)."""
        out = np.zeros(int(n_frames), dtype=np.float32)
        with self._lock:
            block_start = self._frame_clock
            block_end = block_start + out.size
            remaining: List[_Voice] = []
            for voice in self._voices:
                voice_end = voice.start_frame + voice.samples.size
                if voice.start_frame < block_end and voice_end > block_start:
                    lo = max(block_start, voice.start_frame)
                    hi = min(block_end, voice_end)
                    out[lo - block_start:hi - block_start] += voice.samples[lo - voice.start_frame:hi - voice.start_frame]
                if voice_end > block_end:
                    remaining.append(voice)
            self._voices = remaining
            self._frame_clock = block_end

        if out.size:
            # Very soft limiter to avoid clipping when sources overlap
            peak = float(np.max(np.abs(out)))
            if peak > 1.0:
                out /= peak
        out *= self.cfg.gain
        return out

    def _audio_generator(self):
        """
        Generator that yields audio data for miniaudio.
        """
        required_frames = yield b""  # Initial yield

        while True:
            block = self.render_block(required_frames)
            required_frames = yield block.tobytes()


__all__ = ["AudioConfig", "MiniaudioOutput", "list_output_devices", "resolve_output_device"]
