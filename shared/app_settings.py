from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, fields, replace
from typing import Any, Callable, Dict, Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineSettings:
    default_volume: Optional[float] = None  # None keeps each pattern's own level
    display_sample_rate_per_ms: float = 10.0
    default_display_ms: float = 1000.0
    audio_sample_rate: int = 44_100
    output_device_key: Optional[str] = None
    output_gain: float = 0.8
    output_buffer_ms: int = 20
    crd_burst_frequency_hz: float = 40.0
    baseline_noise_uv: float = 0.0

    def __post_init__(self) -> None:
        if self.default_volume is not None and not 0.0 <= self.default_volume <= 1.0:
            raise ValueError("default_volume must be within [0, 1]")
        if self.display_sample_rate_per_ms <= 0:
            raise ValueError("display_sample_rate_per_ms must be positive")
        if self.audio_sample_rate <= 0:
            raise ValueError("audio_sample_rate must be positive")
        if self.crd_burst_frequency_hz <= 0:
            raise ValueError("crd_burst_frequency_hz must be positive")


class SettingsPersistence(Protocol):
    def value(self, key: str, default: Any) -> Any: ...

    def set_value(self, key: str, value: Any) -> None: ...

    def remove(self, key: str) -> None: ...


class InMemoryPersistence:
    """Dictionary-backed persistence for headless runs and tests."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._values: Dict[str, Any] = dict(initial or {})

    def value(self, key: str, default: Any) -> Any:
        return self._values.get(key, default)

    def set_value(self, key: str, value: Any) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


def _coerce(raw: Any, default: Any, kind: type) -> Any:
    # QSettings hands back strings for ini-backed values.
    if raw is None:
        return default
    try:
        if kind is bool:
            return bool(int(raw)) if isinstance(raw, str) else bool(raw)
        return kind(raw)
    except (TypeError, ValueError):
        return default


_FIELD_TYPES: Dict[str, type] = {
    "default_volume": float,
    "display_sample_rate_per_ms": float,
    "default_display_ms": float,
    "audio_sample_rate": int,
    "output_device_key": str,
    "output_gain": float,
    "output_buffer_ms": int,
    "crd_burst_frequency_hz": float,
    "baseline_noise_uv": float,
}


class EngineSettingsStore:
    """Thread-safe persistent settings store for engine-wide preferences."""

    def __init__(self, persistence: Optional[SettingsPersistence] = None) -> None:
        self._lock = threading.Lock()
        self._subscribers: Dict[int, Callable[[EngineSettings], None]] = {}
        self._next_token = 0
        self._persistence: SettingsPersistence = persistence if persistence is not None else InMemoryPersistence()
        self._settings = self._load_settings()

    def _load_settings(self) -> EngineSettings:
        defaults = EngineSettings()
        values: Dict[str, Any] = {}
        for f in fields(EngineSettings):
            default = getattr(defaults, f.name)
            raw = self._persistence.value(f.name, default)
            values[f.name] = _coerce(raw, default, _FIELD_TYPES[f.name])
        try:
            return EngineSettings(**values)
        except ValueError as exc:
            logger.warning("Ignoring persisted engine settings: %s", exc)
            return defaults

    def get(self) -> EngineSettings:
        with self._lock:
            return self._settings

    def update(self, **kwargs) -> EngineSettings:
        with self._lock:
            new_settings = replace(self._settings, **kwargs)
            self._settings = new_settings
            callbacks = list(self._subscribers.values())
            self._persist(new_settings)
        for callback in callbacks:
            try:
                callback(new_settings)
            except Exception as exc:
                logger.debug("Engine settings subscriber callback failed: %s", exc)
                continue
        return new_settings

    def subscribe(self, callback: Callable[[EngineSettings], None], *, replay: bool = True) -> Callable[[], None]:
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._subscribers[token] = callback
            snapshot = self._settings
        if replay:
            callback(snapshot)

        def unsubscribe() -> None:
            with self._lock:
                self._subscribers.pop(token, None)

        return unsubscribe

    def _persist(self, settings: EngineSettings) -> None:
        for f in fields(EngineSettings):
            value = getattr(settings, f.name)
            if value is None:
                self._persistence.remove(f.name)
            else:
                self._persistence.set_value(f.name, value)


__all__ = [
    "EngineSettings",
    "EngineSettingsStore",
    "InMemoryPersistence",
    "SettingsPersistence",
]
