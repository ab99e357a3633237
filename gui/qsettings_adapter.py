"""QSettings-backed persistence adapter for EngineSettings.

Keeps PySide6 out of the shared module so the engine stays importable on
headless hosts.
"""
from __future__ import annotations

from typing import Any, Optional

from PySide6.QtCore import QSettings

from shared.app_settings import EngineSettingsStore, SettingsPersistence


class QSettingsPersistence(SettingsPersistence):
    """QSettings-backed persistence; pass ``path`` for a portable ini file."""

    def __init__(
        self,
        organization: str = "EMGSound",
        application: str = "EMGSound",
        *,
        path: Optional[str] = None,
    ) -> None:
        if path is not None:
            self._qsettings = QSettings(path, QSettings.Format.IniFormat)
        else:
            self._qsettings = QSettings(organization, application)

    def value(self, key: str, default: Any) -> Any:
        return self._qsettings.value(key, default)

    def set_value(self, key: str, value: Any) -> None:
        self._qsettings.setValue(key, value)

    def remove(self, key: str) -> None:
        self._qsettings.remove(key)

    def sync(self) -> None:
        self._qsettings.sync()


def create_gui_settings_store(path: Optional[str] = None) -> EngineSettingsStore:
    """Factory function to create a settings store with QSettings persistence."""
    return EngineSettingsStore(persistence=QSettingsPersistence(path=path))


__all__ = ["QSettingsPersistence", "create_gui_settings_store"]
