"""Persisted user preferences: auto-start flag and device selection."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional

from .config_manager import ConfigManager, get_config_manager
from .logging_utils import get_module_logger

logger = get_module_logger("Preferences")

AUTO_START_KEY = "autoStartOnLaunch"
SELECTED_MIC_KEY = "selectedMic"
PREFERRED_MIC_KEY = "preferredMic"
FALLBACK_MIC_KEY = "fallbackMic"


@dataclass(slots=True, frozen=True)
class DevicePreferences:
    """User-chosen device names, compared by equality with enumerated names."""

    selected: Optional[str] = None
    preferred: Optional[str] = None
    fallback: Optional[str] = None


class TriggerPreferences:
    """Key/value settings store backed by a single ``key = value`` file."""

    def __init__(
        self,
        config_path: Path,
        *,
        config_manager: Optional[ConfigManager] = None,
        on_change: Optional[Callable[[Dict[str, Any]], None]] = None,
    ) -> None:
        self._config_path = Path(config_path)
        self._manager = config_manager or get_config_manager()
        self._on_change = on_change
        self._cache: Dict[str, str] = {}
        self.reload()

    @property
    def path(self) -> Path:
        return self._config_path

    def reload(self) -> Dict[str, str]:
        self._cache = self._manager.read_config(self._config_path)
        return dict(self._cache)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._cache.get(key, default)

    def _get_name(self, key: str) -> Optional[str]:
        value = (self._cache.get(key) or "").strip()
        return value or None

    def _write(self, updates: Dict[str, Any], remove_keys: Iterable[str] = ()) -> bool:
        remove = set(remove_keys)
        success = self._manager.write_config(self._config_path, updates, remove_keys=remove)
        return self._apply_cache_updates(success, updates, remove)

    async def write_async(self, updates: Dict[str, Any], remove_keys: Iterable[str] = ()) -> bool:
        remove = set(remove_keys)
        success = await self._manager.write_config_async(self._config_path, updates, remove_keys=remove)
        return self._apply_cache_updates(success, updates, remove)

    def _apply_cache_updates(self, success: bool, updates: Dict[str, Any], remove: set[str]) -> bool:
        if not success:
            logger.warning("Could not persist preferences to %s", self._config_path)
            return False

        for key, value in updates.items():
            self._cache[key] = ConfigManager._stringify_value(value)
        for key in remove:
            self._cache.pop(key, None)

        if self._on_change:
            change = dict(updates)
            change.update({key: None for key in remove})
            self._on_change(change)
        return True

    def _set_name(self, key: str, value: Optional[str]) -> bool:
        if value:
            return self._write({key: value})
        return self._write({}, remove_keys=[key])

    async def _set_name_async(self, key: str, value: Optional[str]) -> bool:
        if value:
            return await self.write_async({key: value})
        return await self.write_async({}, remove_keys=[key])

    # ------------------------------------------------------------------
    # Typed accessors

    @property
    def auto_start(self) -> bool:
        return self._manager.get_bool(self._cache, AUTO_START_KEY, default=True)

    def set_auto_start(self, enabled: bool) -> bool:
        return self._write({AUTO_START_KEY: bool(enabled)})

    async def set_auto_start_async(self, enabled: bool) -> bool:
        return await self.write_async({AUTO_START_KEY: bool(enabled)})

    @property
    def selected_mic(self) -> Optional[str]:
        return self._get_name(SELECTED_MIC_KEY)

    def set_selected_mic(self, name: Optional[str]) -> bool:
        return self._set_name(SELECTED_MIC_KEY, name)

    async def set_selected_mic_async(self, name: Optional[str]) -> bool:
        return await self._set_name_async(SELECTED_MIC_KEY, name)

    @property
    def preferred_mic(self) -> Optional[str]:
        return self._get_name(PREFERRED_MIC_KEY)

    def set_preferred_mic(self, name: Optional[str]) -> bool:
        return self._set_name(PREFERRED_MIC_KEY, name)

    @property
    def fallback_mic(self) -> Optional[str]:
        return self._get_name(FALLBACK_MIC_KEY)

    def set_fallback_mic(self, name: Optional[str]) -> bool:
        return self._set_name(FALLBACK_MIC_KEY, name)

    def device_preferences(self) -> DevicePreferences:
        return DevicePreferences(
            selected=self.selected_mic,
            preferred=self.preferred_mic,
            fallback=self.fallback_mic,
        )


__all__ = [
    "AUTO_START_KEY",
    "SELECTED_MIC_KEY",
    "PREFERRED_MIC_KEY",
    "FALLBACK_MIC_KEY",
    "DevicePreferences",
    "TriggerPreferences",
]
