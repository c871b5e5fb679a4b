"""
Portable device enumeration using sounddevice (PortAudio).

PortAudio has no notion of "in use by another process", so this backend
always reports devices as inactive. It exists so device listing and hotplug
resolution work on hosts without CoreAudio.

PortAudio caches its device list at initialisation, so each listing pass
re-initialises the library to pick up hotplugged devices. Nothing in this
process holds PortAudio streams open.
"""

from __future__ import annotations

from typing import List, Optional

from hidock_trigger.core.logging_utils import get_module_logger

logger = get_module_logger("SoundDeviceBackend")

try:
    import sounddevice as sd
    SOUNDDEVICE_AVAILABLE = True
except (ImportError, OSError) as exc:
    # OSError: the PortAudio shared library is missing
    sd = None
    SOUNDDEVICE_AVAILABLE = False
    logger.warning("sounddevice not available - device enumeration disabled (%s)", exc)


class SoundDeviceBackend:
    """DeviceBackend over ``sounddevice.query_devices``."""

    def __init__(self, *, rescan: bool = True) -> None:
        self.rescan = rescan
        self._warned_inactive = False
        # Refreshed by every device_ids() call, i.e. once per listing pass
        self._snapshot: list = []

    def _query(self) -> list:
        if not SOUNDDEVICE_AVAILABLE:
            return []
        return list(sd.query_devices())

    def _reinitialize(self) -> None:
        try:
            sd._terminate()
            sd._initialize()
        except sd.PortAudioError as e:
            logger.warning("PortAudio re-initialisation failed: %s", e)

    def _info(self, device_id: int) -> dict:
        if device_id >= len(self._snapshot):
            self._snapshot = self._query()
        return self._snapshot[device_id]

    def device_ids(self) -> List[int]:
        if self.rescan and SOUNDDEVICE_AVAILABLE:
            self._reinitialize()
        self._snapshot = self._query()
        return list(range(len(self._snapshot)))

    def get_name(self, device_id: int) -> Optional[str]:
        info = self._info(device_id)
        name = str(info.get("name") or "").strip()
        return name or None

    def has_input(self, device_id: int) -> bool:
        info = self._info(device_id)
        return int(info.get("max_input_channels", 0) or 0) > 0

    def is_active(self, device_id: int) -> bool:
        if not self._warned_inactive:
            logger.warning("In-use state is not available through PortAudio; reporting inactive")
            self._warned_inactive = True
        return False


__all__ = ["SOUNDDEVICE_AVAILABLE", "SoundDeviceBackend"]
