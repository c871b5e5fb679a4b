"""
Device Directory - enumerates audio input endpoints.

Pure query layer over a DeviceBackend. Every call re-queries the backend;
nothing is cached between calls. Device identity is the display name, and
when two devices share a name the first one enumerated wins.
"""

from __future__ import annotations

import sys
from typing import List, Optional

from hidock_trigger.core.logging_utils import get_module_logger

from .types import AudioInputDevice, DeviceBackend, DeviceId

logger = get_module_logger("DeviceDirectory")


def default_backend() -> DeviceBackend:
    """CoreAudio on macOS, sounddevice everywhere else."""
    if sys.platform == "darwin":
        try:
            from .coreaudio import COREAUDIO_AVAILABLE, CoreAudioBackend
        except ImportError as e:
            logger.debug("CoreAudio backend not available: %s", e)
        else:
            if COREAUDIO_AVAILABLE:
                return CoreAudioBackend()

    from .sounddevice_backend import SoundDeviceBackend
    return SoundDeviceBackend()


class DeviceDirectory:
    """Query-only view of the system's audio input devices."""

    def __init__(self, backend: Optional[DeviceBackend] = None) -> None:
        self._backend = backend or default_backend()

    @property
    def backend(self) -> DeviceBackend:
        return self._backend

    def _device_ids(self) -> List[DeviceId]:
        try:
            return list(self._backend.device_ids())
        except Exception as e:
            logger.debug("Device enumeration failed: %s", e)
            return []

    def list_input_devices(self) -> List[AudioInputDevice]:
        """Every input-capable device, freshly queried.

        A device whose name, input or state query fails is left out.
        """
        devices: List[AudioInputDevice] = []
        for device_id in self._device_ids():
            try:
                if not self._backend.has_input(device_id):
                    continue
                name = self._backend.get_name(device_id)
                if not name:
                    continue
                active = bool(self._backend.is_active(device_id))
            except Exception as e:
                logger.debug("Skipping device %s: %s", device_id, e)
                continue
            devices.append(AudioInputDevice(id=device_id, name=name, has_input=True, is_active=active))
        return devices

    def input_names(self) -> List[str]:
        """Input device names in enumeration order, duplicates removed."""
        names: List[str] = []
        for device_id in self._device_ids():
            try:
                if not self._backend.has_input(device_id):
                    continue
                name = self._backend.get_name(device_id)
            except Exception as e:
                logger.debug("Skipping device %s: %s", device_id, e)
                continue
            if name and name not in names:
                names.append(name)
        return names

    def is_active(self, device_id: DeviceId) -> bool:
        """Whether any process has the device in use; False if the query fails."""
        try:
            return bool(self._backend.is_active(device_id))
        except Exception as e:
            logger.debug("Active-state query failed for %s: %s", device_id, e)
            return False

    def resolve_by_name(self, name: str) -> Optional[DeviceId]:
        for device_id in self._device_ids():
            try:
                if not self._backend.has_input(device_id):
                    continue
                if self._backend.get_name(device_id) == name:
                    return device_id
            except Exception as e:
                logger.debug("Skipping device %s: %s", device_id, e)
        return None

    def get_name(self, device_id: DeviceId) -> Optional[str]:
        try:
            return self._backend.get_name(device_id)
        except Exception as e:
            logger.debug("Name query failed for %s: %s", device_id, e)
            return None


__all__ = ["DeviceDirectory", "default_backend"]
