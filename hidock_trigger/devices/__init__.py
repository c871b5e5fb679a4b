"""Audio input device queries and change notifications."""

from .directory import DeviceDirectory, default_backend
from .types import AudioInputDevice, DeviceBackend
from .watcher import DeviceWatcher

__all__ = [
    "AudioInputDevice",
    "DeviceBackend",
    "DeviceDirectory",
    "DeviceWatcher",
    "default_backend",
]
