"""Device records and the backend capability interface."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Optional, Protocol, Sequence, runtime_checkable

DeviceId = Hashable


@dataclass(frozen=True)
class AudioInputDevice:
    """One enumerated audio endpoint. Re-queried on every listing."""
    id: DeviceId
    name: str
    has_input: bool
    is_active: bool


@runtime_checkable
class DeviceBackend(Protocol):
    """Platform query layer behind the Device Directory.

    Methods may raise on query failure; the directory treats a failure as
    "device absent" (listing) or "inactive" (state query).
    """

    def device_ids(self) -> Sequence[DeviceId]:
        ...

    def get_name(self, device_id: DeviceId) -> Optional[str]:
        ...

    def has_input(self, device_id: DeviceId) -> bool:
        ...

    def is_active(self, device_id: DeviceId) -> bool:
        ...


__all__ = ["AudioInputDevice", "DeviceBackend", "DeviceId"]
