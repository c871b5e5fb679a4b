"""
Hotplug Resolver - picks the trigger mic after the device list changes.

Notifications arrive in bursts while a dock connects or disconnects, so each
one re-arms a quiet-period timer; resolution runs once the list has been
stable for the whole period.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from hidock_trigger.core.asyncio_utils import create_logged_task
from hidock_trigger.core.events import EventBus, EventType
from hidock_trigger.core.logging_utils import get_module_logger
from hidock_trigger.core.preferences import DevicePreferences, TriggerPreferences
from hidock_trigger.supervisor.supervisor import ProcessSupervisor

DEFAULT_DEBOUNCE = 1.5
BUILTIN_HEURISTIC = "MacBook"


class ResolutionAction(Enum):
    NONE = "none"
    SWITCH_PREFERRED = "switch_preferred"
    FALLBACK = "fallback"
    CLEAR = "clear"


@dataclass(frozen=True)
class Resolution:
    action: ResolutionAction
    device: Optional[str] = None
    reason: str = ""


def pick_fallback(
    current: Sequence[str],
    fallback: Optional[str],
    heuristic: str = BUILTIN_HEURISTIC,
) -> Optional[tuple[str, str]]:
    """(name, reason) for the best remaining device, or None if the list is empty."""
    if fallback and fallback in current:
        return fallback, "configured fallback"
    for name in current:
        if heuristic and heuristic in name:
            return name, "built-in input"
    if current:
        return current[0], "first available"
    return None


def resolve_change(
    previous: Iterable[str],
    current: Sequence[str],
    prefs: DevicePreferences,
    heuristic: str = BUILTIN_HEURISTIC,
) -> Resolution:
    previous_set = set(previous)
    current_list = list(current)
    current_set = set(current_list)
    appeared = current_set - previous_set
    disappeared = previous_set - current_set

    if prefs.preferred and prefs.preferred in appeared and prefs.preferred != prefs.selected:
        return Resolution(ResolutionAction.SWITCH_PREFERRED, prefs.preferred, "preferred mic connected")

    if prefs.selected and prefs.selected in disappeared:
        picked = pick_fallback(current_list, prefs.fallback, heuristic)
        if picked is None:
            return Resolution(ResolutionAction.CLEAR, None, f"'{prefs.selected}' disconnected, no inputs left")
        name, why = picked
        return Resolution(ResolutionAction.FALLBACK, name, f"'{prefs.selected}' disconnected; {why}")

    return Resolution(ResolutionAction.NONE)


class HotplugResolver:

    def __init__(
        self,
        supervisor: ProcessSupervisor,
        preferences: TriggerPreferences,
        *,
        events: Optional[EventBus] = None,
        debounce: float = DEFAULT_DEBOUNCE,
        heuristic: str = BUILTIN_HEURISTIC,
    ) -> None:
        self.logger = get_module_logger("HotplugResolver")
        self.supervisor = supervisor
        self.preferences = preferences
        self.events = events or supervisor.events
        self.debounce = debounce
        self.heuristic = heuristic

        self.previous: Optional[List[str]] = None
        self._pending: Optional[List[str]] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    def set_baseline(self, names: Iterable[str]) -> None:
        self.previous = list(names)

    def notify(self, names: Iterable[str]) -> None:
        """Record the latest device list and restart the quiet-period timer."""
        self._pending = list(names)
        if self.previous is None:
            self.previous = list(self._pending)
            self._pending = None
            return

        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce, self._on_timer)

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending = None

    async def flush(self) -> Optional[Resolution]:
        """Resolve immediately if a notification is waiting."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        return await self._resolve_now()

    async def shutdown(self) -> None:
        self.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _on_timer(self) -> None:
        self._timer = None
        create_logged_task(
            self._resolve_now(),
            logger=self.logger,
            context="hotplug-resolve",
            pending=self._tasks,
        )

    async def _resolve_now(self) -> Optional[Resolution]:
        current = self._pending
        if current is None:
            return None
        self._pending = None

        previous = self.previous or []
        self.previous = current

        resolution = resolve_change(
            previous,
            current,
            self.preferences.device_preferences(),
            self.heuristic,
        )
        if resolution.action is ResolutionAction.NONE:
            self.logger.debug("Device change needs no action")
            return resolution

        self.logger.info("%s: %s", resolution.action.value, resolution.reason)
        await self.apply(resolution)
        return resolution

    async def apply(self, resolution: Resolution) -> None:
        if resolution.action is ResolutionAction.SWITCH_PREFERRED:
            await self.preferences.set_selected_mic_async(resolution.device)
            await self.supervisor.switch_device(resolution.device)
            self.events.emit(
                EventType.PREFERRED_SWITCHED,
                f"Switched to preferred mic: {resolution.device}",
                mic=resolution.device,
            )
        elif resolution.action is ResolutionAction.FALLBACK:
            await self.preferences.set_selected_mic_async(resolution.device)
            await self.supervisor.switch_device(resolution.device)
            self.events.emit(
                EventType.FALLBACK_SELECTED,
                f"Mic disconnected, using {resolution.device}",
                mic=resolution.device,
                reason=resolution.reason,
            )
        elif resolution.action is ResolutionAction.CLEAR:
            await self.preferences.set_selected_mic_async(None)
            await self.supervisor.switch_device(None)
            await self.supervisor.stop()
            self.events.emit(EventType.NO_DEVICE, "No input devices available; monitor stopped")


__all__ = [
    "BUILTIN_HEURISTIC",
    "DEFAULT_DEBOUNCE",
    "HotplugResolver",
    "Resolution",
    "ResolutionAction",
    "pick_fallback",
    "resolve_change",
]
