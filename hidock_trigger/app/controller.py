"""
Headless application layer.

Wires the settings store, device watcher, hotplug resolver and process
supervisor together and exposes the handful of actions a menu-bar front end
needs. Nothing here touches a UI toolkit; front ends subscribe to ``events``.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional

from hidock_trigger.core.events import EventBus
from hidock_trigger.core.logging_utils import get_module_logger
from hidock_trigger.core.preferences import TriggerPreferences
from hidock_trigger.devices.directory import DeviceDirectory
from hidock_trigger.devices.watcher import DeviceWatcher
from hidock_trigger.hotplug.resolver import HotplugResolver
from hidock_trigger.supervisor.locator import MonitorLocator
from hidock_trigger.supervisor.supervisor import ProcessSupervisor


def format_uptime(seconds: float) -> str:
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


class TriggerApp:

    def __init__(
        self,
        preferences: TriggerPreferences,
        *,
        directory: Optional[DeviceDirectory] = None,
        supervisor: Optional[ProcessSupervisor] = None,
        events: Optional[EventBus] = None,
        watch_interval: float = DeviceWatcher.DEFAULT_SCAN_INTERVAL,
        mic_override: Optional[str] = None,
        auto_start: Optional[bool] = None,
    ) -> None:
        self.logger = get_module_logger("TriggerApp")
        self.preferences = preferences
        self.events = events or (supervisor.events if supervisor else EventBus())
        self.directory = directory or DeviceDirectory()
        self.supervisor = supervisor or ProcessSupervisor(MonitorLocator(), events=self.events)
        self.resolver = HotplugResolver(self.supervisor, preferences, events=self.events)
        self.watcher = DeviceWatcher(self.directory, self.resolver.notify, scan_interval=watch_interval)

        self._mic_override = mic_override
        self._auto_start_override = auto_start
        self.launched = False

    # ------------------------------------------------------------------
    # Lifecycle

    async def launch(self) -> None:
        self.supervisor.selected_mic = self._mic_override or self.preferences.selected_mic

        await self.watcher.start()
        self.resolver.set_baseline(self.watcher.known_names)
        self.launched = True

        auto_start = self.preferences.auto_start if self._auto_start_override is None else self._auto_start_override
        if auto_start:
            self.logger.info("Auto-start enabled, starting monitor")
            await self.supervisor.request_start()
        else:
            self.logger.info("Auto-start disabled")

    async def shutdown(self) -> None:
        self.logger.info("Shutting down")
        await self.watcher.stop()
        await self.resolver.shutdown()
        await self.supervisor.shutdown()
        self.launched = False

    # ------------------------------------------------------------------
    # Actions

    async def start(self) -> bool:
        return await self.supervisor.request_start()

    def stop(self) -> Optional[asyncio.Task]:
        return self.supervisor.request_stop()

    async def select_mic(self, name: Optional[str]) -> bool:
        await self.preferences.set_selected_mic_async(name)
        return await self.supervisor.switch_device(name)

    def set_preferred_mic(self, name: Optional[str]) -> bool:
        return self.preferences.set_preferred_mic(name)

    def set_fallback_mic(self, name: Optional[str]) -> bool:
        return self.preferences.set_fallback_mic(name)

    async def toggle_auto_start(self) -> bool:
        enabled = not self.preferences.auto_start
        await self.preferences.set_auto_start_async(enabled)
        self.logger.info("Auto-start %s", "enabled" if enabled else "disabled")
        if enabled:
            await self.supervisor.request_start()
        return enabled

    # ------------------------------------------------------------------
    # Status

    def status_text(self) -> str:
        if self.supervisor.is_running:
            return f"Running (pid {self.supervisor.pid})"
        return "Stopped"

    def uptime_text(self) -> str:
        uptime = self.supervisor.uptime
        if uptime is None:
            return ""
        return f"Uptime: {format_uptime(uptime)}"

    def available_mics(self) -> List[str]:
        return self.directory.input_names()


__all__ = ["TriggerApp", "format_uptime"]
