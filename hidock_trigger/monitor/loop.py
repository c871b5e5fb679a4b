"""
Monitor Loop - polls the trigger mic and drives the pass-through holder.

States:
- IDLE: constructed, not yet polling
- POLLING: one tick per poll interval until a shutdown is requested
- STOPPED: holder released, run() returned

A confirmed "active" transition starts the holder; a confirmed "inactive"
transition stops it. On shutdown the holder is stopped and awaited before
run() returns, so a dead monitor never leaves the capture path held open.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Sequence

from hidock_trigger.core import status
from hidock_trigger.core.logging_utils import get_module_logger
from hidock_trigger.devices.directory import DeviceDirectory
from hidock_trigger.devices.types import DeviceId

from .debounce import DebouncedStateTracker
from .holder import PassThroughHolder


class MonitorState(Enum):
    IDLE = "idle"
    POLLING = "polling"
    STOPPED = "stopped"


class MonitorLoop:

    def __init__(
        self,
        directory: DeviceDirectory,
        device_id: DeviceId,
        holder: PassThroughHolder,
        *,
        executable: Path | str,
        pass_through_args: Sequence[str],
        tracker: Optional[DebouncedStateTracker] = None,
        announce: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.logger = get_module_logger("MonitorLoop")
        self._directory = directory
        self._device_id = device_id
        self._holder = holder
        self._executable = executable
        self._args = list(pass_through_args)
        self._tracker = tracker or DebouncedStateTracker()
        self._announce = announce

        self.state = MonitorState.IDLE
        self.shutdown_event = asyncio.Event()

    @property
    def tracker(self) -> DebouncedStateTracker:
        return self._tracker

    @property
    def holder(self) -> PassThroughHolder:
        return self._holder

    def _say(self, line: str) -> None:
        self.logger.info(line)
        if self._announce:
            self._announce(line)

    def request_shutdown(self) -> None:
        """Signal-safe: ask run() to stop after the current tick."""
        if not self.shutdown_event.is_set():
            self.logger.info("Shutdown requested")
            self.shutdown_event.set()

    async def tick(self) -> Optional[bool]:
        raw = self._directory.is_active(self._device_id)
        confirmed = self._tracker.sample(raw)
        if confirmed is True:
            self._say(status.MIC_ACTIVE_LINE)
            await self._holder.start(self._executable, self._args)
        elif confirmed is False:
            self._say(status.MIC_INACTIVE_LINE)
            self._holder.stop()
        return confirmed

    async def run(self) -> None:
        if self._tracker.confirmed_value is None:
            initial = self._directory.is_active(self._device_id)
            self._tracker.sample(initial)
        self._say(status.initial_state_line(bool(self._tracker.confirmed_value)))

        self.state = MonitorState.POLLING
        interval = self._tracker.poll_interval
        try:
            while not self.shutdown_event.is_set():
                await self.tick()
                try:
                    await asyncio.wait_for(self.shutdown_event.wait(), timeout=interval)
                except asyncio.TimeoutError:
                    continue
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        self.shutdown_event.set()
        await self._holder.stop_and_wait()
        self.state = MonitorState.STOPPED
        self.logger.info("Monitor stopped")


__all__ = ["MonitorLoop", "MonitorState"]
