"""
Device-change notification source.

Polls the Device Directory's input names and reports whenever the set
changes. Each report is one "devices changed" notification; bursts are
debounced by the Hotplug Resolver, not here.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional, Union

from hidock_trigger.core.logging_utils import get_module_logger

from .directory import DeviceDirectory

logger = get_module_logger("DeviceWatcher")

DevicesChangedCallback = Callable[[List[str]], Union[None, Awaitable[None]]]


class DeviceWatcher:

    DEFAULT_SCAN_INTERVAL = 1.0

    def __init__(
        self,
        directory: DeviceDirectory,
        on_change: Optional[DevicesChangedCallback] = None,
        *,
        scan_interval: float = DEFAULT_SCAN_INTERVAL,
    ) -> None:
        self._directory = directory
        self._on_change = on_change
        self._scan_interval = scan_interval

        self._known_names: Optional[List[str]] = None
        self._scan_task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def known_names(self) -> List[str]:
        return list(self._known_names or [])

    async def start(self) -> None:
        if self._running:
            return

        self._running = True

        # Baseline scan; does not count as a change
        self._known_names = await asyncio.to_thread(self._directory.input_names)
        self._scan_task = asyncio.create_task(self._scan_loop())
        logger.info("Device watcher started (%d input devices)", len(self._known_names))

    async def stop(self) -> None:
        if not self._running:
            return

        self._running = False

        if self._scan_task:
            self._scan_task.cancel()
            try:
                await self._scan_task
            except asyncio.CancelledError:
                pass
            self._scan_task = None

        logger.info("Device watcher stopped")

    async def _scan_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self._scan_interval)
                await self.scan()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Error in device scan loop: %s", e)

    async def scan(self) -> bool:
        """Query once; notify and return True if the name set changed."""
        names = await asyncio.to_thread(self._directory.input_names)
        previous = self._known_names
        self._known_names = names

        if previous is not None and set(previous) == set(names):
            return False

        appeared = sorted(set(names) - set(previous or []))
        gone = sorted(set(previous or []) - set(names))
        logger.info("Input devices changed (appeared=%s, disappeared=%s)", appeared, gone)

        if self._on_change:
            result = self._on_change(list(names))
            if asyncio.iscoroutine(result):
                await result
        return True


__all__ = ["DeviceWatcher", "DevicesChangedCallback"]
