"""
Process Supervisor - keeps one monitor child alive.

States:
- STOPPED: no child, nothing scheduled
- STARTING: locating/building the monitor or spawning it
- RUNNING: child alive
- STOPPING: intentional stop requested, waiting for the child to exit
- RESTART_PENDING: child crashed, restart timer armed
- FAILED: build/launch error or retries exhausted; needs a manual start

Every mutation happens on the event loop. Waiting for the child to exit runs
in a background task that only reports back through _watch().
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from hidock_trigger.core.asyncio_utils import create_logged_task
from hidock_trigger.core.errors import BuildError, LaunchError
from hidock_trigger.core.events import EventBus, EventType
from hidock_trigger.core.logging_utils import get_module_logger
from hidock_trigger.core.status import parse_status_line

from .locator import MonitorLocator
from .process import ManagedProcess, ProcessLauncher, launch_subprocess


class SupervisorState(Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    RESTART_PENDING = "restart_pending"
    FAILED = "failed"


@dataclass(frozen=True)
class SupervisorSnapshot:
    state: SupervisorState
    pid: Optional[int]
    selected_mic: Optional[str]
    crash_count: int
    uptime: Optional[float]


class ProcessSupervisor:

    DEFAULT_MAX_RETRIES = 3
    DEFAULT_RESTART_DELAY = 3.0
    DEFAULT_LIVENESS_WINDOW = 10.0
    DEFAULT_STOP_TIMEOUT = 5.0

    def __init__(
        self,
        locator: MonitorLocator,
        *,
        launcher: ProcessLauncher = launch_subprocess,
        events: Optional[EventBus] = None,
        selected_mic: Optional[str] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        restart_delay: float = DEFAULT_RESTART_DELAY,
        liveness_window: float = DEFAULT_LIVENESS_WINDOW,
        stop_timeout: float = DEFAULT_STOP_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.logger = get_module_logger("ProcessSupervisor")
        self.locator = locator
        self.events = events or EventBus()
        self.selected_mic = selected_mic
        self.max_retries = max_retries
        self.restart_delay = restart_delay
        self.liveness_window = liveness_window
        self.stop_timeout = stop_timeout

        self._launcher = launcher
        self._clock = clock

        self.state = SupervisorState.STOPPED
        self.crash_count = 0
        self.last_status_line: Optional[str] = None

        self._process: Optional[ManagedProcess] = None
        self._started_at: Optional[float] = None
        self._intentional_stop = False
        self._desired_running = False

        self._restart_handle: Optional[asyncio.TimerHandle] = None
        self._watch_task: Optional[asyncio.Task] = None
        self._stop_task: Optional[asyncio.Task] = None
        self._tasks: set[asyncio.Task] = set()
        self._switch_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Introspection

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    @property
    def started_at(self) -> Optional[float]:
        return self._started_at

    @property
    def uptime(self) -> Optional[float]:
        if self._started_at is None or not self.is_running:
            return None
        return max(0.0, self._clock() - self._started_at)

    @property
    def restart_pending(self) -> bool:
        return self._restart_handle is not None

    def snapshot(self) -> SupervisorSnapshot:
        return SupervisorSnapshot(
            state=self.state,
            pid=self.pid,
            selected_mic=self.selected_mic,
            crash_count=self.crash_count,
            uptime=self.uptime,
        )

    # ------------------------------------------------------------------
    # Commands

    async def request_start(self) -> bool:
        """Start the monitor if it is not running. Never raises.

        Failures are reported as terminal ERROR events and return False. A
        start requested while an intentional stop is in flight runs once the
        old child has exited.
        """
        stop_task = self._stop_task
        if self.state is SupervisorState.STOPPING and stop_task is not None and not stop_task.done():
            self.logger.info("Stop in progress; starting once the monitor has exited")
            self._desired_running = True
            await asyncio.wait({stop_task})
            if not self._desired_running:
                self.logger.info("Start abandoned; stop requested while waiting")
                return False

        if self.is_running:
            self.logger.debug("Monitor already running (pid %s)", self.pid)
            return True
        if self.state is SupervisorState.STARTING:
            self.logger.debug("Start already in progress")
            return True

        self._cancel_restart()
        self.crash_count = 0
        return await self._start()

    def request_stop(self) -> Optional[asyncio.Task]:
        """Intentionally stop the monitor without blocking.

        Returns the task that completes once the child has exited, or None if
        nothing was running.
        """
        self._desired_running = False
        self.crash_count = 0
        had_restart = self._cancel_restart()

        process = self._process
        if process is None:
            if had_restart or self.state is SupervisorState.FAILED:
                self.state = SupervisorState.STOPPED
                self.events.emit(EventType.STOPPED, "Monitor stopped")
            return None

        if self._intentional_stop and self._stop_task and not self._stop_task.done():
            return self._stop_task

        self.logger.info("Stopping monitor (pid %s)", process.pid)
        self._intentional_stop = True
        self.state = SupervisorState.STOPPING
        process.interrupt()

        self._stop_task = create_logged_task(
            self._await_exit(process, self._watch_task),
            logger=self.logger,
            context=f"stop-monitor-{process.pid}",
            pending=self._tasks,
        )
        return self._stop_task

    async def stop(self) -> None:
        task = self.request_stop()
        if task is not None:
            await task

    async def switch_device(self, name: Optional[str]) -> bool:
        """Select ``name`` and restart the monitor on it if one was running.

        Returns True when a monitor is running on the new device afterwards.
        """
        async with self._switch_lock:
            if name == self.selected_mic:
                return self.is_running

            was_running = self.is_running
            previous = self.selected_mic

            if was_running:
                await self.stop()

            self.selected_mic = name
            self.logger.info("Selected mic: %s -> %s", previous, name)
            self.events.emit(
                EventType.DEVICE_SWITCHED,
                f"Selected mic: {name}" if name else "No mic selected",
                previous=previous,
                mic=name,
            )

            if was_running and name:
                return await self.request_start()
            return False

    async def shutdown(self) -> None:
        await self.stop()
        for task in list(self._tasks):
            if not task.done():
                task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Internals

    def _cancel_restart(self) -> bool:
        if self._restart_handle is None:
            return False
        self._restart_handle.cancel()
        self._restart_handle = None
        self.logger.info("Pending restart cancelled")
        return True

    async def _start(self) -> bool:
        self._desired_running = True
        self.state = SupervisorState.STARTING
        self.events.emit(EventType.STARTING, "Starting monitor", mic=self.selected_mic)

        try:
            command = await self.locator.resolve()
        except BuildError as e:
            return self._fail(str(e))

        if not self._desired_running:
            self.logger.info("Start abandoned; stop requested while locating monitor")
            self.state = SupervisorState.STOPPED
            return False

        cmd = list(command)
        if self.selected_mic:
            cmd += ["--mic", self.selected_mic]

        self.logger.debug("Command: %s", " ".join(cmd))
        try:
            process = await self._launcher(cmd, self._handle_output)
        except LaunchError as e:
            return self._fail(str(e))

        self._process = process
        self._intentional_stop = False
        self._started_at = self._clock()
        self.state = SupervisorState.RUNNING

        self._watch_task = create_logged_task(
            self._watch(process),
            logger=self.logger,
            context=f"watch-monitor-{process.pid}",
            pending=self._tasks,
        )
        self.events.emit(
            EventType.STARTED,
            f"Monitor started (pid {process.pid})",
            pid=process.pid,
            mic=self.selected_mic,
        )
        if not self._desired_running:
            self.request_stop()
        return True

    def _fail(self, message: str) -> bool:
        self.logger.error("Monitor start failed: %s", message)
        self._desired_running = False
        self.state = SupervisorState.FAILED
        self.events.emit(EventType.ERROR, message, terminal=True)
        return False

    def _handle_output(self, line: str) -> None:
        self.last_status_line = line
        event_type = parse_status_line(line)
        if event_type is not None:
            self.events.emit(event_type, line, mic=self.selected_mic)

    async def _await_exit(self, process: ManagedProcess, watch_task: Optional[asyncio.Task]) -> None:
        try:
            await asyncio.wait_for(process.wait(), timeout=self.stop_timeout)
        except asyncio.TimeoutError:
            self.logger.warning("Monitor did not exit after interrupt, terminating...")
            process.terminate()
            try:
                await asyncio.wait_for(process.wait(), timeout=2.0)
            except asyncio.TimeoutError:
                self.logger.error("Monitor did not terminate, killing...")
                process.kill()
                await process.wait()

        if watch_task is not None and not watch_task.done():
            await asyncio.wait({watch_task})

    async def _watch(self, process: ManagedProcess) -> None:
        returncode = await process.wait()

        if process is not self._process:
            self.logger.debug("Ignoring exit of stale process %s", process.pid)
            return

        runtime = self._clock() - self._started_at if self._started_at is not None else 0.0
        intentional = self._intentional_stop
        self._process = None
        self._started_at = None
        self._intentional_stop = False

        if intentional:
            self.logger.info("Monitor exited normally (stop requested)")
            self.crash_count = 0
            self.state = SupervisorState.STOPPED
            self.events.emit(EventType.STOPPED, "Monitor stopped", returncode=returncode)
            return

        if returncode == 0:
            self.logger.info("Monitor exited on its own with code 0")
            self._desired_running = False
            self.state = SupervisorState.STOPPED
            self.events.emit(EventType.STOPPED, "Monitor exited", returncode=returncode)
            return

        self._handle_crash(returncode, runtime)

    def _handle_crash(self, returncode: int, runtime: float) -> None:
        if runtime >= self.liveness_window:
            self.crash_count = 0

        self.logger.error("Monitor crashed with exit code: %s (after %.1fs)", returncode, runtime)
        self.events.emit(
            EventType.CRASHED,
            f"Monitor exited with code {returncode}",
            returncode=returncode,
            runtime=runtime,
        )

        if not self._desired_running:
            self.state = SupervisorState.STOPPED
            return

        if self.crash_count < self.max_retries:
            self.crash_count += 1
            self.state = SupervisorState.RESTART_PENDING
            loop = asyncio.get_running_loop()
            self._restart_handle = loop.call_later(self.restart_delay, self._on_restart_timer)
            self.events.emit(
                EventType.RESTART_SCHEDULED,
                f"Restarting in {self.restart_delay:g}s (attempt {self.crash_count}/{self.max_retries})",
                attempt=self.crash_count,
                delay=self.restart_delay,
            )
            return

        self._desired_running = False
        self.state = SupervisorState.FAILED
        self.events.emit(
            EventType.GAVE_UP,
            f"Monitor crashed {self.crash_count + 1} times in a row; start it manually.",
            terminal=True,
            crash_count=self.crash_count,
        )

    def _on_restart_timer(self) -> None:
        self._restart_handle = None
        if not self._desired_running:
            return
        create_logged_task(
            self._start(),
            logger=self.logger,
            context="restart-monitor",
            pending=self._tasks,
        )


__all__ = ["ProcessSupervisor", "SupervisorSnapshot", "SupervisorState"]
