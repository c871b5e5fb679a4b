"""
Child process as a capability.

The supervisor only needs start / interrupt / terminate / wait from its child,
so any object satisfying ManagedProcess can stand in for a real subprocess.
"""

from __future__ import annotations

import asyncio
import signal
from typing import Awaitable, Callable, Optional, Protocol, Sequence

from hidock_trigger.core.asyncio_utils import create_logged_task
from hidock_trigger.core.errors import LaunchError
from hidock_trigger.core.logging_utils import get_module_logger

OutputCallback = Callable[[str], None]


class ManagedProcess(Protocol):
    pid: Optional[int]

    @property
    def returncode(self) -> Optional[int]:
        ...

    def interrupt(self) -> None:
        ...

    def terminate(self) -> None:
        ...

    def kill(self) -> None:
        ...

    async def wait(self) -> int:
        ...


ProcessLauncher = Callable[[Sequence[str], Optional[OutputCallback]], Awaitable[ManagedProcess]]


class SubprocessHandle:
    """ManagedProcess over ``asyncio.subprocess.Process`` with line-pumped output."""

    def __init__(self, process: asyncio.subprocess.Process, on_output: Optional[OutputCallback] = None) -> None:
        self.logger = get_module_logger(f"Child.{process.pid}")
        self._process = process
        self._on_output = on_output
        self.pid: Optional[int] = process.pid
        self._readers: set[asyncio.Task] = set()

        if process.stdout is not None:
            create_logged_task(
                self._stdout_reader(), logger=self.logger, context=f"stdout-{self.pid}", pending=self._readers
            )
        if process.stderr is not None:
            create_logged_task(
                self._stderr_reader(), logger=self.logger, context=f"stderr-{self.pid}", pending=self._readers
            )

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode

    async def _stdout_reader(self) -> None:
        while True:
            line = await self._process.stdout.readline()
            if not line:
                break
            text = line.decode(errors="replace").strip()
            if not text:
                continue
            self.logger.debug("Monitor output: %s", text)
            if self._on_output:
                try:
                    self._on_output(text)
                except Exception:
                    self.logger.exception("Output callback failed")

    async def _stderr_reader(self) -> None:
        while True:
            line = await self._process.stderr.readline()
            if not line:
                break
            text = line.decode(errors="replace").strip()
            if text:
                self.logger.debug("Monitor stderr: %s", text)

    def _send(self, sig: int) -> None:
        if self._process.returncode is not None:
            return
        try:
            self._process.send_signal(sig)
        except ProcessLookupError:
            self.logger.debug("Process %s already gone", self.pid)

    def interrupt(self) -> None:
        self._send(signal.SIGINT)

    def terminate(self) -> None:
        self._send(signal.SIGTERM)

    def kill(self) -> None:
        self._send(signal.SIGKILL)

    async def wait(self) -> int:
        code = await self._process.wait()
        if self._readers:
            await asyncio.gather(*list(self._readers), return_exceptions=True)
        return code


async def launch_subprocess(cmd: Sequence[str], on_output: Optional[OutputCallback] = None) -> ManagedProcess:
    """Default ProcessLauncher. Raises LaunchError if the spawn fails."""
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except (OSError, ValueError) as e:
        raise LaunchError(f"Failed to start {cmd[0]}: {e}") from e
    return SubprocessHandle(process, on_output)


__all__ = [
    "ManagedProcess",
    "OutputCallback",
    "ProcessLauncher",
    "SubprocessHandle",
    "launch_subprocess",
]
