"""
Pass-Through Holder - owns at most one ffmpeg child that keeps the HiDock
capture path open while it runs.
"""

from __future__ import annotations

import asyncio
import os
import shutil
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence

from hidock_trigger.core import status
from hidock_trigger.core.asyncio_utils import create_logged_task
from hidock_trigger.core.logging_utils import get_module_logger

ENV_FFMPEG_PATH = "HIDOCK_TRIGGER_FFMPEG"
DEFAULT_FFMPEG_CANDIDATES = (
    Path("/opt/homebrew/bin/ffmpeg"),
    Path("/usr/local/bin/ffmpeg"),
)

SpawnFn = Callable[..., Awaitable[asyncio.subprocess.Process]]
AnnounceFn = Callable[[str], None]


def build_ffmpeg_args(audio_index: int, *, sample_rate: int = 48_000, channels: int = 1) -> list[str]:
    """Arguments that open AVFoundation input ``audio_index`` and discard the audio."""
    return [
        "-loglevel", "error",
        "-f", "avfoundation",
        "-i", f":{audio_index}",
        "-ac", str(channels),
        "-ar", str(sample_rate),
        "-f", "null",
        "-",
    ]


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def find_ffmpeg(explicit: Optional[Path] = None) -> Optional[Path]:
    """Locate ffmpeg: explicit path, env override, Homebrew defaults, then PATH."""
    if explicit is not None:
        return explicit if _is_executable(explicit) else None

    env_path = os.environ.get(ENV_FFMPEG_PATH)
    if env_path:
        path = Path(env_path).expanduser()
        if _is_executable(path):
            return path

    for candidate in DEFAULT_FFMPEG_CANDIDATES:
        if _is_executable(candidate):
            return candidate

    which_path = shutil.which("ffmpeg")
    return Path(which_path) if which_path else None


class PassThroughHolder:
    """Start/stop wrapper around a single pass-through child process."""

    def __init__(
        self,
        *,
        spawn: Optional[SpawnFn] = None,
        announce: Optional[AnnounceFn] = None,
        stop_timeout: float = 2.0,
    ) -> None:
        self.logger = get_module_logger("PassThroughHolder")
        self._spawn = spawn or asyncio.create_subprocess_exec
        self._announce = announce
        self._stop_timeout = stop_timeout
        self._process: Optional[asyncio.subprocess.Process] = None
        self._reapers: set[asyncio.Task] = set()

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    def _say(self, line: str) -> None:
        self.logger.info(line)
        if self._announce:
            self._announce(line)

    def is_running(self) -> bool:
        if self._process is None:
            return False
        if self._process.returncode is not None:
            self.logger.warning(
                "Pass-through process %d exited on its own (code %s)",
                self._process.pid,
                self._process.returncode,
            )
            self._process = None
            return False
        return True

    async def start(self, executable: Path | str, args: Sequence[str]) -> bool:
        """Spawn the child unless one is already held. Never raises."""
        if self.is_running():
            return True

        cmd = [str(executable), *args]
        self.logger.debug("Command: %s", " ".join(cmd))
        try:
            self._process = await self._spawn(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except (OSError, ValueError) as e:
            self.logger.error("Failed to start pass-through: %s", e)
            if self._announce:
                self._announce(f"Failed to start ffmpeg: {e}")
            self._process = None
            return False

        self._say(status.holder_started_line(self._process.pid))
        return True

    def stop(self) -> None:
        """Request termination and release the handle without waiting."""
        process = self._process
        if process is None:
            return

        self._process = None
        self._terminate(process)
        self._say(status.HOLDER_STOPPED_LINE)
        create_logged_task(
            self._reap(process),
            logger=self.logger,
            context=f"reap-ffmpeg-{process.pid}",
            pending=self._reapers,
        )

    async def stop_and_wait(self, timeout: Optional[float] = None) -> None:
        """Terminate and wait for exit, killing the child if it lingers."""
        process = self._process
        if process is not None:
            self._process = None
            self._terminate(process)
            await self._reap(process, timeout)
            self._say(status.HOLDER_STOPPED_LINE)

        if self._reapers:
            await asyncio.gather(*list(self._reapers), return_exceptions=True)

    def _terminate(self, process: asyncio.subprocess.Process) -> None:
        try:
            process.terminate()
        except ProcessLookupError:
            self.logger.debug("Pass-through process %d already gone", process.pid)

    async def _reap(self, process: asyncio.subprocess.Process, timeout: Optional[float] = None) -> None:
        try:
            await asyncio.wait_for(process.wait(), timeout=timeout or self._stop_timeout)
        except asyncio.TimeoutError:
            self.logger.warning("Pass-through process %d did not exit, killing", process.pid)
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()


__all__ = [
    "ENV_FFMPEG_PATH",
    "PassThroughHolder",
    "build_ffmpeg_args",
    "find_ffmpeg",
]
