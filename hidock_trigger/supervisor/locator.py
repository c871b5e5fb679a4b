"""Locate (or build) the monitor executable."""

from __future__ import annotations

import asyncio
import os
import shutil
import sys
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence

from hidock_trigger.core import paths
from hidock_trigger.core.errors import BuildError
from hidock_trigger.core.logging_utils import get_module_logger

ENV_MONITOR_PATH = "HIDOCK_MIC_TRIGGER_PATH"
DEFAULT_SOURCE_NAME = "MicTrigger.swift"
DEFAULT_BUILD_COMMAND = ("swiftc", DEFAULT_SOURCE_NAME, "-o", paths.MONITOR_BINARY_NAME)

logger = get_module_logger("MonitorLocator")


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


class MonitorLocator:
    """Resolves the command line that starts the monitor.

    Search order:
    1. ``$HIDOCK_MIC_TRIGGER_PATH``
    2. ``hidock-mic-trigger`` on PATH
    3. a built binary in the source directory
    4. building that binary from source, when the source is present
    5. the bundled Python monitor (``python -m hidock_trigger.monitor``)
    """

    def __init__(
        self,
        *,
        source_dir: Path = paths.MONITOR_SOURCE_DIR,
        binary_name: str = paths.MONITOR_BINARY_NAME,
        source_name: str = DEFAULT_SOURCE_NAME,
        build_command: Sequence[str] = DEFAULT_BUILD_COMMAND,
        environ: Optional[Mapping[str, str]] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
        python_fallback: bool = True,
    ) -> None:
        self.source_dir = Path(source_dir)
        self.binary_name = binary_name
        self.source_name = source_name
        self.build_command = list(build_command)
        self._environ = environ if environ is not None else os.environ
        self._which = which
        self.python_fallback = python_fallback

    @property
    def built_binary(self) -> Path:
        return self.source_dir / self.binary_name

    @property
    def source_file(self) -> Path:
        return self.source_dir / self.source_name

    def locate(self) -> Optional[list[str]]:
        """Return an existing executable's command, or None."""
        override = self._environ.get(ENV_MONITOR_PATH, "").strip()
        if override:
            path = Path(override).expanduser()
            if _is_executable(path):
                logger.debug("found monitor via %s: %s", ENV_MONITOR_PATH, path)
                return [str(path)]
            logger.warning("%s set but not executable: %s", ENV_MONITOR_PATH, path)

        which_path = self._which(self.binary_name)
        if which_path:
            logger.debug("found monitor in PATH: %s", which_path)
            return [which_path]

        if _is_executable(self.built_binary):
            logger.debug("found built monitor: %s", self.built_binary)
            return [str(self.built_binary)]

        return None

    async def build(self) -> list[str]:
        """Compile the monitor from source. Raises BuildError on any failure."""
        if not self.source_file.exists():
            raise BuildError(f"Source not found at {self.source_file}")

        logger.info("Building monitor: %s (in %s)", " ".join(self.build_command), self.source_dir)
        try:
            process = await asyncio.create_subprocess_exec(
                *self.build_command,
                cwd=str(self.source_dir),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise BuildError(f"Build process failed to launch: {e}") from e

        _, stderr = await process.communicate()
        if process.returncode != 0:
            err_text = stderr.decode(errors="replace").strip() if stderr else ""
            if err_text:
                logger.error("Build failed:\n%s", err_text)
            raise BuildError(f"Build failed with exit code {process.returncode}")

        if not _is_executable(self.built_binary):
            raise BuildError(f"Build finished but {self.built_binary} is not executable")

        logger.info("Build succeeded: %s", self.built_binary)
        return [str(self.built_binary)]

    async def resolve(self) -> list[str]:
        command = self.locate()
        if command:
            return command

        if self.source_file.exists():
            logger.info("Monitor binary not found, attempting build...")
            return await self.build()

        if self.python_fallback:
            return [sys.executable, "-m", "hidock_trigger.monitor"]

        raise BuildError(
            f"Monitor not found and no source to build from. Expected: {self.built_binary}"
        )


__all__ = ["ENV_MONITOR_PATH", "DEFAULT_BUILD_COMMAND", "MonitorLocator"]
