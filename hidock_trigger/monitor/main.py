"""Monitor process entry point (``hidock-mic-trigger``).

Exit codes: 0 on clean shutdown or after ``--list-inputs``; 1 when ffmpeg is
missing or the trigger mic cannot be found.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Optional

from hidock_trigger.cli.common import install_exception_handlers, install_signal_handlers, setup_logging
from hidock_trigger.core import status
from hidock_trigger.core.errors import ConfigurationError
from hidock_trigger.core.logging_utils import get_module_logger
from hidock_trigger.devices.directory import DeviceDirectory
from hidock_trigger.devices.types import DeviceId

from .debounce import DebouncedStateTracker
from .holder import PassThroughHolder, build_ffmpeg_args, find_ffmpeg
from .loop import MonitorLoop
from .settings import MonitorSettings, parse_cli_args

logger = get_module_logger("Monitor")


def emit_line(line: str) -> None:
    """Status lines go to stdout, flushed so a supervising pipe sees them at once."""
    print(line, flush=True)


def list_inputs(directory: DeviceDirectory) -> None:
    for name in directory.input_names():
        emit_line(name)


def resolve_configuration(settings: MonitorSettings, directory: DeviceDirectory) -> tuple[Path, DeviceId]:
    ffmpeg = find_ffmpeg(settings.ffmpeg)
    if ffmpeg is None:
        where = settings.ffmpeg or "the default locations or PATH"
        raise ConfigurationError(f"ffmpeg not found at {where}. Pass --ffmpeg or set $HIDOCK_TRIGGER_FFMPEG.")

    device_id = directory.resolve_by_name(settings.mic)
    if device_id is None:
        raise ConfigurationError(
            f"Could not find USB mic input device named '{settings.mic}'. Check the name."
        )
    return ffmpeg, device_id


async def main(
    argv: Optional[list[str]] = None,
    *,
    directory: Optional[DeviceDirectory] = None,
    holder: Optional[PassThroughHolder] = None,
) -> int:
    settings = parse_cli_args(argv)
    setup_logging(settings, logger, stream=sys.stderr)

    directory = directory or DeviceDirectory()

    if settings.list_inputs:
        list_inputs(directory)
        return 0

    try:
        ffmpeg, device_id = resolve_configuration(settings, directory)
    except ConfigurationError as e:
        logger.error("%s", e)
        emit_line(str(e))
        return 1

    emit_line(status.found_mic_line(settings.mic, device_id))
    emit_line(status.audio_index_line(settings.audio_index))

    monitor = MonitorLoop(
        directory,
        device_id,
        holder or PassThroughHolder(announce=emit_line),
        executable=ffmpeg,
        pass_through_args=build_ffmpeg_args(settings.audio_index),
        tracker=DebouncedStateTracker(
            settings.debounce_samples,
            poll_interval=settings.poll_interval,
        ),
        announce=emit_line,
    )

    loop = asyncio.get_running_loop()
    install_exception_handlers(logger, loop)
    install_signal_handlers(monitor.request_shutdown, loop)

    await monitor.run()
    return 0


def run(argv: Optional[list[str]] = None) -> None:
    sys.exit(asyncio.run(main(argv)))


if __name__ == "__main__":
    run()
