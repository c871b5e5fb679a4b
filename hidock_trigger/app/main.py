"""Supervisor daemon entry point (``hidock-trigger``)."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from hidock_trigger.cli.common import (
    add_logging_arguments,
    install_exception_handlers,
    install_signal_handlers,
    positive_float,
    setup_logging,
)
from hidock_trigger.core.events import EventBus, TriggerEvent
from hidock_trigger.core.logging_utils import get_module_logger
from hidock_trigger.core.paths import APP_LOG_FILE, SETTINGS_PATH, ensure_directories
from hidock_trigger.core.preferences import TriggerPreferences
from hidock_trigger.devices.watcher import DeviceWatcher

from .controller import TriggerApp

logger = get_module_logger("HiDockTrigger")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hidock-trigger",
        description="Keep the HiDock mic trigger running and follow mic hotplug events.",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        default=SETTINGS_PATH,
        help="Settings file (default: %(default)s)",
    )
    parser.add_argument(
        "--mic",
        type=str,
        default=None,
        help="Trigger mic for this session (overrides the stored selection)",
    )
    parser.add_argument(
        "--no-auto-start",
        dest="auto_start",
        action="store_const",
        const=False,
        default=None,
        help="Do not start the monitor on launch",
    )
    parser.add_argument(
        "--watch-interval",
        type=positive_float,
        default=DeviceWatcher.DEFAULT_SCAN_INTERVAL,
        help="Seconds between device list scans (default: %(default)s)",
    )
    add_logging_arguments(parser, default_log_file=APP_LOG_FILE)
    return parser


def log_notification(event: TriggerEvent) -> None:
    if event.terminal:
        logger.error("Needs attention: %s", event.message)


async def main(argv: Optional[list[str]] = None, *, app: Optional[TriggerApp] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    setup_logging(args, logger, stream=sys.stdout)

    if app is None:
        ensure_directories()
        events = EventBus()
        app = TriggerApp(
            TriggerPreferences(args.settings),
            events=events,
            watch_interval=args.watch_interval,
            mic_override=args.mic,
            auto_start=args.auto_start,
        )
    app.events.subscribe(log_notification)

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    install_exception_handlers(logger, loop)
    install_signal_handlers(shutdown_event.set, loop)

    logger.info("Starting (settings=%s)", args.settings)
    try:
        await app.launch()
        await shutdown_event.wait()
    finally:
        await app.shutdown()

    logger.info("Stopped")
    return 0


def run(argv: Optional[list[str]] = None) -> None:
    sys.exit(asyncio.run(main(argv)))


if __name__ == "__main__":
    run()
