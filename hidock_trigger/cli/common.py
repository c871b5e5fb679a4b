from __future__ import annotations

import argparse
import asyncio
import contextlib
import signal
import sys
from pathlib import Path
from typing import IO, Callable, Optional

from hidock_trigger.core.logging_config import VALID_LOG_LEVELS, configure_logging, resolve_log_level
from hidock_trigger.core.logging_utils import StructuredLogger


def add_logging_arguments(parser: argparse.ArgumentParser, *, default_log_file: Optional[Path] = None) -> None:
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help=f"Logging verbosity ({', '.join(VALID_LOG_LEVELS)}); "
        "defaults to $HIDOCK_TRIGGER_LOG_LEVEL or info",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=default_log_file,
        help="Rotating log file path",
    )
    parser.add_argument(
        "--no-log-file",
        dest="log_file",
        action="store_const",
        const=None,
        help="Do not write a log file",
    )


def setup_logging(args: argparse.Namespace, logger: StructuredLogger, *, stream: Optional[IO[str]] = None) -> None:
    requested = getattr(args, "log_level", None)
    level, invalid = resolve_log_level(requested)
    configure_logging(
        level=level,
        force=True,
        stream=stream,
        log_file=getattr(args, "log_file", None),
    )
    if invalid:
        logger.warning(
            "Unknown log level '%s'; defaulting to %s", requested, level
        )


def positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("Value must be a number") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("Value must be positive")
    return parsed


def positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("Value must be an integer") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("Value must be positive")
    return parsed


def install_exception_handlers(
    logger: StructuredLogger,
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> None:
    def handle_exception(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))

    sys.excepthook = handle_exception

    if loop is not None:
        def handle_asyncio_exception(loop, context):
            exception = context.get("exception")
            message = context.get("message", "Unhandled asyncio exception")
            if exception:
                logger.error("Asyncio exception: %s", message, exc_info=exception)
            else:
                logger.error("Asyncio error: %s, context: %s", message, context)

        loop.set_exception_handler(handle_asyncio_exception)


def install_signal_handlers(on_signal: Callable[[], None], loop: asyncio.AbstractEventLoop) -> None:
    """Route SIGINT and SIGTERM to the same graceful-shutdown callback."""

    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, on_signal)
