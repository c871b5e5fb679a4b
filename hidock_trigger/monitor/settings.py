"""Command-line surface of the monitor process."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from hidock_trigger.cli.common import add_logging_arguments, positive_float, positive_int
from hidock_trigger.core.paths import MONITOR_LOG_FILE

from .debounce import DebouncedStateTracker

DEFAULT_MIC_NAME = "Samson Q2U Microphone"
DEFAULT_AUDIO_INDEX = 1


@dataclass(slots=True)
class MonitorSettings:
    """Normalized monitor configuration derived from CLI args."""

    mic: str = DEFAULT_MIC_NAME
    audio_index: int = DEFAULT_AUDIO_INDEX
    list_inputs: bool = False
    ffmpeg: Optional[Path] = None
    poll_interval: float = DebouncedStateTracker.DEFAULT_POLL_INTERVAL
    debounce_samples: int = DebouncedStateTracker.DEFAULT_THRESHOLD
    log_level: Optional[str] = None
    log_file: Optional[Path] = None

    @classmethod
    def from_args(cls, args: Any) -> "MonitorSettings":
        defaults = cls()
        return cls(
            mic=str(getattr(args, "mic", defaults.mic) or defaults.mic),
            audio_index=int(getattr(args, "audio_index", defaults.audio_index)),
            list_inputs=bool(getattr(args, "list_inputs", False)),
            ffmpeg=getattr(args, "ffmpeg", None),
            poll_interval=float(getattr(args, "poll_interval", defaults.poll_interval)),
            debounce_samples=int(getattr(args, "debounce_samples", defaults.debounce_samples)),
            log_level=getattr(args, "log_level", None),
            log_file=getattr(args, "log_file", None),
        )


def build_arg_parser() -> argparse.ArgumentParser:
    defaults = MonitorSettings()
    parser = argparse.ArgumentParser(
        prog="hidock-mic-trigger",
        description="Hold the HiDock capture path open while a USB mic is in use.",
    )
    parser.add_argument(
        "--mic",
        type=str,
        default=defaults.mic,
        help=f"Display name of the trigger microphone (default: {defaults.mic!r})",
    )
    parser.add_argument(
        "--audio-index",
        type=int,
        default=defaults.audio_index,
        help="AVFoundation audio index of the HiDock input (default: %(default)s)",
    )
    parser.add_argument(
        "--list-inputs",
        action="store_true",
        help="Print every input device name, one per line, and exit",
    )
    parser.add_argument(
        "--ffmpeg",
        type=Path,
        default=None,
        help="Path to ffmpeg (default: $HIDOCK_TRIGGER_FFMPEG, Homebrew, then PATH)",
    )
    parser.add_argument(
        "--poll-interval",
        type=positive_float,
        default=defaults.poll_interval,
        help="Seconds between in-use checks (default: %(default)s)",
    )
    parser.add_argument(
        "--debounce-samples",
        type=positive_int,
        default=defaults.debounce_samples,
        help="Consecutive samples required to confirm a change (default: %(default)s)",
    )
    add_logging_arguments(parser, default_log_file=MONITOR_LOG_FILE)
    return parser


def parse_cli_args(argv: Optional[list[str]] = None) -> MonitorSettings:
    parser = build_arg_parser()
    return MonitorSettings.from_args(parser.parse_args(argv))


__all__ = [
    "DEFAULT_MIC_NAME",
    "DEFAULT_AUDIO_INDEX",
    "MonitorSettings",
    "build_arg_parser",
    "parse_cli_args",
]
