"""
Human-readable status lines printed by the monitor on stdout.

The supervisor reads the monitor's stdout and maps the two transition lines
to events. Matching is by prefix so wording after the arrow may change.
"""

from __future__ import annotations

from typing import Optional

from .events import EventType

ACTIVE_PREFIX = "USB mic became IN USE"
INACTIVE_PREFIX = "USB mic became NOT IN USE"

MIC_ACTIVE_LINE = f"{ACTIVE_PREFIX} → holding HiDock mic open."
MIC_INACTIVE_LINE = f"{INACTIVE_PREFIX} → releasing HiDock mic."


def found_mic_line(name: str, device_id: object) -> str:
    return f"Found USB mic '{name}' (deviceID {device_id})."


def audio_index_line(index: int) -> str:
    return f"Using HiDock AVFoundation audio index: {index}"


def initial_state_line(active: bool) -> str:
    return f"Initial USB mic in-use state: {'IN USE' if active else 'NOT IN USE'}"


def holder_started_line(pid: int) -> str:
    return f"Started holding HiDock input (ffmpeg pid {pid})."


HOLDER_STOPPED_LINE = "Stopped holding HiDock input."


def parse_status_line(line: str) -> Optional[EventType]:
    """Map one monitor stdout line to an event type, or None."""
    text = line.strip()
    # INACTIVE first: "NOT IN USE" also contains "IN USE"
    if text.startswith(INACTIVE_PREFIX):
        return EventType.MIC_INACTIVE
    if text.startswith(ACTIVE_PREFIX):
        return EventType.MIC_ACTIVE
    return None


__all__ = [
    "MIC_ACTIVE_LINE",
    "MIC_INACTIVE_LINE",
    "HOLDER_STOPPED_LINE",
    "found_mic_line",
    "audio_index_line",
    "initial_state_line",
    "holder_started_line",
    "parse_status_line",
]
