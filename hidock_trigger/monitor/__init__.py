"""Monitor-and-hold control loop."""

from .debounce import DebouncedStateTracker, DebounceState
from .holder import PassThroughHolder, build_ffmpeg_args, find_ffmpeg
from .loop import MonitorLoop, MonitorState

__all__ = [
    "DebounceState",
    "DebouncedStateTracker",
    "MonitorLoop",
    "MonitorState",
    "PassThroughHolder",
    "build_ffmpeg_args",
    "find_ffmpeg",
]
