"""Device hotplug resolution."""

from .resolver import (
    BUILTIN_HEURISTIC,
    DEFAULT_DEBOUNCE,
    HotplugResolver,
    Resolution,
    ResolutionAction,
    pick_fallback,
    resolve_change,
)

__all__ = [
    "BUILTIN_HEURISTIC",
    "DEFAULT_DEBOUNCE",
    "HotplugResolver",
    "Resolution",
    "ResolutionAction",
    "pick_fallback",
    "resolve_change",
]
