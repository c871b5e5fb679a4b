"""Shared infrastructure: logging, paths, settings store and events."""

from .errors import BuildError, ConfigurationError, LaunchError, TriggerError
from .events import EventBus, EventType, TriggerEvent
from .logging_utils import StructuredLogger, get_module_logger

__all__ = [
    "BuildError",
    "ConfigurationError",
    "EventBus",
    "EventType",
    "LaunchError",
    "StructuredLogger",
    "TriggerError",
    "TriggerEvent",
    "get_module_logger",
]
