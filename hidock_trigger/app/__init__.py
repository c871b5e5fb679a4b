"""Application layer: settings, hotplug and supervision wired together."""

from .controller import TriggerApp, format_uptime

__all__ = ["TriggerApp", "format_uptime"]
