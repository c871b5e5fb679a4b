"""Exception hierarchy for the trigger."""

from __future__ import annotations


class TriggerError(Exception):
    """Base class for all trigger errors."""


class ConfigurationError(TriggerError):
    """Fatal configuration problem (missing executable, unknown device)."""


class BuildError(TriggerError):
    """Building the monitor executable from source failed."""


class LaunchError(TriggerError):
    """A child process could not be spawned."""


__all__ = ["TriggerError", "ConfigurationError", "BuildError", "LaunchError"]
