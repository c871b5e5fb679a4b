"""Supervision of the monitor child process."""

from .locator import ENV_MONITOR_PATH, MonitorLocator
from .process import ManagedProcess, ProcessLauncher, SubprocessHandle, launch_subprocess
from .supervisor import ProcessSupervisor, SupervisorSnapshot, SupervisorState

__all__ = [
    "ENV_MONITOR_PATH",
    "ManagedProcess",
    "MonitorLocator",
    "ProcessLauncher",
    "ProcessSupervisor",
    "SubprocessHandle",
    "SupervisorSnapshot",
    "SupervisorState",
    "launch_subprocess",
]
