"""Centralized path constants for the trigger."""

from __future__ import annotations

import os
from pathlib import Path

PACKAGE_ROOT = Path(__file__).resolve().parents[1]

# User-specific state (settings + logs)
_USER_STATE_ENV = os.environ.get("HIDOCK_TRIGGER_STATE_DIR")
USER_STATE_DIR = Path(_USER_STATE_ENV).expanduser() if _USER_STATE_ENV else (Path.home() / ".hidock_trigger")
SETTINGS_PATH = USER_STATE_DIR / "settings.txt"

LOGS_DIR = USER_STATE_DIR / "logs"
MONITOR_LOG_FILE = LOGS_DIR / "mic-trigger.log"
APP_LOG_FILE = LOGS_DIR / "hidock-menubar.log"

# Checkout holding the native monitor sources, used by the build step
_TOOLS_ROOT_ENV = os.environ.get("HIDOCK_TOOLS_ROOT")
TOOLS_ROOT = Path(_TOOLS_ROOT_ENV).expanduser() if _TOOLS_ROOT_ENV else (Path.home() / "_git" / "hidock-tools")
MONITOR_SOURCE_DIR = TOOLS_ROOT / "mic-trigger"
MONITOR_BINARY_NAME = "hidock-mic-trigger"


def ensure_directories() -> None:
    """Create necessary directories if they don't exist."""

    USER_STATE_DIR.mkdir(parents=True, exist_ok=True)
    LOGS_DIR.mkdir(parents=True, exist_ok=True)


__all__ = [
    "PACKAGE_ROOT",
    "USER_STATE_DIR",
    "SETTINGS_PATH",
    "LOGS_DIR",
    "MONITOR_LOG_FILE",
    "APP_LOG_FILE",
    "TOOLS_ROOT",
    "MONITOR_SOURCE_DIR",
    "MONITOR_BINARY_NAME",
    "ensure_directories",
]
