"""Unit test fixtures for isolated, fast test execution.

This conftest provides fixtures specifically for unit tests that:
- Run in complete isolation (no real audio devices, no real child processes)
- Execute quickly (< 1s per test)
- Use fakes for the device backend and process launching

The root conftest provides:
- project_root
- fake_backend, fake_directory

This file provides:
- Isolated environment fixtures (isolated_env, settings_path)
- Process fakes (fake_launcher, fake_spawner)
- A locator that never searches the real filesystem
- Logging reset between tests
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest


# =============================================================================
# Isolated Environment Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create a completely isolated test environment.

    This fixture provides:
    - A clean temporary directory as the working directory
    - HOME pointed at the temporary directory
    - Trigger environment overrides removed

    Scope: function (fresh environment per test)

    Returns:
        Path to the isolated working directory
    """
    work_dir = tmp_path / "work"
    work_dir.mkdir()

    monkeypatch.setenv("HOME", str(tmp_path))
    for name in (
        "HIDOCK_MIC_TRIGGER_PATH",
        "HIDOCK_TRIGGER_FFMPEG",
        "HIDOCK_TRIGGER_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    original_cwd = os.getcwd()
    os.chdir(work_dir)

    yield work_dir

    os.chdir(original_cwd)


@pytest.fixture(scope="function")
def settings_path(tmp_path: Path) -> Path:
    """Path for a settings file that does not exist yet."""
    return tmp_path / "state" / "settings.txt"


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by entry points so each test starts clean."""
    yield

    from hidock_trigger.core import logging_config

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    logging_config._configured = False


# =============================================================================
# Process Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def fake_launcher():
    """ProcessLauncher that hands out FakeProcess objects."""
    from tests.infrastructure.mocks.process_mocks import FakeProcessFactory

    return FakeProcessFactory()


@pytest.fixture(scope="function")
def fake_spawner():
    """Stand-in for asyncio.create_subprocess_exec used by the holder."""
    from tests.infrastructure.mocks.process_mocks import FakeSpawner

    return FakeSpawner()


@pytest.fixture(scope="function")
def monitor_locator(tmp_path: Path):
    """MonitorLocator that always finds ``hidock-mic-trigger`` on PATH."""
    from hidock_trigger.supervisor.locator import MonitorLocator

    return MonitorLocator(
        source_dir=tmp_path / "mic-trigger",
        environ={},
        which=lambda name: f"/usr/local/bin/{name}",
    )
