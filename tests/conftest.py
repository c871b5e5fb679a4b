"""Shared pytest configuration and fixtures for the HiDock trigger test suite."""

import sys
from pathlib import Path

import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "hardware: mark test as requiring a real audio device"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--run-hardware",
        action="store_true",
        default=False,
        help="Run tests that query real audio hardware",
    )


def pytest_collection_modifyitems(config, items):
    """Skip hardware tests unless --run-hardware is specified."""
    if config.getoption("--run-hardware"):
        return

    skip_hardware = pytest.mark.skip(reason="Need --run-hardware option to run")
    for item in items:
        if "hardware" in item.keywords:
            item.add_marker(skip_hardware)


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def fake_backend():
    """A FakeDeviceBackend with a trigger mic and a built-in input."""
    from tests.infrastructure.mocks.device_mocks import FakeDeviceBackend

    backend = FakeDeviceBackend()
    backend.add("Samson Q2U Microphone")
    backend.add("MacBook Pro Microphone")
    backend.add("MacBook Pro Speakers", has_input=False)
    return backend


@pytest.fixture
def fake_directory(fake_backend):
    """A DeviceDirectory over ``fake_backend``."""
    from hidock_trigger.devices.directory import DeviceDirectory

    return DeviceDirectory(fake_backend)
