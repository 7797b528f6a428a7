"""
Pytest configuration and shared fixtures for the d1flash test suite.
"""

import sys
import tempfile
import threading
from pathlib import Path

import pytest
import yaml

# Ensure project root is on PYTHONPATH so 'd1flash' can be imported
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from d1flash.core.gpio_enums import OpenDrainState, PinMode, PullMode  # noqa: E402
from d1flash.gpio.virtual import VirtualGpioController  # noqa: E402

BOOT_PIN = 17
RESET_PIN = 27


class FakeClock:
    """Deterministic time source; sleep() advances time instead of blocking."""

    def __init__(self, start: float = 100.0):
        self._now = start
        self._lock = threading.Lock()
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        with self._lock:
            return self._now

    def sleep(self, seconds: float) -> None:
        with self._lock:
            self.sleeps.append(seconds)
            self._now += seconds


def python_recipe_args(code: str) -> tuple[str, ...]:
    """Arguments for a recipe that runs a snippet in a fresh interpreter."""
    return ("-c", code)


def open_drain_transitions(
    gpio: VirtualGpioController, pin: int
) -> list[tuple[float, OpenDrainState]]:
    """Collapse the event log of a line into its Low/Open transitions."""
    transitions: list[tuple[float, OpenDrainState]] = []
    for event in gpio.events(pin):
        if event.mode is PinMode.OUTPUT and not event.level:
            state = OpenDrainState.LOW
        elif event.mode is PinMode.INPUT and event.pull is PullMode.UP:
            state = OpenDrainState.OPEN
        else:
            continue
        if not transitions or transitions[-1][1] is not state:
            transitions.append((event.time, state))
    return transitions


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def gpio():
    """Virtual controller with real monotonic timestamps."""
    controller = VirtualGpioController()
    yield controller
    controller.close()


@pytest.fixture
def temp_yaml_file():
    """
    Fixture that provides a temporary YAML file.

    Yields:
        Path: Path to the temporary YAML file
    """
    with tempfile.NamedTemporaryFile(
        mode="w",
        suffix=".yaml",
        delete=False,
    ) as f:
        temp_path = Path(f.name)

    yield temp_path

    # Cleanup
    if temp_path.exists():
        temp_path.unlink()


@pytest.fixture
def temp_toml_file():
    """
    Fixture that provides a temporary TOML file.

    Yields:
        Path: Path to the temporary TOML file
    """
    with tempfile.NamedTemporaryFile(
        mode="w",
        suffix=".toml",
        delete=False,
    ) as f:
        temp_path = Path(f.name)

    yield temp_path

    if temp_path.exists():
        temp_path.unlink()


@pytest.fixture
def valid_config_dict():
    """
    Fixture providing a complete valid configuration dictionary.

    The recipes run the current interpreter so they work on any host.
    """
    return {
        "boot": {"pin": BOOT_PIN, "state": {"mode": "Input"}},
        "reset": {"pin": RESET_PIN, "state": {"mode": "Input", "pull": "High"}},
        "default_recipe": "ok",
        "recipes": {
            "ok": {"command": sys.executable, "arguments": list(python_recipe_args("pass"))},
            "fail": {
                "command": sys.executable,
                "arguments": list(python_recipe_args("import sys; sys.exit(3)")),
            },
        },
    }


@pytest.fixture
def temp_config_yaml_file(temp_yaml_file, valid_config_dict):
    """
    Fixture that creates a temporary YAML file with valid configuration.

    Yields:
        Path: Path to the temporary YAML file with valid configuration
    """
    with open(temp_yaml_file, "w", encoding="utf-8") as f:
        yaml.dump(valid_config_dict, f)

    yield temp_yaml_file


def pytest_configure(config):
    """
    Hook for initial pytest configuration.

    Used to add custom markers and configuration.
    """
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests",
    )
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
