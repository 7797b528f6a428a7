"""Boot-mode reset helper for microcontrollers wired to a Raspberry Pi.

Drives the boot-select and reset lines of the target as simulated open-drain
outputs, runs a flashing or monitoring command ("recipe") while the target is
in its bootloader and restores both lines afterwards.

Getting started:
    from d1flash import OpenDrainPin, OpenDrainState, Recipe, Sequencer, VirtualGpioController

    gpio = VirtualGpioController()
    with OpenDrainPin(gpio.get(17), OpenDrainState.OPEN) as boot, \\
            OpenDrainPin(gpio.get(27), OpenDrainState.OPEN) as reset:
        Sequencer(boot, reset).run(Recipe("true"))
"""

__version__ = "0.1.0"

from d1flash.core.exceptions import (
    ConfigurationError,
    D1FlashError,
    GpioError,
    PinAcquisitionError,
    PinClosedError,
    RecipeError,
    RecipeFailedError,
    RecipeSpawnError,
    UnsupportedModeError,
)
from d1flash.core.gpio_enums import LogicLevel, OpenDrainState, PinMode, PullMode
from d1flash.core.open_drain import OpenDrainPin, PinDropState, PinState
from d1flash.core.recipe import Recipe, select_recipe
from d1flash.core.sequencer import Sequencer
from d1flash.gpio.virtual import VirtualGpioController
from d1flash.interfaces.gpio import GpioController, GpioPin
from d1flash.utils.config_loader import Configuration, PinConfig, load_config

__all__ = [
    # Errors
    "D1FlashError",
    "ConfigurationError",
    "GpioError",
    "PinAcquisitionError",
    "PinClosedError",
    "UnsupportedModeError",
    "RecipeError",
    "RecipeSpawnError",
    "RecipeFailedError",
    # GPIO enumerations
    "LogicLevel",
    "PinMode",
    "PullMode",
    "OpenDrainState",
    # Pins
    "GpioController",
    "GpioPin",
    "VirtualGpioController",
    "OpenDrainPin",
    "PinState",
    "PinDropState",
    # Sequence
    "Recipe",
    "select_recipe",
    "Sequencer",
    # Configuration
    "Configuration",
    "PinConfig",
    "load_config",
]
