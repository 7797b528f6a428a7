"""Interface abstractions for d1flash.

- GpioController: host GPIO block, hands out pin handles
- GpioPin: raw handle on one line
"""

from d1flash.interfaces.gpio import GpioController, GpioPin

__all__ = ["GpioController", "GpioPin"]
