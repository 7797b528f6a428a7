"""Abstract GPIO controller and pin handle interfaces.

A GpioController is the single ownership root for the host's GPIO block. It
is created once at startup and passed explicitly to whatever needs a pin;
nothing looks it up globally.

PIN HANDLE CONTRACT:
- A handle owns exactly one line until release() is called
- write() on a line in input mode latches the level; it becomes electrically
  visible once the line is switched to output
- set_pull() only has an electrical effect in input mode
- With reset_on_release enabled (the default), release() restores the line
  configuration found at acquisition. Owners that manage teardown themselves
  must disable it to avoid two competing restore mechanisms.
- release() is idempotent
- check_mode() reports, without side effects, whether set_mode() would accept
  a mode
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from types import TracebackType
from typing import Optional

from d1flash.core.gpio_enums import LogicLevel, PinMode, PullMode


class GpioPin(ABC):
    """Raw handle on a single GPIO line."""

    @property
    @abstractmethod
    def number(self) -> int:
        """Line offset on the controller (BCM numbering on a Raspberry Pi)."""
        ...

    @abstractmethod
    def mode(self) -> PinMode:
        """Current function of the line."""
        ...

    @abstractmethod
    def read(self) -> LogicLevel:
        """Current logic level of the line."""
        ...

    @abstractmethod
    def set_mode(self, mode: PinMode) -> None:
        """Switch the line function."""
        ...

    @abstractmethod
    def write(self, level: LogicLevel) -> None:
        """Set the output level (latched while the line is an input)."""
        ...

    @abstractmethod
    def set_pull(self, pull: PullMode) -> None:
        """Configure the pull resistor."""
        ...

    def check_mode(self, mode: PinMode) -> None:
        """Raise UnsupportedModeError if set_mode(mode) would be rejected.

        Lets owners refuse a configuration up front instead of failing later.
        """

    @abstractmethod
    def set_reset_on_release(self, enabled: bool) -> None:
        """Enable or disable restoring the original configuration on release."""
        ...

    @abstractmethod
    def release(self) -> None:
        """Give the line back to the controller."""
        ...


class GpioController(ABC):
    """Interface for the host GPIO block."""

    @abstractmethod
    def get(self, pin: int) -> GpioPin:
        """Acquire exclusive use of a line.

        Raises:
            PinAcquisitionError: If the line is unavailable or already claimed.
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Release the controller itself."""
        ...

    def __enter__(self) -> GpioController:
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()
