"""GPIO enumeration types."""

from __future__ import annotations

from enum import Enum, IntEnum


class _ConfigEnum(Enum):
    """Enum that can be parsed from a configuration value by member name."""

    @classmethod
    def parse(cls, value: str | _ConfigEnum) -> _ConfigEnum:
        """Look up a member by name, case-insensitively.

        Raises:
            ValueError: If value names no member.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            member = cls.__members__.get(value.strip().upper())
            if member is not None:
                return member
        choices = ", ".join(name.capitalize() for name in cls.__members__)
        raise ValueError(f"{value!r} is not a valid {cls.__name__} (expected one of: {choices})")


class PullMode(IntEnum):
    """Pull resistor configuration of an input line."""

    OFF = 0
    """Bias disabled, the line floats."""

    DOWN = 1
    """Internal pull-down resistor enabled."""

    UP = 2
    """Internal pull-up resistor enabled."""


class LogicLevel(_ConfigEnum):
    """GPIO pin logic level enumeration.

    Represents the digital logic level on a GPIO pin.
    """

    LOW = 0
    """Logic level LOW (0V, digital 0)."""

    HIGH = 1
    """Logic level HIGH (3.3V on the Raspberry Pi, digital 1)."""

    def __bool__(self) -> bool:
        return self is LogicLevel.HIGH

    @classmethod
    def from_bool(cls, value: bool) -> LogicLevel:
        return cls.HIGH if value else cls.LOW

    def to_pull(self) -> PullMode:
        """Pull resistor that biases a floating line towards this level."""
        return PullMode.UP if self is LogicLevel.HIGH else PullMode.DOWN


class PinMode(_ConfigEnum):
    """GPIO pin mode enumeration.

    Mirrors the function select values of the BCM283x GPIO block: plain input,
    plain output, or one of six alternate functions (UART, SPI, I2C, PWM...).
    """

    INPUT = 0
    OUTPUT = 1
    ALT0 = 4
    ALT1 = 5
    ALT2 = 6
    ALT3 = 7
    ALT4 = 3
    ALT5 = 2

    @property
    def is_alternate(self) -> bool:
        return self not in (PinMode.INPUT, PinMode.OUTPUT)


class OpenDrainState(Enum):
    """Simulated open-drain line state.

    There is no HIGH member: an open-drain line is either pulled
    low by us or released to the external/internal pull-up.
    """

    LOW = "low"
    """Output mode, driving logic low."""

    OPEN = "open"
    """Input mode with pull-up, line released."""

    @property
    def mode(self) -> PinMode:
        return PinMode.OUTPUT if self is OpenDrainState.LOW else PinMode.INPUT

    def __str__(self) -> str:
        return self.name.capitalize()
