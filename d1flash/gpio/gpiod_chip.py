"""GPIO controller on top of the Linux GPIO character device (libgpiod v2).

Lines are requested with Direction.AS_IS so that acquiring a pin does not
disturb it, which lets the current mode and level be captured before anything
is changed. The character device only knows input and output; alternate
functions cannot be selected through it.
"""

from __future__ import annotations

import errno
import logging
from typing import Optional, override

import gpiod
from gpiod.line import Bias, Direction, Value

from d1flash.core.exceptions import (
    GpioError,
    PinAcquisitionError,
    PinClosedError,
    UnsupportedModeError,
)
from d1flash.core.gpio_enums import LogicLevel, PinMode, PullMode
from d1flash.gpio import DEFAULT_CHIP
from d1flash.interfaces.gpio import GpioController, GpioPin

logger = logging.getLogger(__name__)

DEFAULT_CONSUMER = "d1flash"

_SETTABLE_BIASES = (Bias.DISABLED, Bias.PULL_UP, Bias.PULL_DOWN)


# ==========================================================
# Conversions to and from libgpiod types
# ==========================================================


def level_to_value(level: LogicLevel) -> Value:
    return Value.ACTIVE if level is LogicLevel.HIGH else Value.INACTIVE


def value_to_level(value: Value) -> LogicLevel:
    return LogicLevel.HIGH if value == Value.ACTIVE else LogicLevel.LOW


def pull_to_bias(pull: PullMode) -> Bias:
    return {
        PullMode.OFF: Bias.DISABLED,
        PullMode.DOWN: Bias.PULL_DOWN,
        PullMode.UP: Bias.PULL_UP,
    }[pull]


def mode_to_direction(mode: PinMode) -> Direction:
    if mode.is_alternate:
        raise UnsupportedModeError(mode, "gpiod")
    return Direction.OUTPUT if mode is PinMode.OUTPUT else Direction.INPUT


def direction_to_mode(direction: Direction) -> PinMode:
    return PinMode.OUTPUT if direction == Direction.OUTPUT else PinMode.INPUT


class GpiodController(GpioController):
    """GPIO controller for one gpiochip device."""

    def __init__(self, chip_path: str = DEFAULT_CHIP, consumer: str = DEFAULT_CONSUMER) -> None:
        """Open the GPIO chip.

        Args:
            chip_path: Character device, e.g. /dev/gpiochip0.
            consumer: Label shown by gpioinfo for lines we hold.

        Raises:
            GpioError: If the device cannot be opened.
        """
        self._chip_path = chip_path
        self._consumer = consumer
        try:
            self._chip: Optional[gpiod.Chip] = gpiod.Chip(chip_path)
            self._num_lines = self._chip.get_info().num_lines
        except OSError as exc:
            raise GpioError(f"Cannot open {chip_path}: {exc}", details={"chip": chip_path}) from exc
        self._claimed: set[int] = set()
        logger.debug(f"Opened {chip_path} ({self._num_lines} lines)")

    @property
    def chip_path(self) -> str:
        return self._chip_path

    @override
    def get(self, pin: int) -> GpiodPin:
        if self._chip is None:
            raise PinAcquisitionError(pin, f"{self._chip_path} is closed")
        if not 0 <= pin < self._num_lines:
            raise PinAcquisitionError(pin, f"out of range [0-{self._num_lines - 1}]")
        if pin in self._claimed:
            raise PinAcquisitionError(pin, "line is already claimed")

        try:
            info = self._chip.get_line_info(pin)
            request = self._chip.request_lines(
                consumer=self._consumer,
                config={pin: gpiod.LineSettings(direction=Direction.AS_IS)},
            )
        except OSError as exc:
            reason = "line is in use by another consumer" if exc.errno == errno.EBUSY else str(exc)
            raise PinAcquisitionError(pin, reason) from exc

        self._claimed.add(pin)
        logger.debug(f"Requested GPIO {pin} on {self._chip_path}")
        return GpiodPin(self, request, pin, info)

    @override
    def close(self) -> None:
        if self._chip is not None:
            self._chip.close()
            self._chip = None

    def _unclaim(self, pin: int) -> None:
        self._claimed.discard(pin)


class GpiodPin(GpioPin):
    """Handle on one requested gpiod line.

    The kernel only accepts complete line settings, so the handle keeps the
    direction, bias and output latch it last applied and reconfigures from
    those.
    """

    def __init__(
        self,
        controller: GpiodController,
        request: gpiod.LineRequest,
        pin: int,
        info: gpiod.LineInfo,
    ) -> None:
        self._controller = controller
        self._request: Optional[gpiod.LineRequest] = request
        self._pin = pin
        self._direction = (
            Direction.OUTPUT if info.direction == Direction.OUTPUT else Direction.INPUT
        )
        self._bias = info.bias if info.bias in _SETTABLE_BIASES else Bias.AS_IS
        self._latch = request.get_value(pin)
        self._acquired = (self._direction, self._bias, self._latch)
        self._reset_on_release = True

    @property
    @override
    def number(self) -> int:
        return self._pin

    def _req(self) -> gpiod.LineRequest:
        if self._request is None:
            raise PinClosedError(self._pin)
        return self._request

    def _apply(self) -> None:
        if self._direction == Direction.OUTPUT:
            settings = gpiod.LineSettings(direction=Direction.OUTPUT, output_value=self._latch)
        else:
            settings = gpiod.LineSettings(direction=Direction.INPUT, bias=self._bias)
        self._req().reconfigure_lines(config={self._pin: settings})

    @override
    def mode(self) -> PinMode:
        self._req()
        return direction_to_mode(self._direction)

    @override
    def read(self) -> LogicLevel:
        return value_to_level(self._req().get_value(self._pin))

    @override
    def set_mode(self, mode: PinMode) -> None:
        self._req()
        self._direction = mode_to_direction(mode)
        logger.debug(f"GPIO {self._pin}: mode {mode.name}")
        self._apply()

    @override
    def write(self, level: LogicLevel) -> None:
        request = self._req()
        self._latch = level_to_value(level)
        logger.debug(f"GPIO {self._pin}: level {level.name}")
        if self._direction == Direction.OUTPUT:
            request.set_value(self._pin, self._latch)

    @override
    def set_pull(self, pull: PullMode) -> None:
        self._req()
        self._bias = pull_to_bias(pull)
        logger.debug(f"GPIO {self._pin}: pull {pull.name}")
        if self._direction == Direction.INPUT:
            self._apply()

    @override
    def check_mode(self, mode: PinMode) -> None:
        mode_to_direction(mode)

    @override
    def set_reset_on_release(self, enabled: bool) -> None:
        self._reset_on_release = enabled

    @override
    def release(self) -> None:
        if self._request is None:
            return
        try:
            if self._reset_on_release:
                self._direction, self._bias, self._latch = self._acquired
                self._apply()
        finally:
            self._request.release()
            self._request = None
            self._controller._unclaim(self._pin)
            logger.debug(f"Released GPIO {self._pin}")
