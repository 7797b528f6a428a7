"""Open-drain output emulated on a push-pull GPIO line.

The Raspberry Pi GPIO block has no open-drain mode. An open-drain line is
simulated by switching between two configurations:

- LOW:  output mode, driving logic low
- OPEN: input mode with pull-up, the line floats to the pull-up level

The line is never driven high.

OpenDrainPin takes ownership of the teardown of its line. On close it puts
the line into the configuration described by its PinDropState, falling back
field by field to what the line looked like before it was acquired. Teardown
runs exactly once, whether triggered by close(), leaving a with-block, the
object being collected, or interpreter shutdown.
"""

from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass
from types import TracebackType
from typing import Optional

from d1flash.core.exceptions import PinClosedError
from d1flash.core.gpio_enums import LogicLevel, OpenDrainState, PinMode, PullMode
from d1flash.interfaces.gpio import GpioPin

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PinState:
    """Configuration of a line at a point in time.

    pull is None when it is unknown; pull resistor settings cannot be read
    back from the hardware.
    """

    mode: PinMode
    level: LogicLevel
    pull: Optional[LogicLevel] = None


@dataclass(frozen=True)
class PinDropState:
    """Configuration to leave a line in when its OpenDrainPin is closed.

    Unset mode and level fall back to the captured initial state. pull is
    only applied when set.
    """

    mode: Optional[PinMode] = None
    level: Optional[LogicLevel] = None
    pull: Optional[LogicLevel] = None

    def resolve(self, initial: PinState) -> PinState:
        """Final state of the line given its captured initial state."""
        return PinState(
            mode=self.mode if self.mode is not None else initial.mode,
            level=self.level if self.level is not None else initial.level,
            pull=self.pull,
        )


def _teardown(pin: GpioPin, initial: PinState, drop: PinDropState) -> None:
    final = drop.resolve(initial)
    logger.debug(f"Restoring GPIO {pin.number} to {final}")
    try:
        # Mode first: a level written to an input has no electrical effect.
        pin.set_mode(final.mode)
        pin.write(final.level)
        if final.pull is not None:
            pin.set_pull(final.pull.to_pull())
    finally:
        pin.release()


class OpenDrainPin:
    """Simulated open-drain line owning one GPIO pin handle."""

    def __init__(
        self,
        pin: GpioPin,
        state: OpenDrainState,
        drop_state: Optional[PinDropState] = None,
    ) -> None:
        """Take ownership of pin and apply state immediately.

        Args:
            pin: Freshly acquired pin handle.
            state: Initial simulated state.
            drop_state: Configuration to apply on close; None restores the
                captured initial state.

        Raises:
            UnsupportedModeError: If the pin cannot be put into the drop
                state mode. The pin is left untouched.
        """
        if drop_state is not None and drop_state.mode is not None:
            pin.check_mode(drop_state.mode)
        self._pin = pin
        self._initial_state = PinState(mode=pin.mode(), level=pin.read(), pull=None)
        self._drop_state = drop_state or PinDropState()
        # Teardown is ours alone; the handle must not restore anything itself.
        pin.set_reset_on_release(False)
        self._finalizer = weakref.finalize(
            self, _teardown, pin, self._initial_state, self._drop_state
        )
        self._state = state
        self.set(state)

    def __repr__(self) -> str:
        return f"OpenDrainPin(pin={self._pin.number}, state={self._state}, closed={self.closed})"

    @property
    def number(self) -> int:
        return self._pin.number

    @property
    def state(self) -> OpenDrainState:
        return self._state

    @property
    def initial_state(self) -> PinState:
        return self._initial_state

    @property
    def drop_state(self) -> PinDropState:
        return self._drop_state

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def _check_open(self) -> None:
        if self.closed:
            raise PinClosedError(self._pin.number)

    def set_low(self) -> None:
        """Drive the line low.

        The level is written both before and after switching to output. The
        driver does not document whether the latch survives the mode change,
        and the line must never see a high pulse.
        """
        self._check_open()
        self._pin.write(LogicLevel.LOW)
        self._pin.set_mode(PinMode.OUTPUT)
        self._pin.write(LogicLevel.LOW)
        self._state = OpenDrainState.LOW

    def set_open(self) -> None:
        """Release the line to the pull-up."""
        self._check_open()
        self._pin.set_mode(PinMode.INPUT)
        self._pin.set_pull(PullMode.UP)
        self._state = OpenDrainState.OPEN

    def set(self, state: OpenDrainState) -> None:
        if state is OpenDrainState.LOW:
            self.set_low()
        else:
            self.set_open()

    def close(self) -> None:
        """Apply the drop state and release the line. Safe to call repeatedly."""
        self._finalizer()

    def __enter__(self) -> OpenDrainPin:
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()
