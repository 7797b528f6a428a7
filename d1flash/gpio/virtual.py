"""In-memory GPIO controller.

Models a BCM283x style GPIO block without touching hardware. Every change of
a line's electrical configuration is recorded as a timestamped PinEvent so the
reset schedule can be inspected after the fact (tests, --simulate).
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional, override

from d1flash.core.exceptions import PinAcquisitionError, PinClosedError
from d1flash.core.gpio_enums import LogicLevel, PinMode, PullMode
from d1flash.interfaces.gpio import GpioController, GpioPin

logger = logging.getLogger(__name__)

BCM_LINE_COUNT = 54


@dataclass(frozen=True)
class LineState:
    """Configuration of one virtual line.

    Attributes:
        mode: Line function.
        latch: Output latch; driven onto the line in output mode.
        pull: Pull resistor setting.
        external: Level seen on a floating input or alternate-function line.
    """

    mode: PinMode = PinMode.INPUT
    latch: LogicLevel = LogicLevel.LOW
    pull: PullMode = PullMode.OFF
    external: LogicLevel = LogicLevel.LOW

    @property
    def level(self) -> LogicLevel:
        """Level a reader would observe on the line."""
        if self.mode is PinMode.OUTPUT:
            return self.latch
        if self.mode is PinMode.INPUT and self.pull is PullMode.UP:
            return LogicLevel.HIGH
        if self.mode is PinMode.INPUT and self.pull is PullMode.DOWN:
            return LogicLevel.LOW
        return self.external


@dataclass(frozen=True)
class PinEvent:
    """A line configuration change at a point in time."""

    time: float
    pin: int
    mode: PinMode
    level: LogicLevel
    pull: PullMode


class VirtualGpioController(GpioController):
    """GPIO controller backed by a dictionary of LineState values.

    THREAD SAFETY: All line state and the event log are guarded by one lock,
    so pins may be driven from several threads.
    """

    def __init__(
        self,
        num_lines: int = BCM_LINE_COUNT,
        initial: Optional[dict[int, LineState]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the controller.

        Args:
            num_lines: Number of addressable lines.
            initial: Starting state per line; unlisted lines use LineState().
            clock: Time source used to stamp events.
        """
        if num_lines <= 0:
            raise ValueError("num_lines must be positive")
        self._num_lines = num_lines
        self._clock = clock
        self._lock = threading.RLock()
        self._lines: dict[int, LineState] = dict(initial or {})
        self._claimed: set[int] = set()
        self._events: list[PinEvent] = []
        self._closed = False

    @property
    def num_lines(self) -> int:
        return self._num_lines

    def line(self, pin: int) -> LineState:
        """Snapshot of a line's current configuration."""
        self._check_range(pin)
        with self._lock:
            return self._lines.get(pin, LineState())

    def events(self, pin: Optional[int] = None) -> list[PinEvent]:
        """Recorded configuration changes, optionally for one line only."""
        with self._lock:
            if pin is None:
                return list(self._events)
            return [event for event in self._events if event.pin == pin]

    def is_claimed(self, pin: int) -> bool:
        with self._lock:
            return pin in self._claimed

    @override
    def get(self, pin: int) -> VirtualPin:
        with self._lock:
            if self._closed:
                raise PinAcquisitionError(pin, "controller is closed")
            if not 0 <= pin < self._num_lines:
                raise PinAcquisitionError(pin, f"out of range [0-{self._num_lines - 1}]")
            if pin in self._claimed:
                raise PinAcquisitionError(pin, "line is already claimed")
            self._claimed.add(pin)
            logger.debug(f"Claimed virtual GPIO {pin}")
            return VirtualPin(self, pin)

    @override
    def close(self) -> None:
        with self._lock:
            self._closed = True

    # ==========================================================
    # Line access used by VirtualPin
    # ==========================================================

    def _check_range(self, pin: int) -> None:
        if not 0 <= pin < self._num_lines:
            raise ValueError(f"Pin {pin} is out of range [0-{self._num_lines - 1}]")

    def _update(self, pin: int, **changes: object) -> None:
        with self._lock:
            before = self._lines.get(pin, LineState())
            after = replace(before, **changes)  # type: ignore[arg-type]
            self._lines[pin] = after
            if (before.mode, before.level, before.pull) != (after.mode, after.level, after.pull):
                self._events.append(
                    PinEvent(
                        time=self._clock(),
                        pin=pin,
                        mode=after.mode,
                        level=after.level,
                        pull=after.pull,
                    )
                )

    def _restore(self, pin: int, state: LineState) -> None:
        self._update(pin, mode=state.mode, latch=state.latch, pull=state.pull)

    def _unclaim(self, pin: int) -> None:
        with self._lock:
            self._claimed.discard(pin)
            logger.debug(f"Released virtual GPIO {pin}")


class VirtualPin(GpioPin):
    """Handle on one line of a VirtualGpioController."""

    def __init__(self, controller: VirtualGpioController, pin: int) -> None:
        self._controller = controller
        self._pin = pin
        self._acquired_state = controller.line(pin)
        self._reset_on_release = True
        self._released = False

    @property
    @override
    def number(self) -> int:
        return self._pin

    @property
    def reset_on_release(self) -> bool:
        return self._reset_on_release

    @property
    def released(self) -> bool:
        return self._released

    def _state(self) -> LineState:
        if self._released:
            raise PinClosedError(self._pin)
        return self._controller.line(self._pin)

    @override
    def mode(self) -> PinMode:
        return self._state().mode

    @override
    def read(self) -> LogicLevel:
        return self._state().level

    @override
    def set_mode(self, mode: PinMode) -> None:
        self._state()
        self._controller._update(self._pin, mode=mode)

    @override
    def write(self, level: LogicLevel) -> None:
        self._state()
        self._controller._update(self._pin, latch=level)

    @override
    def set_pull(self, pull: PullMode) -> None:
        self._state()
        self._controller._update(self._pin, pull=pull)

    @override
    def set_reset_on_release(self, enabled: bool) -> None:
        self._reset_on_release = enabled

    @override
    def release(self) -> None:
        if self._released:
            return
        if self._reset_on_release:
            self._controller._restore(self._pin, self._acquired_state)
        self._released = True
        self._controller._unclaim(self._pin)
