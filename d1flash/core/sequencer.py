"""Timed boot/reset sequence around a recipe run.

The schedule is fixed. Each step drives one line to a state and then waits:

    ENTER_BOOTLOADER  boot Low (20 ms), reset Low (100 ms), reset Open (100 ms)
    DELAYED_RESET     boot Open, reset Low (100 ms), reset Open (100 ms)
    RESTART           boot Open (20 ms), reset Low (100 ms), reset Open

run() enters the bootloader, executes the recipe on the calling thread while
an optional background thread performs DELAYED_RESET after a delay, joins
that thread and finally restarts the target into normal mode.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from d1flash.core.gpio_enums import OpenDrainState
from d1flash.core.open_drain import OpenDrainPin
from d1flash.core.recipe import Recipe

logger = logging.getLogger(__name__)

BOOT = "boot"
RESET = "reset"

DEFAULT_RESET_DELAY_MS = 2000


@dataclass(frozen=True)
class Step:
    """Drive one line to a state, then wait delay seconds."""

    line: str
    state: OpenDrainState
    delay: float = 0.0


ENTER_BOOTLOADER = (
    Step(BOOT, OpenDrainState.LOW, 0.020),
    Step(RESET, OpenDrainState.LOW, 0.100),
    Step(RESET, OpenDrainState.OPEN, 0.100),
)

DELAYED_RESET = (
    Step(BOOT, OpenDrainState.OPEN),
    Step(RESET, OpenDrainState.LOW, 0.100),
    Step(RESET, OpenDrainState.OPEN, 0.100),
)

RESTART = (
    Step(BOOT, OpenDrainState.OPEN, 0.020),
    Step(RESET, OpenDrainState.LOW, 0.100),
    Step(RESET, OpenDrainState.OPEN),
)

_LINE_NAMES = {BOOT: "boot mode pin", RESET: "reset pin"}


class Sequencer:
    """Drives the boot and reset lines of the target.

    THREAD SAFETY: pin transitions are serialized by an internal lock, so the
    delayed reset thread and the calling thread never reconfigure a line at
    the same moment. Waits happen outside the lock.
    """

    def __init__(
        self,
        boot: OpenDrainPin,
        reset: OpenDrainPin,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._pins = {BOOT: boot, RESET: reset}
        self._sleep = sleep
        self._lock = threading.Lock()

    @property
    def boot(self) -> OpenDrainPin:
        return self._pins[BOOT]

    @property
    def reset(self) -> OpenDrainPin:
        return self._pins[RESET]

    def perform(self, steps: tuple[Step, ...]) -> None:
        """Run a list of steps in order."""
        for step in steps:
            verb = "Triggering" if step.state is OpenDrainState.LOW else "Releasing"
            logger.info(f"{verb} {_LINE_NAMES[step.line]} (state: {step.state}).")
            with self._lock:
                self._pins[step.line].set(step.state)
            if step.delay > 0:
                self._sleep(step.delay)

    def enter_bootloader(self) -> None:
        """Reset the target with the boot line held low."""
        self.perform(ENTER_BOOTLOADER)

    def delayed_reset(self, delay: float) -> None:
        """Wait delay seconds, then reset the target into normal mode."""
        self._sleep(delay)
        self.perform(DELAYED_RESET)

    def restart(self) -> None:
        """Release the boot line and reset the target into normal mode."""
        self.perform(RESTART)

    def run(self, recipe: Recipe, reset_delay: Optional[float] = None) -> None:
        """Run the full sequence around recipe.

        Args:
            recipe: Command to execute while the target is in boot mode.
            reset_delay: If given, reset the target this many seconds after
                entering the bootloader, while the recipe is still running.

        Raises:
            RecipeError: If the recipe cannot be started or fails. The delayed
                reset is still joined first; the final restart is skipped.
        """
        self.enter_bootloader()

        worker: Optional[threading.Thread] = None
        failures: list[BaseException] = []
        if reset_delay is not None:
            worker = threading.Thread(
                target=self._background_reset,
                args=(reset_delay, failures),
                name="delayed-reset",
            )
            worker.start()

        try:
            logger.info(f"Executing {recipe}")
            recipe.run()
        finally:
            if worker is not None:
                _join_worker(worker)

        if failures:
            raise failures[0]

        self.restart()
        logger.info("Done!")

    def _background_reset(self, delay: float, failures: list[BaseException]) -> None:
        try:
            self.delayed_reset(delay)
        except Exception as exc:
            logger.error(f"Delayed reset failed: {exc}")
            failures.append(exc)


def _join_worker(worker: threading.Thread) -> None:
    """Wait for worker even if the wait itself is interrupted.

    The pins are torn down once run() returns, which must not overlap with a
    delayed reset still driving them. An interrupt raised while waiting is
    re-raised after the worker has finished.
    """
    interrupted: Optional[BaseException] = None
    while worker.is_alive():
        try:
            worker.join()
        except (KeyboardInterrupt, SystemExit) as exc:
            if interrupted is None:
                interrupted = exc
                logger.warning("Waiting for the delayed reset to finish")
    if interrupted is not None:
        raise interrupted
