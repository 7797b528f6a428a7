"""Command line entry point.

Loads the configuration, acquires the boot and reset lines, runs the reset
sequence around the selected recipe and restores both lines on the way out,
however the run ends.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from contextlib import ExitStack
from pathlib import Path
from types import FrameType
from typing import Optional, Sequence

from d1flash import __version__
from d1flash.core.exceptions import D1FlashError
from d1flash.core.gpio_enums import OpenDrainState
from d1flash.core.open_drain import OpenDrainPin
from d1flash.core.recipe import select_recipe
from d1flash.core.sequencer import DEFAULT_RESET_DELAY_MS, Sequencer
from d1flash.gpio import DEFAULT_CHIP
from d1flash.gpio.virtual import VirtualGpioController
from d1flash.interfaces.gpio import GpioController
from d1flash.utils.config_loader import load_config

logger = logging.getLogger(__name__)

RECIPE_HELP = """\
The recipe to use.
If no recipe is specified, the default is used.
If a single string is specified, the corresponding recipe is used. If no
matching recipe exists, the string is interpreted and executed as a command.
If multiple strings are specified, they are interpreted and executed as a
command followed by a set of arguments. Existing recipes are not considered.
Put the command after -- if it has options of its own."""


def existing_file(value: str) -> Path:
    """argparse type accepting only paths to existing regular files."""
    path = Path(value)
    if not path.is_file():
        raise argparse.ArgumentTypeError(f"{value}: Not a valid file.")
    return path


def non_negative_ms(value: str) -> int:
    try:
        ms = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid delay: {value!r}") from exc
    if ms < 0:
        raise argparse.ArgumentTypeError("delay must be >= 0")
    return ms


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="d1flash",
        description="Reset a microcontroller into its bootloader, run a recipe and reset it back.",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog="""
Examples:
  d1flash -c d1flash.toml                     # run the default recipe
  d1flash -c d1flash.toml monitor             # run the 'monitor' recipe
  d1flash -c d1flash.toml -r 500 -- miniterm.py /dev/ttyS0 115200
        """,
    )

    parser.add_argument(
        "-c",
        "--config-path",
        required=True,
        type=existing_file,
        metavar="FILE",
        help="Path of the configuration file",
    )

    parser.add_argument("recipe", nargs="*", help=RECIPE_HELP)

    parser.add_argument(
        "-r",
        "--reset",
        nargs="?",
        const=DEFAULT_RESET_DELAY_MS,
        default=None,
        type=non_negative_ms,
        metavar="MS",
        help=f"Reset the target MS milliseconds after entering the bootloader\n"
        f"while the recipe is running (default: {DEFAULT_RESET_DELAY_MS})",
    )

    parser.add_argument(
        "-f",
        "--flash",
        action="store_true",
        help="Reboot the target into flash mode. Flash implies reset.",
    )

    parser.add_argument(
        "--chip",
        default=DEFAULT_CHIP,
        help=f"GPIO character device (default: {DEFAULT_CHIP})",
    )

    parser.add_argument(
        "--simulate",
        action="store_true",
        help="Drive an in-memory GPIO controller instead of the hardware\n(the recipe still runs)",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show pin level debug output",
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    args = parser.parse_args(argv)
    if args.flash and args.reset is None:
        args.reset = DEFAULT_RESET_DELAY_MS
    return args


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )


def open_controller(args: argparse.Namespace) -> GpioController:
    if args.simulate:
        return VirtualGpioController()

    # Only needed on real hardware.
    from d1flash.gpio.gpiod_chip import GpiodController

    return GpiodController(args.chip)


def _terminate(signum: int, frame: Optional[FrameType]) -> None:
    # Unwind through the with-blocks so the pins get restored.
    raise SystemExit(128 + signum)


def run(args: argparse.Namespace) -> None:
    """Load config, acquire both lines and run the sequence.

    Raises:
        D1FlashError: on configuration, GPIO or recipe errors.
    """
    config = load_config(args.config_path)
    recipe = select_recipe(args.recipe, config.recipes, config.default_recipe)
    reset_delay = args.reset / 1000 if args.reset is not None else None

    gpio = open_controller(args)
    with gpio, ExitStack() as stack:
        # Acquire both lines before changing either of them.
        boot_handle = gpio.get(config.boot.pin)
        stack.callback(boot_handle.release)
        reset_handle = gpio.get(config.reset.pin)
        stack.callback(reset_handle.release)

        # Refuse unusable drop states before either line is reconfigured.
        for handle, pin_config in ((boot_handle, config.boot), (reset_handle, config.reset)):
            if pin_config.state.mode is not None:
                handle.check_mode(pin_config.state.mode)

        boot = stack.enter_context(
            OpenDrainPin(boot_handle, OpenDrainState.OPEN, config.boot.state)
        )
        reset = stack.enter_context(
            OpenDrainPin(reset_handle, OpenDrainState.OPEN, config.reset.state)
        )

        Sequencer(boot, reset).run(recipe, reset_delay=reset_delay)

    if isinstance(gpio, VirtualGpioController):
        for event in gpio.events():
            logger.debug(
                f"{event.time:.3f} GPIO {event.pin}: "
                f"{event.mode.name} {event.level.name} pull {event.pull.name}"
            )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    configure_logging(args.verbose)
    signal.signal(signal.SIGTERM, _terminate)

    try:
        run(args)
    except D1FlashError as exc:
        logger.error(str(exc))
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
