"""GPIO controller implementations.

- virtual: in-memory controller recording every line change
- gpiod_chip: Linux GPIO character device via libgpiod (imported on demand)
"""

DEFAULT_CHIP = "/dev/gpiochip0"
