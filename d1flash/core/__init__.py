"""Core modules for d1flash.

- exceptions: error hierarchy
- gpio_enums: logic level, pin mode, pull and open-drain state enumerations
- open_drain: simulated open-drain pin with guaranteed state restoration
- recipe: external commands and recipe selection
- sequencer: the timed boot/reset sequence
"""
