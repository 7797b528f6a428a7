"""Helpers for loading and validating the d1flash configuration file.

The file describes the two GPIO lines wired to the target and the recipes
that can be run once it is in boot mode. TOML, YAML and JSON are
accepted; the format is picked from the file extension.
"""

from dataclasses import dataclass, field
import json
from pathlib import Path
from typing import Any, Callable, Optional, Union
import tomllib

import yaml  # type: ignore[import-untyped]

from d1flash.core.exceptions import ConfigurationError
from d1flash.core.gpio_enums import LogicLevel, PinMode
from d1flash.core.open_drain import PinDropState
from d1flash.core.recipe import Recipe

MAX_PIN = 255


@dataclass(frozen=True)
class PinConfig:
    pin: int
    state: PinDropState = field(default_factory=PinDropState)


@dataclass(frozen=True)
class Configuration:
    boot: PinConfig
    reset: PinConfig
    default_recipe: str
    recipes: dict[str, Recipe]

    @property
    def default(self) -> Recipe:
        return self.recipes[self.default_recipe]


def _load_toml_file(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as fh:
            return tomllib.load(fh)
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Failed to parse config: {exc}") from exc


def _load_yaml_file(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
    except (yaml.YAMLError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Failed to parse config: {exc}") from exc

    return raw


def _load_json_file(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Failed to parse config: {exc}") from exc


_LOADERS: dict[str, Callable[[Path], dict[str, Any]]] = {
    ".toml": _load_toml_file,
    ".yaml": _load_yaml_file,
    ".yml": _load_yaml_file,
    ".json": _load_json_file,
}


def _load_file(path: Path) -> dict[str, Any]:
    loader = _LOADERS.get(path.suffix.lower())
    if loader is None:
        raise ConfigurationError(
            f"Unsupported config format '{path.suffix}' (expected one of: {', '.join(_LOADERS)})"
        )
    try:
        raw = loader(path)
    except OSError as exc:
        raise ConfigurationError(f"Failed to read config {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigurationError("Config file must contain a table at the top level")
    return raw


def _require_table(raw: Any, key: str) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise ConfigurationError(key, "must be a table")
    return raw


def _parse_optional(
    raw: dict[str, Any], key: str, parse: Callable[[Any], Any], config_key: str
) -> Optional[Any]:
    value = raw.get(key)
    if value is None:
        return None
    try:
        return parse(value)
    except ValueError as exc:
        raise ConfigurationError(config_key, str(exc)) from exc


def _build_drop_state(raw: Any, key: str) -> PinDropState:
    if raw is None:
        return PinDropState()
    raw = _require_table(raw, key)
    return PinDropState(
        mode=_parse_optional(raw, "mode", PinMode.parse, f"{key}.mode"),
        level=_parse_optional(raw, "level", LogicLevel.parse, f"{key}.level"),
        pull=_parse_optional(raw, "pull", LogicLevel.parse, f"{key}.pull"),
    )


def _build_pin_config(raw: Any, key: str) -> PinConfig:
    raw = _require_table(raw, key)
    if "pin" not in raw:
        raise ConfigurationError(f"{key}.pin", "missing required key")
    pin = raw["pin"]
    if isinstance(pin, bool) or not isinstance(pin, int) or not 0 <= pin <= MAX_PIN:
        raise ConfigurationError(f"{key}.pin", f"must be an integer in [0-{MAX_PIN}], got {pin!r}")
    return PinConfig(pin=pin, state=_build_drop_state(raw.get("state"), f"{key}.state"))


def _build_recipe(raw: Any, key: str) -> Recipe:
    raw = _require_table(raw, key)
    command = raw.get("command")
    if not isinstance(command, str) or not command:
        raise ConfigurationError(f"{key}.command", "must be a non-empty string")
    arguments = raw.get("arguments", [])
    if not isinstance(arguments, list) or not all(isinstance(arg, str) for arg in arguments):
        raise ConfigurationError(f"{key}.arguments", "must be a list of strings")
    return Recipe(command=command, arguments=tuple(arguments))


def _parse_configuration_from_dict(raw: dict[str, Any]) -> Configuration:
    try:
        boot = _build_pin_config(raw["boot"], "boot")
        reset = _build_pin_config(raw["reset"], "reset")
        default_recipe = raw["default_recipe"]
        recipes_raw = _require_table(raw["recipes"], "recipes")
    except KeyError as exc:
        raise ConfigurationError(f"Missing required config key: {exc}") from exc

    if not isinstance(default_recipe, str):
        raise ConfigurationError("default_recipe", "must be a string")

    cfg = Configuration(
        boot=boot,
        reset=reset,
        default_recipe=default_recipe,
        recipes={
            str(name): _build_recipe(recipe, f"recipes.{name}")
            for name, recipe in recipes_raw.items()
        },
    )

    _validate_configuration(cfg)
    return cfg


def _validate_configuration(cfg: Configuration) -> None:
    """Cross-field checks that must pass before any hardware is touched."""
    if cfg.default_recipe not in cfg.recipes:
        raise ConfigurationError(
            "default_recipe",
            f"'{cfg.default_recipe}' does not match any of the given recipes "
            f"({', '.join(sorted(cfg.recipes)) or 'none configured'})",
        )

    if cfg.boot.pin == cfg.reset.pin:
        raise ConfigurationError("reset.pin", f"boot and reset both use GPIO {cfg.boot.pin}")


def load_config(path: Union[str, Path]) -> Configuration:
    """Load and validate configuration from a TOML or YAML file.

    Args:
        path: Path to the config file.

    Returns:
        Configuration instance

    Raises:
        ConfigurationError: on read, parse or validation errors
    """
    return _parse_configuration_from_dict(raw=_load_file(Path(path)))
