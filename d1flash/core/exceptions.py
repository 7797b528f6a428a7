"""Custom exceptions used throughout the d1flash package."""

from typing import Any, Optional


class D1FlashError(Exception):
    """Base exception for all d1flash errors.

    All d1flash-specific exceptions should inherit from this class.
    The CLI catches this single type to turn failures into a non-zero exit.
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Additional context about the error
        """

        super().__init__(message)
        self.details = details or {}


class ConfigurationError(D1FlashError):
    """Raised when there's an error in configuration.

    This includes:
    - Unreadable or unparsable configuration file
    - Missing required configuration
    - Invalid configuration value (unknown mode, level, ...)
    - A default recipe that is not among the configured recipes
    """

    def __init__(
        self,
        config_key: Optional[str] = None,
        message: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        """Initialize configuration error.

        Args:
            config_key: The configuration key that caused the error
            message: Description of what's wrong. If omitted, config_key is
                treated as the message and the key defaults to "configuration".
            details: Additional context
        """
        if message is None:
            message = config_key or "Invalid configuration"
            config_key = "configuration"
        if config_key is None:
            config_key = "configuration"

        full_message = f"Configuration error for '{config_key}': {message}"
        super().__init__(message=full_message, details=details)
        self.config_key = config_key


class GpioError(D1FlashError):
    """Base exception for GPIO hardware errors."""


class PinAcquisitionError(GpioError):
    """Raised when a GPIO line cannot be acquired.

    Examples:
    - Line number outside the controller's range
    - Line already claimed by this process or by another consumer
    - Character device missing or not accessible
    """

    def __init__(
        self,
        pin: int,
        reason: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        message = f"Cannot acquire GPIO {pin}"
        if reason:
            message = f"{message}: {reason}"
        details = details or {}
        details["pin"] = pin
        super().__init__(message=message, details=details)
        self.pin = pin
        self.reason = reason


class UnsupportedModeError(GpioError):
    """Raised when a controller cannot put a line into the requested mode."""

    def __init__(self, mode: Any, controller: str, details: Optional[dict[str, Any]] = None):
        message = f"Pin mode {mode} is not supported by the {controller} controller"
        super().__init__(message=message, details=details)
        self.mode = mode
        self.controller = controller


class PinClosedError(GpioError):
    """Raised when a pin is used after its teardown has run."""

    def __init__(self, pin: int):
        super().__init__(message=f"GPIO {pin} has already been released", details={"pin": pin})
        self.pin = pin


class RecipeError(D1FlashError):
    """Base exception for recipe execution errors."""


class RecipeSpawnError(RecipeError):
    """Raised when the recipe command cannot be started.

    Examples:
    - Command not found
    - Permission denied
    """

    def __init__(self, command: str, cause: OSError):
        super().__init__(
            message=f"Failed to start '{command}': {cause}",
            details={"command": command, "errno": cause.errno},
        )
        self.command = command
        self.cause = cause


class RecipeFailedError(RecipeError):
    """Raised when the recipe command exits with a non-zero status."""

    def __init__(self, command: str, returncode: int):
        super().__init__(
            message=f"'{command}' exited with status {returncode}",
            details={"command": command, "returncode": returncode},
        )
        self.command = command
        self.returncode = returncode
