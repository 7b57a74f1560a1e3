"""Core error types for the plugin host."""

from collections.abc import Sequence
from typing import ClassVar


class PluginHostError(Exception):
    """Base exception for all plugin host errors."""

    kind: ClassVar[str] = "PluginHostError"

    def __init__(self, message: str, cause: Exception | None = None):
        """Initialize with a message and optional cause.

        Args:
            message: The error message
            cause: The underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause:
            self.__cause__ = cause


class BadValueError(PluginHostError):
    """Malformed input: empty paths, bad flag references, wrong value shapes."""

    kind = "BadValue"


class WrongTypeError(BadValueError):
    """A value had a type that cannot be used at this point."""

    kind = "WrongType"


class AlreadyExistsError(PluginHostError):
    """A plugin with the same canonical name is already registered."""

    kind = "AlreadyExists"


class NotFoundError(PluginHostError):
    """Unregistered plugin, undeclared flag, missing key or missing file."""

    kind = "NotFound"


class NotAuthorizedError(PluginHostError):
    """A file exists but cannot be read."""

    kind = "NotAuthorized"


class ConfigError(PluginHostError):
    """One or more settings failed to apply to a plugin."""

    kind = "ConfigError"

    def __init__(
        self,
        message: str,
        plugin: str | None = None,
        failures: Sequence[Exception] = (),
        cause: Exception | None = None,
    ):
        """Initialize with a message, the plugin name and collected failures.

        Args:
            message: The error message
            plugin: Name of the plugin being configured
            failures: Every per-setting error that was collected
            cause: The underlying exception
        """
        super().__init__(message, cause)
        self.plugin = plugin
        self.failures = list(failures)


class CannotEnterError(PluginHostError):
    """A file outside the entering capability directories tried to enter."""

    kind = "CannotEnter"


class UnknownError(PluginHostError):
    """A feature that was explicitly disabled was used anyway."""

    kind = "Unknown"


class ImpossibleError(PluginHostError):
    """An external collaborator reported a known fatal condition."""

    kind = "Impossible"


__all__ = [
    "PluginHostError",
    "BadValueError",
    "WrongTypeError",
    "AlreadyExistsError",
    "NotFoundError",
    "NotAuthorizedError",
    "ConfigError",
    "CannotEnterError",
    "UnknownError",
    "ImpossibleError",
]
