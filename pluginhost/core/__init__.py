"""Core abstractions for the plugin host."""

from pluginhost.core.errors import (
    AlreadyExistsError,
    BadValueError,
    CannotEnterError,
    ConfigError,
    ImpossibleError,
    NotAuthorizedError,
    NotFoundError,
    PluginHostError,
    UnknownError,
    WrongTypeError,
)


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
