"""Configuration module for the plugin host."""

from .settings import ConfigurationError, LoggingSettings, Settings


__all__ = ["Settings", "LoggingSettings", "ConfigurationError"]
