"""Command modules for the pluginhost CLI."""

from .plugins import app as plugins_app


__all__ = ["plugins_app"]
