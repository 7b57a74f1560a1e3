"""Plugin system public API (lazy facade).

This package re-exports the stable plugin API while avoiding circular imports
at module import time. Names are loaded lazily via ``__getattr__`` on first
access.
"""

from __future__ import annotations

from typing import Any, Dict, Tuple

_EXPORTS: Dict[str, Tuple[str, str]] = {
    # Registry and plugins
    "PluginRegistry": ("pluginhost.core.plugins.registry", "PluginRegistry"),
    "Plugin": ("pluginhost.core.plugins.plugin", "Plugin"),
    "DEFAULT_MAP_PREFIX": ("pluginhost.core.plugins.plugin", "DEFAULT_MAP_PREFIX"),
    "canonical_name": ("pluginhost.core.plugins.naming", "canonical_name"),
    "normalize_location": ("pluginhost.core.plugins.naming", "normalize_location"),
    # Flags and settings
    "Flag": ("pluginhost.core.plugins.flags", "Flag"),
    "FlagReference": ("pluginhost.core.plugins.flags", "FlagReference"),
    "FlagStore": ("pluginhost.core.plugins.flags", "FlagStore"),
    "UNSET": ("pluginhost.core.plugins.flags", "UNSET"),
    "Setting": ("pluginhost.core.plugins.settings", "Setting"),
    "SettingOperation": ("pluginhost.core.plugins.settings", "SettingOperation"),
    "apply_settings": ("pluginhost.core.plugins.settings", "apply_settings"),
    "settings_from_mapping": (
        "pluginhost.core.plugins.settings",
        "settings_from_mapping",
    ),
    # Entry tracking and loading
    "EntryController": ("pluginhost.core.plugins.entry", "EntryController"),
    "FileHandle": ("pluginhost.core.plugins.entry", "FileHandle"),
    "OnceTracker": ("pluginhost.core.plugins.entry", "OnceTracker"),
    "PerDocumentTracker": ("pluginhost.core.plugins.entry", "PerDocumentTracker"),
    "DirectoryLoader": ("pluginhost.core.plugins.loader", "DirectoryLoader"),
    "TrackerKind": ("pluginhost.core.plugins.layout", "TrackerKind"),
    # Host collaborator
    "Host": ("pluginhost.core.plugins.host", "Host"),
    "PythonHost": ("pluginhost.core.plugins.host", "PythonHost"),
    "Finish": ("pluginhost.core.plugins.host", "Finish"),
    "IndexingError": ("pluginhost.core.plugins.helptags", "IndexingError"),
    "build_help_tags": ("pluginhost.core.plugins.helptags", "build_help_tags"),
}


__all__ = list(_EXPORTS.keys())


def __getattr__(name: str) -> Any:  # pragma: no cover - import facade
    if name not in _EXPORTS:
        raise AttributeError(
            f"module 'pluginhost.core.plugins' has no attribute {name!r}"
        )
    module_name, attr_name = _EXPORTS[name]
    import importlib

    module = importlib.import_module(module_name)
    return getattr(module, attr_name)


def __dir__() -> list[str]:  # pragma: no cover - tooling aid
    return sorted(list(globals().keys()) + __all__)
