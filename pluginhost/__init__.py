"""Plugin lifecycle manager: registry, flag store and directory loader."""

from pluginhost.core.errors import PluginHostError
from pluginhost.core.plugins.host import Finish, PythonHost
from pluginhost.core.plugins.plugin import Plugin
from pluginhost.core.plugins.registry import PluginRegistry
from pluginhost.core.plugins.settings import Setting, SettingOperation


__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Finish",
    "Plugin",
    "PluginHostError",
    "PluginRegistry",
    "PythonHost",
    "Setting",
    "SettingOperation",
]
