"""Process-wide table of installed plugins."""

from __future__ import annotations

import os
from collections.abc import Hashable, Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

import structlog
from sortedcontainers import SortedDict

from pluginhost.core.errors import (
    AlreadyExistsError,
    BadValueError,
    CannotEnterError,
    NotFoundError,
)
from pluginhost.core.plugins.entry import FileHandle
from pluginhost.core.plugins.host import Host, PythonHost
from pluginhost.core.plugins.layout import ENTER_DIRS, OVERRIDE_DIR
from pluginhost.core.plugins.naming import canonical_name, normalize_location
from pluginhost.core.plugins.plugin import DEFAULT_MAP_PREFIX, Plugin
from pluginhost.core.plugins.settings import Setting, settings_from_mapping


logger = structlog.get_logger(__name__)

SettingsInput = Iterable[Setting] | Mapping[str, Any]


def _coerce_settings(settings: SettingsInput | None) -> list[Setting]:
    if settings is None:
        return []
    if isinstance(settings, Mapping):
        return settings_from_mapping(settings)
    return list(settings)


class PluginRegistry:
    """Registry of installed plugins keyed by canonical name.

    A registry is bound to one host and exposes itself to every script that
    host sources as the ``registry`` global. Plugins are never removed.
    """

    def __init__(
        self, host: Host | None = None, map_prefix: str = DEFAULT_MAP_PREFIX
    ) -> None:
        self.host: Host = host if host is not None else PythonHost()
        self.map_prefix = map_prefix
        self._plugins: SortedDict[str, Plugin] = SortedDict()
        self.host.expose("registry", self)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.is_registered(name)

    def __len__(self) -> int:
        return len(self._plugins)

    def plugins(self) -> Iterator[Plugin]:
        return iter(self._plugins.values())

    def install(
        self, directory: str | os.PathLike[str], settings: SettingsInput | None = None
    ) -> Plugin:
        """Install the plugin rooted at ``directory``.

        Raises:
            AlreadyExistsError: If a plugin with the same name is registered
            ConfigError: If any setting failed; the plugin stays installed
        """
        location = normalize_location(directory)
        name = canonical_name(location)
        if not name:
            raise BadValueError(f"Cannot derive a plugin name from {directory!r}")
        if name in self._plugins:
            existing = self._plugins[name]
            raise AlreadyExistsError(
                f"Plugin {name} already installed at {existing.location}"
            )

        plugin = Plugin(name, location, self.host, map_prefix=self.map_prefix)
        # Registered before initialization so scripts sourced during install
        # resolve this plugin instead of installing it again.
        self._plugins[name] = plugin
        logger.info(
            "plugin_installed", plugin=name, location=location, category="plugin"
        )
        plugin.initialize(_coerce_settings(settings))
        return plugin

    def get_or_install(
        self, directory: str | os.PathLike[str], settings: SettingsInput | None = None
    ) -> Plugin:
        """Return the plugin rooted at ``directory``, installing it if needed."""
        location = normalize_location(directory)
        name = canonical_name(location)
        plugin = self._plugins.get(name)
        if plugin is None:
            return self.install(location, settings)

        if plugin.location != location:
            raise AlreadyExistsError(
                f"Conflicting plugin {name}: installed at {plugin.location}, "
                f"requested from {location}"
            )
        plugin.apply_settings(_coerce_settings(settings))
        return plugin

    def get(self, name: str | os.PathLike[str]) -> Plugin:
        canonical = canonical_name(name)
        try:
            return self._plugins[canonical]
        except KeyError:
            raise NotFoundError(f"Plugin {canonical} not found") from None

    def is_registered(self, name: str | os.PathLike[str]) -> bool:
        return canonical_name(name) in self._plugins

    def registered_plugins(self) -> list[str]:
        return list(self._plugins.keys())

    def enter(
        self, file_path: str | os.PathLike[str], document: Hashable | None = None
    ) -> tuple[Plugin, bool]:
        """Called at the top of a plugin script to decide whether it runs.

        The owning plugin is installed first if necessary.

        Returns:
            The owning plugin and whether the script should proceed
        """
        root, directory, handle = self.locate(file_path)
        plugin = self.get_or_install(root)
        proceed = plugin.enter(directory, handle, document)
        logger.debug(
            "plugin_file_entered",
            plugin=plugin.name,
            directory=directory,
            handle=str(handle),
            proceed=proceed,
            category="plugin",
        )
        return plugin, proceed

    def locate(
        self, file_path: str | os.PathLike[str]
    ) -> tuple[Path, str, FileHandle]:
        """Split a script path into plugin root, capability directory and handle.

        Installed roots are tried longest first. A path below an installed root
        that is not inside one of that root's capability directories belongs to
        a plugin nested further down, found by the nearest enclosing capability
        directory.
        """
        path = Path(os.path.abspath(os.fspath(file_path)))

        for plugin in sorted(
            self._plugins.values(), key=lambda p: len(p.location), reverse=True
        ):
            root = plugin.root
            if path.is_relative_to(root):
                located = self._split(root, path)
                if located is not None:
                    return located

        for ancestor in path.parents:
            if ancestor.name not in ENTER_DIRS:
                continue
            base = ancestor.parent
            overlay = base.name == OVERRIDE_DIR
            root = base.parent if overlay else base
            return root, ancestor.name, FileHandle.from_path(ancestor, path, overlay)

        raise CannotEnterError(
            f"Cannot enter {path}: not inside one of "
            f"{', '.join(sorted(ENTER_DIRS))}"
        )

    def _split(
        self, root: Path, path: Path
    ) -> tuple[Path, str, FileHandle] | None:
        parts = path.relative_to(root).parts
        overlay = bool(parts) and parts[0] == OVERRIDE_DIR
        index = 1 if overlay else 0
        if len(parts) < index + 2 or parts[index] not in ENTER_DIRS:
            return None
        base = root.joinpath(*parts[: index + 1])
        return root, parts[index], FileHandle.from_path(base, path, overlay)
