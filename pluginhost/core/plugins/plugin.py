"""Installed plugin: location, flags, entry state and lifecycle operations."""

from __future__ import annotations

import os
from collections.abc import Hashable, Iterable, Sequence
from pathlib import Path
from typing import Any

import structlog

from pluginhost.core.errors import (
    BadValueError,
    ConfigError,
    ImpossibleError,
    NotAuthorizedError,
    NotFoundError,
    PluginHostError,
    UnknownError,
    WrongTypeError,
)
from pluginhost.core.plugins.entry import EntryController, FileHandle
from pluginhost.core.plugins.flags import UNSET, FlagStore, Translator
from pluginhost.core.plugins.helptags import IndexingError
from pluginhost.core.plugins.host import Host
from pluginhost.core.plugins.layout import (
    DEFERRED_DIR,
    DOCUMENT_DIR,
    DOCUMENTATION_DIR,
    FLAG_GATED_DIRS,
    FLAGS_FILE,
    IMMEDIATE_DIR,
    LIBRARY_DIR,
    MAPPINGS_FILE,
    NON_LIBRARY_DIRS,
    OVERRIDE_DIR,
    SCRIPT_SUFFIX,
    TrackerKind,
    is_default_on,
)
from pluginhost.core.plugins.loader import DirectoryLoader
from pluginhost.core.plugins.naming import location_path
from pluginhost.core.plugins.settings import Setting, apply_settings


logger = structlog.get_logger(__name__)

DEFAULT_MAP_PREFIX = "<Leader>"

# Indexer diagnostics that mean the documentation cannot be indexed at all.
FATAL_INDEX_CODES = frozenset({"E152", "E153", "E154", "E670"})

_MAPPINGS_ENABLED = frozenset({"1", "default"})


class Plugin:
    """A plugin installed into a registry.

    Plugins are created by :class:`~pluginhost.core.plugins.registry.PluginRegistry`
    and live for the rest of the process.
    """

    def __init__(
        self,
        name: str,
        location: str,
        host: Host,
        map_prefix: str = DEFAULT_MAP_PREFIX,
    ) -> None:
        self.name = name
        self.location = location
        self.host = host
        self.default_map_prefix = map_prefix
        self.flags = FlagStore(name)
        self.entry = EntryController(name)
        self.loader = DirectoryLoader(self)

    def __repr__(self) -> str:
        return f"Plugin(name={self.name!r}, location={self.location!r})"

    @property
    def root(self) -> Path:
        return location_path(self.location)

    def initialize(self, settings: Iterable[Setting] = ()) -> None:
        """Run the install-time sequence.

        The flags script is sourced before settings are applied, and settings
        are applied before the immediate-activation directory is loaded.
        """
        self.host.add_to_load_path(self.root)

        for directory in FLAG_GATED_DIRS:
            if self.has_dir(directory):
                flag = self.flags.declare(directory, {})
                flag.add_translator(_require_switches(self.name, directory))

        self.host.set_global(f"installed_{self.name}", True)

        self.source([IMMEDIATE_DIR, FLAGS_FILE], optional=True)

        config_error: ConfigError | None = None
        try:
            self.apply_settings(settings)
        except ConfigError as e:
            config_error = e

        self.loader.load(IMMEDIATE_DIR)

        logger.info(
            "plugin_initialized",
            plugin=self.name,
            location=self.location,
            category="plugin",
        )
        if config_error is not None:
            raise config_error

    def apply_settings(self, settings: Iterable[Setting]) -> None:
        apply_settings(self, settings)

    def source(self, path: str | Sequence[str], optional: bool = False) -> bool:
        """Source one script addressed relative to the plugin root.

        Args:
            path: Path segment or segments; the script suffix is implied
            optional: Return False instead of raising when it can't be sourced

        Returns:
            True if the script was sourced
        """
        parts = [path] if isinstance(path, str) else list(path)
        if not parts:
            raise BadValueError(f"No file given to source in plugin {self.name}")
        bare = self.root.joinpath(*parts)
        script = bare.with_name(bare.name + SCRIPT_SUFFIX)
        relative = "/".join(parts)

        error: PluginHostError | None = None
        if script.is_dir() or (bare.is_dir() and not script.exists()):
            error = BadValueError(
                f"Cannot source {relative} in plugin {self.name}: it is a directory"
            )
        elif not script.exists():
            error = NotFoundError(
                f"File {relative}{SCRIPT_SUFFIX} not found in plugin {self.name}"
            )
        elif not os.access(script, os.R_OK):
            error = NotAuthorizedError(
                f"File {relative}{SCRIPT_SUFFIX} in plugin {self.name} "
                "is not readable"
            )

        if error is not None:
            if optional:
                logger.debug(
                    "plugin_optional_file_skipped",
                    plugin=self.name,
                    file=relative,
                    reason=error.kind,
                    category="plugin",
                )
                return False
            raise error

        self.host.source(script)
        logger.debug(
            "plugin_file_sourced", plugin=self.name, file=relative, category="plugin"
        )
        return True

    def load(
        self, files: str | Sequence[str] | None = None, optional: bool = False
    ) -> list[Path]:
        """Load deferred-activation scripts.

        With ``files``, each name is sourced as ``activate/<name>``. Without,
        every deferred-activation script not yet entered is sourced.
        """
        if files is None:
            return self.loader.load(DEFERRED_DIR)

        names = [files] if isinstance(files, str) else list(files)
        loaded: list[Path] = []
        for name in names:
            if self.source([DEFERRED_DIR, name], optional=optional):
                loaded.append(self.root / DEFERRED_DIR / f"{name}{SCRIPT_SUFFIX}")
        return loaded

    def load_document(self, document: Hashable) -> list[Path]:
        """Run the per-document scripts against ``document``."""
        previous = self.host.current_document
        self.host.current_document = document
        try:
            return self.loader.load(DOCUMENT_DIR)
        finally:
            self.host.current_document = previous

    def flag(self, reference: str, value: Any = UNSET) -> Any:
        """Get a flag value, or set it when ``value`` is given."""
        if value is UNSET:
            return self.flags.get(reference)
        self.flags.set(reference, value)
        return None

    def enter(
        self,
        directory: str,
        handle: FileHandle,
        document: Hashable | None = None,
    ) -> bool:
        """Decide whether a script should run, recording that it has.

        For once-per-process directories the handle is checked before any flag
        is consulted and marked before returning True, i.e. before the
        script body runs. A script that re-sources itself or installs its own
        plugin therefore sees itself as entered and stops.
        """
        tracker = self.entry.tracker(directory)

        if tracker.kind is TrackerKind.PER_DOCUMENT:
            if document is None:
                document = self.host.current_document
            if document is None:
                raise BadValueError(
                    f"Cannot enter {directory}/{handle} in plugin {self.name} "
                    "without a current document"
                )
            return tracker.enter(handle, document)

        if handle in tracker:
            return False

        if directory in FLAG_GATED_DIRS and not self.is_enabled(directory, handle):
            logger.debug(
                "plugin_enter_suppressed",
                plugin=self.name,
                directory=directory,
                handle=str(handle),
                category="plugin",
            )
            return False

        tracker.mark(handle)
        return True

    def is_enabled(self, directory: str, handle: FileHandle) -> bool:
        switch = self._switch(directory, handle)
        if switch is UNSET:
            return is_default_on(directory, handle.name)
        return not _is_disabled(switch)

    def _switch(self, directory: str, handle: FileHandle) -> Any:
        """Return the per-file switch for ``handle``, or UNSET.

        An overlay script is looked up under its own ``override/<name>`` key
        first and then under the key of the script it overlays.
        """
        if not self.flags.has_flag(directory):
            return UNSET
        switches = self.flags.get(directory)
        if not isinstance(switches, dict):
            raise WrongTypeError(
                f"Flag {directory!r} in plugin {self.name} must be a mapping of "
                f"file switches, got {type(switches).__name__}"
            )
        for key in dict.fromkeys((handle.flag_key, handle.name)):
            if key in switches:
                return switches[key]
        return UNSET

    def entered(self, directory: str) -> list[FileHandle]:
        return self.entry.entered(directory)

    def has_dir(self, name: str) -> bool:
        root = self.root
        return (root / name).is_dir() or (root / OVERRIDE_DIR / name).is_dir()

    def has_file(self, *parts: str) -> bool:
        relative = Path(*parts[:-1], parts[-1] + SCRIPT_SUFFIX)
        root = self.root
        return (root / relative).is_file() or (
            root / OVERRIDE_DIR / relative
        ).is_file()

    def is_library(self) -> bool:
        """True for plugins that only provide on-demand functions."""
        if not self.has_dir(LIBRARY_DIR):
            return False
        return not any(self.has_dir(directory) for directory in NON_LIBRARY_DIRS)

    def generate_index(self) -> bool:
        """Index the documentation directory.

        Returns:
            False if the plugin has no documentation directory

        Raises:
            ImpossibleError: If the indexer reported a fatal diagnostic
        """
        doc_dir = self.root / DOCUMENTATION_DIR
        if not doc_dir.is_dir():
            return False
        try:
            self.host.index_documentation(doc_dir)
        except IndexingError as e:
            if e.code in FATAL_INDEX_CODES:
                raise ImpossibleError(
                    f"Could not generate help index for plugin {self.name}: {e}",
                    cause=e,
                ) from e
            raise
        logger.info("plugin_index_generated", plugin=self.name, category="plugin")
        return True

    def map_prefix(self, letter: str, throw_on_error: bool = False) -> str:
        """Return the key prefix for one of the plugin's mappings.

        The ``plugin[mappings]`` flag selects the prefix. ``None``, ``False``,
        zero and ``"0"`` disable mappings; ``True``, ``1`` and ``"default"``
        use the default prefix. Any other non-empty string is the prefix
        itself, and an empty string is invalid.
        """
        if not self.has_file(IMMEDIATE_DIR, MAPPINGS_FILE):
            raise NotFoundError(f"Plugin {self.name} has no mappings file")

        reference = f"{IMMEDIATE_DIR}[{MAPPINGS_FILE}]"
        own_file = (self.root / IMMEDIATE_DIR / MAPPINGS_FILE).with_suffix(
            SCRIPT_SUFFIX
        )
        handle = FileHandle(MAPPINGS_FILE, overlay=not own_file.is_file())
        prefix = self._switch(IMMEDIATE_DIR, handle)
        if prefix is UNSET:
            prefix = is_default_on(IMMEDIATE_DIR, MAPPINGS_FILE)

        if _is_disabled(prefix):
            raise UnknownError(
                f"Mappings for plugin {self.name} are disabled; set {reference} "
                "to enable them"
            )
        if prefix is True or prefix == 1 or (
            isinstance(prefix, str) and prefix in _MAPPINGS_ENABLED
        ):
            return self.default_map_prefix + letter
        if isinstance(prefix, str) and prefix:
            return prefix + letter

        error = BadValueError(
            f"Invalid value for {reference} in plugin {self.name}: {prefix!r}; "
            "expected a non-empty prefix string"
        )
        if throw_on_error:
            raise error
        logger.error(
            "plugin_map_prefix_invalid",
            plugin=self.name,
            value=repr(prefix),
            error=str(error),
            category="plugin",
        )
        return self.default_map_prefix + letter


def _is_disabled(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, int | float) and not isinstance(value, bool):
        return value == 0
    return value == "0"


def _require_switches(plugin: str, directory: str) -> Translator:
    def translate(value: Any) -> Any:
        if not isinstance(value, dict):
            raise WrongTypeError(
                f"Flag {directory!r} in plugin {plugin} must be a mapping of "
                f"file switches, got {type(value).__name__}"
            )
        return value

    return translate
