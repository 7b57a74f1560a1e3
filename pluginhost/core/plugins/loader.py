"""Batch loading of a plugin's capability directory."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from pluginhost.core.errors import NotAuthorizedError
from pluginhost.core.plugins.entry import FileHandle
from pluginhost.core.plugins.layout import OVERRIDE_DIR, SCRIPT_SUFFIX


if TYPE_CHECKING:
    from pluginhost.core.plugins.plugin import Plugin


logger = structlog.get_logger(__name__)


class DirectoryLoader:
    """Sources every script of one capability directory not yet entered.

    Both ``<root>/<directory>`` and the overlay ``<root>/override/<directory>``
    are scanned recursively. Scripts whose handle is already in the plugin's
    once-tracker are skipped. The order among sibling scripts is not part of
    the contract; callers that need an order source files explicitly.
    """

    def __init__(self, plugin: Plugin) -> None:
        self.plugin = plugin

    def candidate_roots(self, directory: str) -> list[tuple[Path, bool]]:
        root = self.plugin.root
        return [
            (root / directory, False),
            (root / OVERRIDE_DIR / directory, True),
        ]

    def load(self, directory: str) -> list[Path]:
        """Source the directory's pending scripts and return their paths."""
        skip = self.plugin.entry.skip_list(directory)
        sourced: list[Path] = []

        for base, overlay in self.candidate_roots(directory):
            if not base.is_dir():
                continue
            for path in sorted(base.rglob(f"*{SCRIPT_SUFFIX}")):
                if not path.is_file():
                    continue
                handle = FileHandle.from_path(base, path, overlay=overlay)
                if handle in skip:
                    logger.debug(
                        "plugin_file_skipped",
                        plugin=self.plugin.name,
                        directory=directory,
                        handle=str(handle),
                        category="plugin",
                    )
                    continue
                if not os.access(path, os.R_OK):
                    raise NotAuthorizedError(
                        f"File {path.relative_to(self.plugin.root)} in plugin "
                        f"{self.plugin.name} is not readable"
                    )
                self.plugin.host.source(path)
                sourced.append(path)

        logger.debug(
            "plugin_directory_loaded",
            plugin=self.plugin.name,
            directory=directory,
            sourced=len(sourced),
            skipped=len(skip),
            category="plugin",
        )
        return sourced
