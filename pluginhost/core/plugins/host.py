"""Host collaborator: the process that plugins are installed into.

The registry never executes scripts or touches process-wide state itself; it
asks a :class:`Host` to do so. :class:`PythonHost` is the default host, where
plugin scripts are Python files executed in a fresh namespace that exposes::

    g         # shared dict acting as the host's global namespace
    registry  # the PluginRegistry bound to this host
    Finish    # raise to stop executing the script early

A script typically starts with::

    plugin, proceed = registry.enter(__file__)
    if not proceed:
        raise Finish
"""

from __future__ import annotations

import importlib.util
import sys
from collections.abc import Hashable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import structlog

from pluginhost.core.plugins.helptags import build_help_tags
from pluginhost.core.plugins.layout import LIBRARY_DIR


logger = structlog.get_logger(__name__)


class Finish(Exception):
    """Raised by a sourced script to stop executing, like an early return."""


@runtime_checkable
class Host(Protocol):
    """Operations the plugin registry needs from its scripting host."""

    current_document: Hashable | None

    def add_to_load_path(self, root: Path) -> None: ...

    def source(self, path: Path) -> None: ...

    def set_global(self, name: str, value: Any) -> None: ...

    def expose(self, name: str, value: Any) -> None: ...

    def index_documentation(self, doc_dir: Path) -> None: ...


class PythonHost:
    """Host that sources plugin scripts by loading them as Python modules.

    Each script runs in a fresh module whose globals are pre-seeded with the
    shared namespace and the exposed names.
    """

    def __init__(
        self,
        namespace: dict[str, Any] | None = None,
        extend_sys_path: bool = True,
    ) -> None:
        self.namespace: dict[str, Any] = namespace if namespace is not None else {}
        self.extend_sys_path = extend_sys_path
        self.load_path: list[Path] = []
        self.current_document: Hashable | None = None
        self._exposed: dict[str, Any] = {"Finish": Finish}

    def add_to_load_path(self, root: Path) -> None:
        """Make the plugin's on-demand modules importable."""
        if root in self.load_path:
            return
        self.load_path.append(root)
        library = root / LIBRARY_DIR
        if self.extend_sys_path and library.is_dir() and str(library) not in sys.path:
            sys.path.append(str(library))
        logger.debug("load_path_extended", root=str(root), category="plugin")

    def set_global(self, name: str, value: Any) -> None:
        self.namespace[name] = value

    def expose(self, name: str, value: Any) -> None:
        """Make ``value`` available as a global in every sourced script."""
        self._exposed[name] = value

    def source(self, path: Path) -> None:
        spec = importlib.util.spec_from_file_location(
            f"pluginhost.sourced.{path.stem}", str(path)
        )
        if not spec or not spec.loader:
            raise ImportError(f"Cannot load script {path}")

        module = importlib.util.module_from_spec(spec)
        module.__dict__.update(g=self.namespace, **self._exposed)

        # Temporarily add to sys.modules so classes defined by the script
        # can resolve their module
        old_module = sys.modules.get(spec.name)
        sys.modules[spec.name] = module

        logger.debug("sourcing_script", path=str(path), category="plugin")
        try:
            spec.loader.exec_module(module)
        except Finish:
            logger.debug("script_finished_early", path=str(path), category="plugin")
        finally:
            if old_module is not None:
                sys.modules[spec.name] = old_module
            else:
                sys.modules.pop(spec.name, None)

    def index_documentation(self, doc_dir: Path) -> None:
        build_help_tags(doc_dir)

    @contextmanager
    def editing(self, document: Hashable) -> Iterator[None]:
        """Temporarily make ``document`` the current document."""
        previous = self.current_document
        self.current_document = document
        try:
            yield
        finally:
            self.current_document = previous
