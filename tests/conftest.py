"""Shared test fixtures and configuration for pluginhost tests.

Plugins under test are real directory trees built in ``tmp_path``. Scripts
record what ran by appending to lists in the host's global namespace ``g``.
"""

import textwrap
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from pluginhost.core.plugins.host import PythonHost
from pluginhost.core.plugins.registry import PluginRegistry


def entering_script(label: str) -> str:
    """Script that enters its plugin and records ``label`` when it proceeds."""
    return textwrap.dedent(
        f"""\
        plugin, proceed = registry.enter(__file__)
        if not proceed:
            raise Finish
        g.setdefault("sourced", []).append({label!r})
        """
    )


def recording_script(label: str) -> str:
    """Script that records ``label`` every time it is sourced."""
    return f"g.setdefault('sourced', []).append({label!r})\n"


@pytest.fixture
def host() -> PythonHost:
    """Host that leaves ``sys.path`` untouched."""
    return PythonHost(extend_sys_path=False)


@pytest.fixture
def registry(host: PythonHost) -> PluginRegistry:
    """Fresh registry bound to the test host."""
    return PluginRegistry(host)


@pytest.fixture
def sourced(host: PythonHost) -> Callable[[], list[Any]]:
    """Return a callable listing the labels recorded by sourced scripts."""

    def _sourced() -> list[Any]:
        return list(host.namespace.get("sourced", []))

    return _sourced


@pytest.fixture
def make_plugin(tmp_path: Path) -> Callable[..., Path]:
    """Create a plugin tree under ``tmp_path``.

    ``files`` maps paths relative to the plugin root to file contents; a path
    ending in ``/`` creates an empty directory.
    """

    def _make(name: str = "myplugin", files: dict[str, str] | None = None) -> Path:
        root = tmp_path / name
        root.mkdir(parents=True, exist_ok=True)
        for relative, content in (files or {}).items():
            path = root / relative
            if relative.endswith("/"):
                path.mkdir(parents=True, exist_ok=True)
                continue
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return root

    return _make


@pytest.fixture
def script() -> Callable[[str], str]:
    return entering_script


@pytest.fixture
def plain_script() -> Callable[[str], str]:
    return recording_script
