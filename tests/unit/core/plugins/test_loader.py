import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from pluginhost.core.errors import NotAuthorizedError
from pluginhost.core.plugins.entry import FileHandle, OnceTracker
from pluginhost.core.plugins.registry import PluginRegistry


@pytest.mark.unit
def test_candidate_roots(
    registry: PluginRegistry, make_plugin: Callable[..., Path]
) -> None:
    root = make_plugin()
    plugin = registry.install(root)

    assert plugin.loader.candidate_roots("activate") == [
        (root / "activate", False),
        (root / "override" / "activate", True),
    ]


@pytest.mark.unit
def test_load_walks_both_roots_recursively(
    registry: PluginRegistry,
    make_plugin: Callable[..., Path],
    plain_script: Callable[[str], str],
    sourced: Callable[[], list[Any]],
) -> None:
    root = make_plugin(
        files={
            "syntax/a.py": plain_script("a"),
            "syntax/deep/b.py": plain_script("b"),
            "syntax/notes.txt": "not a script",
            "override/syntax/c.py": plain_script("c"),
        }
    )
    plugin = registry.install(root)

    loaded = plugin.loader.load("syntax")

    assert sorted(path.name for path in loaded) == ["a.py", "b.py", "c.py"]
    assert sorted(sourced()) == ["a", "b", "c"]


@pytest.mark.unit
def test_load_skips_entered_handles_only_in_matching_space(
    registry: PluginRegistry,
    make_plugin: Callable[..., Path],
    plain_script: Callable[[str], str],
    sourced: Callable[[], list[Any]],
) -> None:
    root = make_plugin(
        files={
            "activate/x.py": plain_script("x"),
            "override/activate/x.py": plain_script("override x"),
        }
    )
    plugin = registry.install(root)
    tracker = plugin.entry.tracker("activate")
    assert isinstance(tracker, OnceTracker)
    tracker.mark(FileHandle("x"))

    loaded = plugin.loader.load("activate")

    assert loaded == [root / "override" / "activate" / "x.py"]
    assert sourced() == ["override x"]


@pytest.mark.unit
def test_load_missing_directory(
    registry: PluginRegistry, make_plugin: Callable[..., Path]
) -> None:
    plugin = registry.install(make_plugin())

    assert plugin.loader.load("activate") == []


@pytest.mark.unit
def test_load_unreadable_script(
    registry: PluginRegistry,
    make_plugin: Callable[..., Path],
    plain_script: Callable[[str], str],
    sourced: Callable[[], list[Any]],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    root = make_plugin(files={"activate/locked.py": plain_script("locked")})
    plugin = registry.install(root)

    with monkeypatch.context() as m:
        m.setattr(os, "access", lambda path, mode: False)
        with pytest.raises(NotAuthorizedError, match="activate/locked.py"):
            plugin.loader.load("activate")

    assert sourced() == []
