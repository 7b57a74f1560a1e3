"""Tests for the enter state machine driven by real plugin scripts."""

import textwrap
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from pluginhost.core.errors import (
    BadValueError,
    CannotEnterError,
    ConfigError,
    UnknownError,
    WrongTypeError,
)
from pluginhost.core.plugins.entry import FileHandle, PerDocumentTracker
from pluginhost.core.plugins.host import PythonHost
from pluginhost.core.plugins.registry import PluginRegistry


SourcedList = Callable[[], list[Any]]


@pytest.mark.unit
def test_enter_twice_proceeds_once(
    registry: PluginRegistry, make_plugin: Callable[..., Path]
) -> None:
    root = make_plugin(files={"activate/a.py": ""})
    path = root / "activate" / "a.py"

    plugin, first = registry.enter(path)
    again, second = registry.enter(path)

    assert (first, second) == (True, False)
    assert plugin is again
    assert plugin.entered("activate") == [FileHandle("a")]


@pytest.mark.unit
def test_enter_installs_owning_plugin(
    registry: PluginRegistry,
    host: PythonHost,
    make_plugin: Callable[..., Path],
    script: Callable[[str], str],
    sourced: SourcedList,
) -> None:
    root = make_plugin(
        files={
            "plugin/startup.py": script("startup"),
            "activate/feature.py": script("feature"),
        }
    )

    host.source(root / "activate" / "feature.py")

    assert registry.is_registered("myplugin")
    assert sourced() == ["startup", "feature"]


@pytest.mark.unit
def test_script_sourcing_itself_stops_on_reentry(
    registry: PluginRegistry,
    make_plugin: Callable[..., Path],
    sourced: SourcedList,
) -> None:
    reentrant = textwrap.dedent(
        """\
        plugin, proceed = registry.enter(__file__)
        if not proceed:
            raise Finish
        g.setdefault("sourced", []).append("again")
        plugin.source(["plugin", "again"])
        """
    )
    root = make_plugin(files={"plugin/again.py": reentrant})

    registry.install(root)

    assert sourced() == ["again"]


@pytest.mark.unit
def test_script_installing_its_own_plugin_does_not_recurse(
    registry: PluginRegistry,
    make_plugin: Callable[..., Path],
    sourced: SourcedList,
) -> None:
    bootstrap = textwrap.dedent(
        """\
        from pathlib import Path

        plugin, proceed = registry.enter(__file__)
        if not proceed:
            raise Finish
        root = Path(__file__).parent.parent
        same = registry.get_or_install(root)
        g.setdefault("sourced", []).append(same is plugin)
        """
    )
    root = make_plugin(files={"plugin/bootstrap.py": bootstrap})

    host_plugin = registry.get_or_install(root)

    assert sourced() == [True]
    assert registry.get_or_install(root) is host_plugin


@pytest.mark.unit
def test_suppressed_file_is_not_marked(
    registry: PluginRegistry,
    make_plugin: Callable[..., Path],
    script: Callable[[str], str],
    sourced: SourcedList,
) -> None:
    root = make_plugin(files={"activate/later.py": script("later")})
    plugin = registry.install(root, {"activate[later]": False})

    plugin.load()
    assert sourced() == []
    assert plugin.entered("activate") == []

    plugin.flag("activate[later]", True)
    assert plugin.source(["activate", "later"]) is True
    assert sourced() == ["later"]
    assert plugin.entered("activate") == [FileHandle("later")]


@pytest.mark.unit
def test_reenabled_file_is_picked_up_by_next_load(
    registry: PluginRegistry,
    make_plugin: Callable[..., Path],
    script: Callable[[str], str],
    sourced: SourcedList,
) -> None:
    root = make_plugin(
        files={
            "activate/a.py": script("a"),
            "activate/b.py": script("b"),
        }
    )
    plugin = registry.install(root, {"activate[b]": 0})

    plugin.load()
    assert sourced() == ["a"]

    plugin.flag("activate[b]", 1)
    loaded = plugin.load()

    assert loaded == [root / "activate" / "b.py"]
    assert sourced() == ["a", "b"]


@pytest.mark.unit
def test_library_directory_is_never_flag_gated(
    registry: PluginRegistry, make_plugin: Callable[..., Path]
) -> None:
    root = make_plugin(files={"autoload/lib.py": "", "activate/": ""})
    plugin = registry.install(root, {"activate[lib]": False})

    _, proceed = registry.enter(root / "autoload" / "lib.py")

    assert proceed is True
    assert not plugin.flags.has_flag("autoload")


@pytest.mark.unit
def test_overlay_scripts_have_their_own_switches(
    registry: PluginRegistry,
    make_plugin: Callable[..., Path],
    script: Callable[[str], str],
    sourced: SourcedList,
) -> None:
    root = make_plugin(
        files={
            "plugin/foo.py": script("foo"),
            "override/plugin/foo.py": script("override foo"),
            "override/plugin/bar.py": script("override bar"),
        }
    )
    plugin = registry.install(root, {"plugin[override/bar]": False})

    assert sourced() == ["foo", "override foo"]
    assert set(plugin.entered("plugin")) == {
        FileHandle("foo"),
        FileHandle("foo", overlay=True),
    }


class TestOverlayMappings:
    @pytest.fixture
    def overlay_only(
        self, make_plugin: Callable[..., Path], script: Callable[[str], str]
    ) -> Path:
        return make_plugin(
            files={"override/plugin/mappings.py": script("overlay mappings")}
        )

    @pytest.mark.unit
    def test_off_by_default(
        self, registry: PluginRegistry, overlay_only: Path, sourced: SourcedList
    ) -> None:
        plugin = registry.install(overlay_only)

        assert sourced() == []
        with pytest.raises(UnknownError):
            plugin.map_prefix("x")

    @pytest.mark.unit
    @pytest.mark.parametrize("value", [False, 0, "0"])
    def test_follows_disabled_mappings_switch(
        self,
        registry: PluginRegistry,
        overlay_only: Path,
        sourced: SourcedList,
        value: Any,
    ) -> None:
        registry.install(overlay_only, {"plugin[mappings]": value})

        assert sourced() == []

    @pytest.mark.unit
    def test_follows_enabled_mappings_switch(
        self, registry: PluginRegistry, overlay_only: Path, sourced: SourcedList
    ) -> None:
        plugin = registry.install(overlay_only, {"plugin[mappings]": True})

        assert sourced() == ["overlay mappings"]
        assert plugin.map_prefix("x") == "<Leader>x"

    @pytest.mark.unit
    def test_own_switch_takes_precedence(
        self, registry: PluginRegistry, overlay_only: Path, sourced: SourcedList
    ) -> None:
        plugin = registry.install(
            overlay_only,
            {"plugin[mappings]": False, "plugin[override/mappings]": ","},
        )

        assert sourced() == ["overlay mappings"]
        assert plugin.map_prefix("x") == ",x"


@pytest.mark.unit
def test_container_flag_rejects_non_mapping(
    registry: PluginRegistry,
    make_plugin: Callable[..., Path],
    script: Callable[[str], str],
    sourced: SourcedList,
) -> None:
    root = make_plugin(files={"plugin/startup.py": script("startup")})

    with pytest.raises(ConfigError) as exc_info:
        registry.install(root, {"plugin": False})

    assert [type(error) for error in exc_info.value.failures] == [WrongTypeError]
    plugin = registry.get("myplugin")
    assert plugin.flag("plugin") == {}
    assert sourced() == ["startup"]
    with pytest.raises(WrongTypeError):
        plugin.flag("plugin", ["startup"])


class TestPerDocument:
    @pytest.mark.unit
    def test_once_per_document(
        self, registry: PluginRegistry, make_plugin: Callable[..., Path]
    ) -> None:
        root = make_plugin(files={"ftplugin/python.py": ""})
        path = root / "ftplugin" / "python.py"

        assert registry.enter(path, document=1)[1] is True
        assert registry.enter(path, document=2)[1] is True
        assert registry.enter(path, document=1)[1] is False

    @pytest.mark.unit
    def test_flags_are_ignored(
        self, registry: PluginRegistry, make_plugin: Callable[..., Path]
    ) -> None:
        root = make_plugin(files={"ftplugin/python.py": "", "plugin/": ""})
        registry.install(root, {"ftplugin": {"python": False}})

        _, proceed = registry.enter(root / "ftplugin" / "python.py", document="x")

        assert proceed is True

    @pytest.mark.unit
    def test_uses_current_document(
        self,
        registry: PluginRegistry,
        host: PythonHost,
        make_plugin: Callable[..., Path],
    ) -> None:
        root = make_plugin(files={"ftplugin/python.py": ""})
        path = root / "ftplugin" / "python.py"

        with host.editing("buffer-1"):
            assert registry.enter(path)[1] is True
            assert registry.enter(path)[1] is False
        assert host.current_document is None

        plugin = registry.get("myplugin")
        tracker = plugin.entry.tracker("ftplugin")
        assert isinstance(tracker, PerDocumentTracker)
        assert tracker.documents(FileHandle("python")) == {"buffer-1"}

    @pytest.mark.unit
    def test_requires_a_document(
        self, registry: PluginRegistry, make_plugin: Callable[..., Path]
    ) -> None:
        root = make_plugin(files={"ftplugin/python.py": ""})

        with pytest.raises(BadValueError, match="without a current document"):
            registry.enter(root / "ftplugin" / "python.py")


@pytest.mark.unit
@pytest.mark.usefixtures("registry")
def test_enter_from_host_owned_directory(
    host: PythonHost,
    make_plugin: Callable[..., Path],
    script: Callable[[str], str],
) -> None:
    root = make_plugin(files={"syntax/python.py": script("syntax")})

    with pytest.raises(CannotEnterError):
        host.source(root / "syntax" / "python.py")
