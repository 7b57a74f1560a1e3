"""CLI commands for installing and inspecting plugins."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from pluginhost.config.settings import Settings
from pluginhost.core.errors import PluginHostError
from pluginhost.core.logging import get_logger
from pluginhost.core.plugins.host import PythonHost
from pluginhost.core.plugins.layout import DEFERRED_DIR, IMMEDIATE_DIR
from pluginhost.core.plugins.naming import canonical_name, normalize_location
from pluginhost.core.plugins.plugin import Plugin
from pluginhost.core.plugins.registry import PluginRegistry
from pluginhost.core.plugins.settings import Setting, SettingOperation


app = typer.Typer(
    name="plugins", help="Install and inspect plugins.", no_args_is_help=True
)

logger = get_logger(__name__)

_ASSIGNMENT = re.compile(r"^(?P<ref>.+?)\s*(?P<op>\+=|-=|\^=|=|!)(?P<value>.*)$")


@dataclass(frozen=True)
class PluginSummary:
    """Display-ready summary of an installed plugin."""

    name: str
    location: str
    library: bool
    flags: tuple[str, ...]
    entered: tuple[str, ...]


def parse_assignment(text: str) -> Setting:
    """Parse ``REF=VALUE`` (or ``+=``, ``-=``, ``^=``, ``REF!``) into a Setting.

    Values are read as JSON when possible and as plain strings otherwise.
    """
    match = _ASSIGNMENT.match(text.strip())
    if match is None:
        raise typer.BadParameter(f"Expected REF=VALUE, got {text!r}")
    operation = SettingOperation(match.group("op"))
    raw = match.group("value")
    if operation is SettingOperation.TOGGLE:
        if raw.strip():
            raise typer.BadParameter(f"Unexpected value after '!' in {text!r}")
        return Setting(reference=match.group("ref"), operation=operation)

    value: Any
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = raw
    return Setting(reference=match.group("ref"), operation=operation, value=value)


def build_registry(settings: Settings) -> PluginRegistry:
    host = PythonHost(extend_sys_path=settings.extend_sys_path)
    return PluginRegistry(host, map_prefix=settings.map_prefix)


def install_plugin(
    registry: PluginRegistry,
    directory: Path,
    settings: Settings,
    extra: list[Setting] | None = None,
) -> Plugin:
    """Install ``directory`` with configured and command-line settings."""
    name = canonical_name(normalize_location(directory))
    configured = settings.plugin_settings(name)
    return registry.get_or_install(directory, configured + list(extra or []))


def summarize(plugin: Plugin) -> PluginSummary:
    entered = [
        f"{directory}/{handle}"
        for directory in (IMMEDIATE_DIR, DEFERRED_DIR)
        for handle in plugin.entered(directory)
    ]
    return PluginSummary(
        name=plugin.name,
        location=plugin.location,
        library=plugin.is_library(),
        flags=tuple(plugin.flags.names()),
        entered=tuple(entered),
    )


def _settings_from_context(ctx: typer.Context) -> Settings:
    if isinstance(ctx.obj, Settings):
        return ctx.obj
    return Settings.from_config()


def _fail(console: Console, error: PluginHostError) -> typer.Exit:
    logger.debug("cli_command_failed", kind=error.kind, error=error.message)
    console.print(f"[red]{error.kind}:[/red] {escape(error.message)}")
    return typer.Exit(code=1)


DirectoryArgument = Annotated[
    Path,
    typer.Argument(
        help="Plugin root directory.",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
]


@app.command(name="list")
def list_plugins(
    ctx: typer.Context,
    directories: Annotated[
        list[Path] | None,
        typer.Argument(
            help="Plugin roots to install (defaults to configured plugin_paths).",
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
        ),
    ] = None,
) -> None:
    """Install plugins and show what each one provides."""

    console = Console()
    settings_obj = _settings_from_context(ctx)
    roots = list(directories or settings_obj.plugin_paths)
    if not roots:
        console.print("No plugins found.")
        return

    registry = build_registry(settings_obj)
    for root in roots:
        try:
            install_plugin(registry, Path(root), settings_obj)
        except PluginHostError as e:
            raise _fail(console, e) from e

    table = Table(
        title="Installed Plugins",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Plugin", style="bold")
    table.add_column("Location", style="cyan")
    table.add_column("Library", style="green")
    table.add_column("Flags", style="yellow")
    table.add_column("Entered", style="dim")

    for plugin in registry.plugins():
        summary = summarize(plugin)
        table.add_row(
            summary.name,
            summary.location,
            "yes" if summary.library else "no",
            ", ".join(summary.flags) or "-",
            ", ".join(summary.entered) or "-",
        )

    console.print(table)


@app.command()
def flags(
    ctx: typer.Context,
    directory: DirectoryArgument,
    assignments: Annotated[
        list[str] | None,
        typer.Option(
            "--set",
            "-s",
            help="Flag assignment such as 'plugin[mappings]=true'.",
        ),
    ] = None,
) -> None:
    """Show a plugin's flag values after applying settings."""

    console = Console()
    settings_obj = _settings_from_context(ctx)
    extra = [parse_assignment(text) for text in assignments or []]

    registry = build_registry(settings_obj)
    try:
        plugin = install_plugin(registry, directory, settings_obj, extra)
    except PluginHostError as e:
        raise _fail(console, e) from e

    table = Table(title=f"Flags of {plugin.name}", header_style="bold cyan")
    table.add_column("Flag", style="bold")
    table.add_column("Value", style="green")
    table.add_column("Default", style="yellow")
    for name in plugin.flags.names():
        flag = plugin.flags.flag(name)
        table.add_row(
            name,
            json.dumps(flag.get(), default=repr),
            json.dumps(flag.default, default=repr),
        )

    console.print(table)


@app.command()
def load(
    ctx: typer.Context,
    directory: DirectoryArgument,
    files: Annotated[
        list[str] | None,
        typer.Option("--file", "-f", help="Deferred-activation script to load."),
    ] = None,
) -> None:
    """Install a plugin and run its deferred-activation scripts."""

    console = Console()
    settings_obj = _settings_from_context(ctx)
    registry = build_registry(settings_obj)
    try:
        plugin = install_plugin(registry, directory, settings_obj)
        sourced = plugin.load(files or None)
    except PluginHostError as e:
        raise _fail(console, e) from e

    if not sourced:
        console.print(f"Nothing to load for {plugin.name}.")
        return
    for path in sourced:
        console.print(f"[green]sourced[/green] {path}")


@app.command()
def helptags(
    ctx: typer.Context,
    directory: DirectoryArgument,
) -> None:
    """Generate the help tag index of a plugin's documentation."""

    console = Console()
    settings_obj = _settings_from_context(ctx)
    registry = build_registry(settings_obj)
    try:
        plugin = install_plugin(registry, directory, settings_obj)
        generated = plugin.generate_index()
    except PluginHostError as e:
        raise _fail(console, e) from e

    if generated:
        console.print(f"Help tags generated for {plugin.name}.")
    else:
        console.print(f"Plugin {plugin.name} has no documentation directory.")
