"""Main entry point for the pluginhost CLI."""

import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from pluginhost import __version__
from pluginhost.config.settings import ConfigurationError, Settings
from pluginhost.core.logging import get_logger, setup_logging

from .commands.plugins import app as plugins_app


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        Console().print(f"pluginhost {__version__}")
        raise typer.Exit()


app = typer.Typer(
    rich_markup_mode="rich",
    add_completion=False,
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

app.add_typer(plugins_app, name="plugins")

logger = get_logger(__name__)


@app.callback()
def app_main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to a TOML configuration file.",
            exists=True,
            file_okay=True,
            dir_okay=False,
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Override the configured log level."),
    ] = None,
    json_logs: Annotated[
        bool,
        typer.Option("--json-logs", help="Emit logs as JSON."),
    ] = False,
) -> None:
    """Plugin lifecycle manager."""
    try:
        settings = Settings.from_config(config_path=config)
    except ConfigurationError as e:
        Console(stderr=True).print(
            f"[red]Configuration error:[/red] {escape(str(e))}"
        )
        raise typer.Exit(code=1) from e

    setup_logging(
        json_logs=json_logs or settings.logging.json_logs,
        log_level=log_level or settings.logging.level,
    )
    logger.debug("cli_settings_loaded", plugin_paths=len(settings.plugin_paths))
    ctx.obj = settings


def main() -> None:
    """Entry point for the CLI application."""
    app()


if __name__ == "__main__":
    sys.exit(app())
