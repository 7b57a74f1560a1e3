"""Configuration file discovery."""

import os
from pathlib import Path


CONFIG_FILE_ENV = "PLUGINHOST_CONFIG_FILE"


def get_xdg_config_home() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    return Path(xdg) if xdg else Path.home() / ".config"


def find_toml_config_file() -> Path | None:
    """Find the first existing configuration file.

    Search order:
    1. .pluginhost.toml in the current directory
    2. config.toml in XDG_CONFIG_HOME/pluginhost/
    """
    candidates = [
        Path.cwd() / ".pluginhost.toml",
        get_xdg_config_home() / "pluginhost" / "config.toml",
    ]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None
