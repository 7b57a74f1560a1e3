import os
import tomllib
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from pluginhost.config.discovery import CONFIG_FILE_ENV, find_toml_config_file
from pluginhost.core.logging import get_logger
from pluginhost.core.plugins.plugin import DEFAULT_MAP_PREFIX
from pluginhost.core.plugins.settings import Setting, settings_from_mapping


__all__ = ["Settings", "LoggingSettings", "ConfigurationError"]


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Log level for the plugin host",
    )

    json_logs: bool = Field(
        default=False,
        description="Render log lines as JSON instead of console output",
    )


class Settings(BaseSettings):
    """
    Configuration settings for the plugin host.

    Settings are loaded from environment variables (prefix ``PLUGINHOST_``)
    and a TOML configuration file, looked up in this order:
    1. the path given explicitly or via PLUGINHOST_CONFIG_FILE
    2. .pluginhost.toml in current directory
    3. config.toml in XDG_CONFIG_HOME/pluginhost/
    Environment variables take precedence over TOML values.
    """

    model_config = SettingsConfigDict(
        env_prefix="PLUGINHOST_",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    plugin_paths: list[Path] = Field(
        default_factory=list,
        description="Plugin root directories installed at startup",
    )

    map_prefix: str = Field(
        default=DEFAULT_MAP_PREFIX,
        description="Default prefix for plugin mappings",
    )

    extend_sys_path: bool = Field(
        default=True,
        description="Make each plugin's autoload directory importable",
    )

    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration",
    )

    plugins: dict[str, dict[str, Any]] = Field(
        default_factory=dict,
        description="Flag assignments keyed by plugin name, then flag reference",
    )

    def plugin_settings(self, name: str) -> list[Setting]:
        """Flag assignments configured for the plugin ``name``."""
        return settings_from_mapping(self.plugins.get(name, {}))

    @classmethod
    def load_toml_config(cls, toml_path: Path) -> dict[str, Any]:
        """Load configuration from a TOML file."""
        try:
            with toml_path.open("rb") as f:
                return tomllib.load(f)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read TOML config file {toml_path}: {e}"
            ) from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML syntax in {toml_path}: {e}") from e

    @classmethod
    def from_config(
        cls,
        config_path: Path | str | None = None,
        **kwargs: Any,
    ) -> "Settings":
        """Create Settings instance from configuration file."""
        if config_path is None:
            config_path_env = os.environ.get(CONFIG_FILE_ENV)
            if config_path_env:
                config_path = Path(config_path_env)

        if isinstance(config_path, str):
            config_path = Path(config_path)

        if config_path is None:
            config_path = find_toml_config_file()

        config_data: dict[str, Any] = {}
        if config_path is not None:
            if config_path.suffix.lower() != ".toml":
                raise ConfigurationError(
                    f"Unsupported config file format: {config_path.suffix}. "
                    "Only TOML (.toml) files are supported."
                )
            config_data = cls.load_toml_config(config_path)
            get_logger(__name__).info(
                "config_file_loaded",
                path=str(config_path),
                category="config",
            )

        settings = cls()

        for key, value in config_data.items():
            if key not in cls.model_fields:
                continue
            if key == "logging" and isinstance(value, dict):
                for nested_key, nested_value in value.items():
                    env_key = f"PLUGINHOST_LOGGING__{nested_key.upper()}"
                    if os.getenv(env_key) is None:
                        setattr(settings.logging, nested_key, nested_value)
            elif key == "plugins" and isinstance(value, dict):
                merged = dict(settings.plugins)
                for plugin_name, flags in value.items():
                    if not isinstance(flags, dict):
                        raise ConfigurationError(
                            f"[plugins.{plugin_name}] must be a table of flags"
                        )
                    merged[plugin_name] = {**flags, **merged.get(plugin_name, {})}
                settings.plugins = merged
            elif os.getenv(f"PLUGINHOST_{key.upper()}") is None:
                setattr(settings, key, value)

        for key, value in kwargs.items():
            setattr(settings, key, value)

        return cls.model_validate(settings.model_dump())
