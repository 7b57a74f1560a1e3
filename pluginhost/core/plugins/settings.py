"""Pre-parsed flag settings and their best-effort application to a plugin."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from pluginhost.core.errors import (
    BadValueError,
    ConfigError,
    NotFoundError,
    WrongTypeError,
)


if TYPE_CHECKING:
    from pluginhost.core.plugins.plugin import Plugin


logger = structlog.get_logger(__name__)


class SettingOperation(str, Enum):
    """How a setting combines its value with the flag's current value."""

    ASSIGN = "="
    APPEND = "+="
    PREPEND = "^="
    REMOVE = "-="
    TOGGLE = "!"


class Setting(BaseModel):
    """One flag assignment, e.g. ``plugin[mappings]=1`` once parsed."""

    model_config = ConfigDict(frozen=True)

    reference: str = Field(description="Flag reference, optionally bracketed")
    operation: SettingOperation = Field(default=SettingOperation.ASSIGN)
    value: Any = Field(default=None, description="Operand; unused by TOGGLE")

    def __str__(self) -> str:
        if self.operation is SettingOperation.TOGGLE:
            return f"{self.reference}!"
        return f"{self.reference}{self.operation.value}{self.value!r}"

    def apply(self, plugin: Plugin) -> None:
        if self.operation is SettingOperation.ASSIGN:
            plugin.flag(self.reference, self.value)
            return
        current = plugin.flag(self.reference)
        plugin.flag(self.reference, self._combine(current))

    def _combine(self, current: Any) -> Any:
        operation = self.operation
        value = self.value
        if operation is SettingOperation.TOGGLE:
            if not isinstance(current, bool | int):
                raise WrongTypeError(
                    f"Cannot toggle non-boolean flag {self.reference}"
                )
            return not current
        if isinstance(current, list):
            items = value if isinstance(value, list) else [value]
            if operation is SettingOperation.APPEND:
                return current + items
            if operation is SettingOperation.PREPEND:
                return items + current
            return [item for item in current if item not in items]
        if isinstance(current, dict):
            if operation is SettingOperation.REMOVE:
                keys = value if isinstance(value, list) else [value]
                return {k: v for k, v in current.items() if k not in keys}
            if not isinstance(value, dict):
                raise WrongTypeError(
                    f"Cannot merge {type(value).__name__} into dict flag "
                    f"{self.reference}"
                )
            if operation is SettingOperation.APPEND:
                return {**current, **value}
            return {**value, **current}
        if isinstance(current, str) and isinstance(value, str):
            if operation is SettingOperation.APPEND:
                return current + value
            if operation is SettingOperation.PREPEND:
                return value + current
            return current.replace(value, "")
        numeric = (int, float)
        if (
            isinstance(current, numeric)
            and isinstance(value, numeric)
            and not isinstance(current, bool)
            and operation is not SettingOperation.PREPEND
        ):
            if operation is SettingOperation.APPEND:
                return current + value
            return current - value
        raise WrongTypeError(
            f"Cannot apply {operation.value} with {type(value).__name__} to "
            f"{type(current).__name__} flag {self.reference}"
        )


def settings_from_mapping(mapping: Mapping[str, Any]) -> list[Setting]:
    """Build plain assignments from a ``{reference: value}`` mapping."""
    return [
        Setting(reference=reference, value=value)
        for reference, value in mapping.items()
    ]


def apply_settings(plugin: Plugin, settings: Iterable[Setting]) -> None:
    """Apply every setting, then raise one ConfigError for all that failed."""
    failures: list[tuple[Setting, Exception]] = []
    for setting in settings:
        try:
            setting.apply(plugin)
        except (NotFoundError, BadValueError) as e:
            failures.append((setting, e))
            logger.debug(
                "plugin_setting_failed",
                plugin=plugin.name,
                setting=str(setting),
                error=str(e),
                category="plugin",
            )

    if not failures:
        return

    details = "; ".join(f"{setting}: {error}" for setting, error in failures)
    raise ConfigError(
        f"Error configuring plugin {plugin.name}: {details}",
        plugin=plugin.name,
        failures=[error for _, error in failures],
    )
