"""Plugin flags with bracket-path addressing.

A flag reference has the form ``name[key][key]...``. The name selects a flag
declared on a plugin; each bracketed key walks one level into the flag's
value, addressing a mapping key or, when the container found there is a list,
an integer index::

    store.set("plugin", {"mappings": False})
    store.set("plugin[mappings]", True)
    store.get("plugin[mappings]")  # True

Updates are applied to a copy of the current value which is then translated
and stored, so a failed update never leaves a flag half-modified.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Callable, Iterator, MutableMapping
from dataclasses import dataclass, field
from typing import Any

import structlog

from pluginhost.core.errors import BadValueError, NotFoundError, WrongTypeError


logger = structlog.get_logger(__name__)

_REFERENCE = re.compile(r"^(?P<name>[^\[\]]+)(?P<keys>(?:\[[^\[\]]*\])*)$")
_KEY = re.compile(r"\[([^\[\]]*)\]")
_INDEX = re.compile(r"^-?\d+$")

Translator = Callable[[Any], Any]
Callback = Callable[[Any], None]


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


@dataclass(frozen=True)
class FlagReference:
    """A parsed flag reference: the flag name and the key path below it."""

    name: str
    path: tuple[str, ...] = ()

    @classmethod
    def parse(cls, reference: str) -> FlagReference:
        if not isinstance(reference, str):
            raise BadValueError(f"Flag reference must be a string, got {reference!r}")
        match = _REFERENCE.match(reference.strip())
        if match is None:
            raise BadValueError(f"Invalid flag reference: {reference!r}")
        keys = tuple(_KEY.findall(match.group("keys")))
        return cls(name=match.group("name").strip(), path=keys)

    def __str__(self) -> str:
        return self.name + "".join(f"[{key}]" for key in self.path)


def _resolve_key(container: Any, key: str, reference: FlagReference) -> Any:
    """Translate a textual key into the key or index used by ``container``."""
    if isinstance(container, MutableMapping):
        if key not in container and _INDEX.match(key) and int(key) in container:
            return int(key)
        return key
    if isinstance(container, list):
        if not _INDEX.match(key):
            raise BadValueError(
                f"Invalid list index {key!r} in flag reference {reference}"
            )
        index = int(key)
        if not -len(container) <= index < len(container):
            raise NotFoundError(
                f"Index {index} out of range in flag reference {reference}"
            )
        return index
    raise WrongTypeError(
        f"Cannot address [{key}] of non-container {type(container).__name__} "
        f"in flag reference {reference}"
    )


def walk(value: Any, path: tuple[str, ...], reference: FlagReference) -> Any:
    """Follow ``path`` into ``value`` and return what is found there."""
    current = value
    for key in path:
        resolved = _resolve_key(current, key, reference)
        if isinstance(current, MutableMapping) and resolved not in current:
            raise NotFoundError(f"Key {key!r} not found in flag reference {reference}")
        current = current[resolved]
    return current


def assign(
    value: Any, path: tuple[str, ...], item: Any, reference: FlagReference
) -> Any:
    """Return ``value`` with ``item`` stored at ``path``, mutating in place."""
    if not path:
        return item
    parent = walk(value, path[:-1], reference)
    parent[_resolve_key(parent, path[-1], reference)] = item
    return value


@dataclass
class Flag:
    """A named configuration value owned by a plugin."""

    name: str
    default: Any = None
    value: Any = UNSET
    translators: list[Translator] = field(default_factory=list)
    callbacks: list[Callback] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.value is UNSET:
            self.value = copy.deepcopy(self.default)

    def get(self, path: tuple[str, ...] = ()) -> Any:
        reference = FlagReference(self.name, path)
        return copy.deepcopy(walk(self.value, path, reference))

    def set(self, item: Any, path: tuple[str, ...] = ()) -> None:
        reference = FlagReference(self.name, path)
        candidate = assign(
            copy.deepcopy(self.value), path, copy.deepcopy(item), reference
        )
        for translator in self.translators:
            candidate = translator(candidate)
        self.value = candidate
        self._fire()

    def reset(self) -> None:
        self.set(self.default)

    def add_translator(self, translator: Translator) -> None:
        """Register a translator and re-translate the current value."""
        self.translators.append(translator)
        self.value = translator(self.value)
        self._fire()

    def add_callback(self, callback: Callback, fire_immediately: bool = True) -> None:
        self.callbacks.append(callback)
        if fire_immediately:
            callback(copy.deepcopy(self.value))

    def _fire(self) -> None:
        for callback in self.callbacks:
            callback(copy.deepcopy(self.value))


class FlagStore:
    """Flags declared by one plugin."""

    def __init__(self, plugin: str) -> None:
        self.plugin = plugin
        self._flags: dict[str, Flag] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._flags

    def __iter__(self) -> Iterator[str]:
        return iter(self._flags)

    def has_flag(self, name: str) -> bool:
        return name in self._flags

    def names(self) -> list[str]:
        return list(self._flags)

    def declare(self, name: str, default: Any = None) -> Flag:
        """Declare a new flag; redeclaring an existing name is an error."""
        reference = FlagReference.parse(name)
        if reference.path:
            raise BadValueError(
                f"Cannot declare nested flag {name!r} on plugin {self.plugin}"
            )
        if reference.name in self._flags:
            raise BadValueError(
                f"Flag {reference.name!r} already declared on plugin {self.plugin}"
            )
        flag = Flag(name=reference.name, default=copy.deepcopy(default))
        self._flags[reference.name] = flag
        logger.debug(
            "plugin_flag_declared",
            plugin=self.plugin,
            flag=reference.name,
            category="plugin",
        )
        return flag

    def flag(self, name: str) -> Flag:
        try:
            return self._flags[name]
        except KeyError:
            raise NotFoundError(
                f"Flag {name!r} not defined in plugin {self.plugin}"
            ) from None

    def get(self, reference: str) -> Any:
        parsed = FlagReference.parse(reference)
        return self.flag(parsed.name).get(parsed.path)

    def set(self, reference: str, value: Any) -> None:
        parsed = FlagReference.parse(reference)
        if parsed.name not in self._flags:
            if parsed.path:
                raise NotFoundError(
                    f"Cannot set {parsed}: flag {parsed.name!r} not defined "
                    f"in plugin {self.plugin}"
                )
            self.declare(parsed.name, value)
            return
        self._flags[parsed.name].set(value, parsed.path)
