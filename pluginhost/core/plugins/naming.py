"""Plugin naming and location normalization."""

from __future__ import annotations

import os
import re
from pathlib import Path

from pluginhost.core.errors import BadValueError


_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9_]")


def canonical_name(raw: str | os.PathLike[str]) -> str:
    """Derive a plugin's canonical name from a directory path or name.

    The last path segment is kept and every character outside
    ``[A-Za-z0-9_]`` is replaced with ``_``. Applying it to its own output
    returns the same value.
    """
    text = os.fspath(raw).replace("\\", "/").rstrip("/")
    segment = text.rsplit("/", 1)[-1]
    return _INVALID_NAME_CHARS.sub("_", segment)


def normalize_location(directory: str | os.PathLike[str]) -> str:
    """Return ``directory`` as an absolute path with one trailing separator."""
    text = os.fspath(directory)
    if not text.strip():
        raise BadValueError("Plugin root path must not be empty")
    absolute = os.path.normpath(os.path.abspath(os.path.expanduser(text)))
    return absolute.rstrip(os.sep) + os.sep


def location_path(location: str) -> Path:
    return Path(location.rstrip(os.sep) or os.sep)
