"""Capability directory names and the loading discipline attached to each."""

from __future__ import annotations

from enum import Enum


SCRIPT_SUFFIX = ".py"

# Sibling root whose capability directories are loaded in addition to the
# plugin's own, e.g. ``override/plugin`` next to ``plugin``.
OVERRIDE_DIR = "override"

LIBRARY_DIR = "autoload"
IMMEDIATE_DIR = "plugin"
DEFERRED_DIR = "activate"
DOCUMENT_DIR = "ftplugin"
DOCUMENTATION_DIR = "doc"

FLAGS_FILE = "flags"
MAPPINGS_FILE = "mappings"


class TrackerKind(str, Enum):
    """Shape of the idempotency tracker kept for a capability directory."""

    ONCE = "once"
    PER_DOCUMENT = "per_document"


# Directories whose scripts legitimately call ``enter``.
ENTER_DIRS: dict[str, TrackerKind] = {
    LIBRARY_DIR: TrackerKind.ONCE,
    IMMEDIATE_DIR: TrackerKind.ONCE,
    DEFERRED_DIR: TrackerKind.ONCE,
    DOCUMENT_DIR: TrackerKind.PER_DOCUMENT,
}

# Directories with a same-named container flag for per-file enable/disable.
FLAG_GATED_DIRS: tuple[str, ...] = (DEFERRED_DIR, IMMEDIATE_DIR)

# Per-file flag keys that are disabled unless explicitly switched on.
DEFAULT_OFF: dict[str, frozenset[str]] = {
    IMMEDIATE_DIR: frozenset({MAPPINGS_FILE}),
}

# A plugin with any of these is more than a library of on-demand functions.
NON_LIBRARY_DIRS: tuple[str, ...] = (
    "ftdetect",
    DOCUMENT_DIR,
    "indent",
    "syntax",
    IMMEDIATE_DIR,
    DEFERRED_DIR,
)


def is_default_on(directory: str, key: str) -> bool:
    """Return whether a per-file flag key is enabled when left unset."""
    return key not in DEFAULT_OFF.get(directory, frozenset())
