"""Per-plugin idempotency tracking for scripts that call ``enter``."""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from pluginhost.core.errors import CannotEnterError
from pluginhost.core.plugins.layout import (
    ENTER_DIRS,
    OVERRIDE_DIR,
    SCRIPT_SUFFIX,
    TrackerKind,
)


@dataclass(frozen=True, order=True)
class FileHandle:
    """A script's identity within one capability directory.

    ``name`` is the script path relative to the capability directory, without
    its suffix. Scripts from the override overlay live in a separate handle
    space so ``plugin/foo.py`` and ``override/plugin/foo.py`` never collide.
    """

    name: str
    overlay: bool = False

    @classmethod
    def from_path(cls, base: Path, path: Path, overlay: bool = False) -> FileHandle:
        relative = PurePosixPath(path.relative_to(base).as_posix())
        if relative.suffix == SCRIPT_SUFFIX:
            relative = relative.with_suffix("")
        return cls(name=str(relative), overlay=overlay)

    @property
    def flag_key(self) -> str:
        """Key used to look the script up in its directory's container flag."""
        if self.overlay:
            return f"{OVERRIDE_DIR}/{self.name}"
        return self.name

    def __str__(self) -> str:
        return self.flag_key


class OnceTracker:
    """Handles entered at most once for the life of the process."""

    kind = TrackerKind.ONCE

    def __init__(self) -> None:
        self._entered: dict[FileHandle, None] = {}

    def __contains__(self, handle: object) -> bool:
        return handle in self._entered

    def __len__(self) -> int:
        return len(self._entered)

    def mark(self, handle: FileHandle) -> None:
        self._entered[handle] = None

    def handles(self) -> list[FileHandle]:
        return list(self._entered)


class PerDocumentTracker:
    """Handles entered once for every document they run against."""

    kind = TrackerKind.PER_DOCUMENT

    def __init__(self) -> None:
        self._documents: dict[FileHandle, set[Hashable]] = {}

    def __contains__(self, handle: object) -> bool:
        return handle in self._documents

    def __len__(self) -> int:
        return len(self._documents)

    def enter(self, handle: FileHandle, document: Hashable) -> bool:
        """Record ``document`` for ``handle``; False if it was already there."""
        documents = self._documents.setdefault(handle, set())
        if document in documents:
            return False
        documents.add(document)
        return True

    def documents(self, handle: FileHandle) -> frozenset[Hashable]:
        return frozenset(self._documents.get(handle, ()))

    def handles(self) -> list[FileHandle]:
        return list(self._documents)


Tracker = OnceTracker | PerDocumentTracker


class EntryController:
    """One tracker per entering capability directory of a plugin."""

    def __init__(self, plugin: str) -> None:
        self.plugin = plugin
        self._trackers: dict[str, Tracker] = {
            directory: (
                PerDocumentTracker()
                if kind is TrackerKind.PER_DOCUMENT
                else OnceTracker()
            )
            for directory, kind in ENTER_DIRS.items()
        }

    def tracker(self, directory: str) -> Tracker:
        try:
            return self._trackers[directory]
        except KeyError:
            raise CannotEnterError(
                f"Cannot enter plugin {self.plugin} from directory {directory!r}; "
                f"expected one of {', '.join(sorted(ENTER_DIRS))}"
            ) from None

    def skip_list(self, directory: str) -> set[FileHandle]:
        """Handles the directory loader must not source again."""
        tracker = self._trackers.get(directory)
        if tracker is None or tracker.kind is not TrackerKind.ONCE:
            return set()
        return set(tracker.handles())

    def entered(self, directory: str) -> list[FileHandle]:
        tracker = self._trackers.get(directory)
        return tracker.handles() if tracker is not None else []
