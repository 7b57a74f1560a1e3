"""Help tag index generation for plugin documentation directories.

Documentation files are plain ``*.txt`` files that mark anchors as
``*tag-name*``. The index is a ``tags`` file in the documentation directory,
one sorted ``tag<TAB>file<TAB>/*tag*`` line per anchor.
"""

from __future__ import annotations

import re
from pathlib import Path

import structlog


logger = structlog.get_logger(__name__)

TAGS_FILE = "tags"

_TAG = re.compile(r"\*([^\s*|]+)\*")


class IndexingError(Exception):
    """Raised by the indexer with a diagnostic code such as ``E154``."""

    def __init__(self, code: str, message: str):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


def build_help_tags(doc_dir: Path) -> Path:
    """Scan ``doc_dir`` for tag anchors and write its ``tags`` file."""
    tags: dict[str, str] = {}
    for doc_file in sorted(doc_dir.glob("*.txt")):
        try:
            text = doc_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise IndexingError(
                "E153", f"Unable to open {doc_file} for reading"
            ) from e
        for tag in _TAG.findall(text):
            if tag in tags:
                raise IndexingError(
                    "E154", f'Duplicate tag "{tag}" in file {doc_file}'
                )
            tags[tag] = doc_file.name

    target = doc_dir / TAGS_FILE
    lines = [f"{tag}\t{name}\t/*{tag}*\n" for tag, name in sorted(tags.items())]
    try:
        target.write_text("".join(lines), encoding="utf-8")
    except OSError as e:
        raise IndexingError("E152", f"Cannot open {target} for writing") from e

    logger.debug(
        "help_tags_written", path=str(target), tag_count=len(tags), category="plugin"
    )
    return target
