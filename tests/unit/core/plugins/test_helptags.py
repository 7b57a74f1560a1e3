from pathlib import Path

import pytest

from pluginhost.core.plugins.helptags import TAGS_FILE, IndexingError, build_help_tags


@pytest.mark.unit
def test_build_help_tags_sorts_anchors(tmp_path: Path) -> None:
    (tmp_path / "b.txt").write_text("*zeta* and *alpha*\n", encoding="utf-8")
    (tmp_path / "a.txt").write_text(
        "*mid-tag* mentions |alpha| but a * b * c is not a tag\n",
        encoding="utf-8",
    )
    (tmp_path / "ignored.md").write_text("*ignored*\n", encoding="utf-8")

    target = build_help_tags(tmp_path)

    assert target == tmp_path / TAGS_FILE
    assert target.read_text(encoding="utf-8").splitlines() == [
        "alpha\tb.txt\t/*alpha*",
        "mid-tag\ta.txt\t/*mid-tag*",
        "zeta\tb.txt\t/*zeta*",
    ]


@pytest.mark.unit
def test_build_help_tags_empty_directory(tmp_path: Path) -> None:
    assert build_help_tags(tmp_path).read_text(encoding="utf-8") == ""


@pytest.mark.unit
def test_duplicate_tag(tmp_path: Path) -> None:
    (tmp_path / "a.txt").write_text("*dup*\n*dup*\n", encoding="utf-8")

    with pytest.raises(IndexingError) as exc_info:
        build_help_tags(tmp_path)

    assert exc_info.value.code == "E154"
    assert "dup" in exc_info.value.message


@pytest.mark.unit
def test_unreadable_file(tmp_path: Path) -> None:
    (tmp_path / "bad.txt").write_bytes(b"\xff\xfe*tag*")

    with pytest.raises(IndexingError) as exc_info:
        build_help_tags(tmp_path)

    assert exc_info.value.code == "E153"


@pytest.mark.unit
def test_unwritable_index(tmp_path: Path) -> None:
    (tmp_path / TAGS_FILE).mkdir()

    with pytest.raises(IndexingError) as exc_info:
        build_help_tags(tmp_path)

    assert exc_info.value.code == "E152"
