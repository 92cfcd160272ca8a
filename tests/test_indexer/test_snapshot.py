"""Tests for the JSON snapshot writer."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from mixnote.indexer.builder import build_index
from mixnote.indexer.models import ParsedDocument
from mixnote.indexer.snapshot import read_snapshot, write_snapshot


def make_index(body: str = "see [[b]]"):
    return build_index(
        [
            ParsedDocument(filepath="a.md", path=Path("/v/a.md"), body=body),
            ParsedDocument(filepath="b.md", path=Path("/v/b.md")),
        ]
    )


class TestWriteSnapshot:
    def test_writes_readable_json(self, tmp_path: Path):
        path = tmp_path / "index.json"
        write_snapshot(path, make_index())

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["notes"]["a.md"]["links"] == ["b"]
        assert data["backlinks"] == {"b": ["a.md"]}
        # Indented for humans
        assert "\n  " in path.read_text(encoding="utf-8")

    def test_creates_parent_directories(self, tmp_path: Path):
        path = tmp_path / "nested" / "dir" / "index.json"
        write_snapshot(path, make_index())
        assert path.exists()

    def test_overwrites_previous_snapshot(self, tmp_path: Path):
        path = tmp_path / "index.json"
        write_snapshot(path, make_index("see [[b]]"))
        write_snapshot(path, make_index("no links"))

        data = read_snapshot(path)
        assert data["backlinks"] == {}

    def test_failed_write_keeps_previous_snapshot(self, tmp_path: Path):
        path = tmp_path / "index.json"
        write_snapshot(path, make_index())
        before = path.read_text(encoding="utf-8")

        with patch("mixnote.indexer.snapshot.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError, match="disk full"):
                write_snapshot(path, make_index("no links"))

        assert path.read_text(encoding="utf-8") == before
        assert [p.name for p in tmp_path.iterdir()] == ["index.json"]

    def test_non_ascii_preserved(self, tmp_path: Path):
        path = tmp_path / "index.json"
        write_snapshot(path, make_index("voir [[café]]"))
        assert read_snapshot(path)["backlinks"] == {"café": ["a.md"]}


class TestReadSnapshot:
    def test_missing_file_returns_none(self, tmp_path: Path):
        assert read_snapshot(tmp_path / "absent.json") is None
