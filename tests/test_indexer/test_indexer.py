"""Tests for the main Indexer class."""

import json
import sqlite3
import threading
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from mixnote.events import IndexEventBus
from mixnote.indexer import Indexer, VaultError


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    (root / "a.md").write_text("see [[b]]")
    (root / "b.md").write_text("")
    return root


@pytest.fixture
def indexer(tmp_path: Path, vault: Path):
    """Create an indexer with a temporary database and snapshot."""
    idx = Indexer(
        vault_root=vault,
        db_path=tmp_path / "state" / "test.db",
        snapshot_path=tmp_path / "state" / "index.json",
    )
    idx.initialize()
    yield idx
    idx.close()


def read_json(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


class TestIndexerRebuild:
    def test_rebuild_example_vault(self, indexer: Indexer):
        index = indexer.rebuild()

        assert index.notes["a.md"].links == ["b"]
        assert index.backlinks["b"] == ["a.md"]
        assert "a.md" not in index.backlinks

    def test_rebuild_writes_snapshot(self, indexer: Indexer):
        indexer.rebuild()
        data = read_json(indexer.snapshot_path)
        assert set(data["notes"]) == {"a.md", "b.md"}
        assert data["backlinks"] == {"b": ["a.md"]}

    def test_rebuild_writes_database(self, indexer: Indexer):
        indexer.rebuild()
        assert indexer.db.get_backlinks("b") == ["a.md"]
        assert indexer.db.get_content("a.md") == "see [[b]]"

    def test_rebuild_is_idempotent_except_timestamps(self, indexer: Indexer):
        first = indexer.rebuild().to_dict()
        second = indexer.rebuild().to_dict()

        assert first["backlinks"] == second["backlinks"]
        for data in (first, second):
            for note in data["notes"].values():
                note.pop("updated_at")
        assert first == second

    def test_deleted_note_removed_from_snapshot(self, indexer: Indexer, vault: Path):
        (vault / "c.md").write_text("[[b]] [[a]]")
        indexer.rebuild()
        (vault / "c.md").unlink()

        index = indexer.rebuild()
        data = read_json(indexer.snapshot_path)

        assert "c.md" not in index.notes
        assert "c.md" not in data["notes"]
        assert all("c.md" not in sources for sources in data["backlinks"].values())
        assert "a" not in data["backlinks"]

    def test_deleted_note_rows_kept_in_database_by_default(self, indexer: Indexer, vault: Path):
        (vault / "c.md").write_text("[[b]]")
        indexer.rebuild()
        (vault / "c.md").unlink()
        indexer.rebuild()

        assert indexer.db.get_note("c.md") is not None

    def test_prune_db_removes_deleted_note_rows(self, tmp_path: Path, vault: Path):
        idx = Indexer(vault, tmp_path / "p.db", tmp_path / "p.json", prune_db=True)
        (vault / "c.md").write_text("[[b]]")
        idx.rebuild()
        (vault / "c.md").unlink()
        idx.rebuild()

        assert idx.db.get_note("c.md") is None
        assert idx.db.get_backlinks("b") == ["a.md"]
        idx.close()

    def test_unreadable_note_does_not_block_others(self, indexer: Indexer, vault: Path):
        (vault / "secret.md").write_bytes(b"\x00\xffciphertext\xfe")
        (vault / "bad.md").write_text("---\ntags: [x\n---\n")

        index = indexer.rebuild()
        assert set(index.notes) == {"a.md", "b.md"}

    def test_publishes_after_persisting(self, tmp_path: Path, vault: Path):
        bus = IndexEventBus()
        snapshot = tmp_path / "index.json"
        seen = []

        def on_update(index):
            seen.append((set(index.notes), read_json(snapshot)["backlinks"]))

        bus.subscribe(on_update)
        idx = Indexer(vault, tmp_path / "t.db", snapshot, bus=bus)
        idx.rebuild()
        idx.close()

        assert seen == [({"a.md", "b.md"}, {"b": ["a.md"]})]

    def test_database_failure_still_writes_snapshot_and_publishes(
        self, indexer: Indexer, caplog
    ):
        callback = MagicMock()
        indexer.bus.subscribe(callback)

        with patch.object(indexer.db, "write_index", side_effect=sqlite3.OperationalError("locked")):
            index = indexer.rebuild()

        assert read_json(indexer.snapshot_path)["backlinks"] == {"b": ["a.md"]}
        callback.assert_called_once_with(index)
        assert any("Database write failed" in r.getMessage() for r in caplog.records)

    def test_unopenable_database_still_writes_snapshot_and_publishes(
        self, tmp_path: Path, vault: Path, caplog
    ):
        db_dir = tmp_path / "dbdir"
        db_dir.mkdir()
        bus = IndexEventBus()
        callback = MagicMock()
        bus.subscribe(callback)
        idx = Indexer(vault, db_dir, tmp_path / "index.json", bus=bus)

        index = idx.rebuild()
        idx.close()

        assert read_json(tmp_path / "index.json")["backlinks"] == {"b": ["a.md"]}
        callback.assert_called_once_with(index)
        assert any("Database write failed" in r.getMessage() for r in caplog.records)

    def test_snapshot_failure_does_not_publish(self, indexer: Indexer):
        callback = MagicMock()
        indexer.bus.subscribe(callback)

        with patch("mixnote.indexer.indexer.write_snapshot", side_effect=OSError("read-only")):
            with pytest.raises(OSError):
                indexer.rebuild()

        callback.assert_not_called()

    def test_missing_vault_raises(self, tmp_path: Path):
        idx = Indexer(tmp_path / "gone", tmp_path / "x.db", tmp_path / "x.json")
        with pytest.raises(VaultError):
            idx.rebuild()
        idx.close()

    def test_concurrent_rebuilds_are_serialized(self, indexer: Indexer, vault: Path):
        for i in range(20):
            (vault / f"n{i}.md").write_text(f"[[b]] [[n{(i + 1) % 20}]]")

        active = 0
        overlap = []
        real_write = indexer.db.write_index

        def tracking_write(*args, **kwargs):
            nonlocal active
            active += 1
            overlap.append(active)
            try:
                return real_write(*args, **kwargs)
            finally:
                active -= 1

        errors = []

        def run():
            try:
                indexer.rebuild()
            except Exception as e:
                errors.append(e)
            finally:
                indexer.close()

        with patch.object(indexer.db, "write_index", side_effect=tracking_write):
            threads = [threading.Thread(target=run) for _ in range(8)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        assert errors == []
        assert max(overlap) == 1
        data = read_json(indexer.snapshot_path)
        assert len(data["notes"]) == 22
        assert len(data["backlinks"]["b"]) == 21
        assert indexer.db.get_backlinks("b").count("a.md") == 1


class TestReadNote:
    def test_reads_raw_text(self, indexer: Indexer):
        assert indexer.read_note("a.md") == "see [[b]]"

    def test_missing_note_returns_none(self, indexer: Indexer):
        assert indexer.read_note("nope.md") is None

    def test_rejects_path_outside_vault(self, indexer: Indexer, tmp_path: Path):
        (tmp_path / "outside.md").write_text("secret")
        with pytest.raises(VaultError, match="outside the vault"):
            indexer.read_note("../outside.md")
