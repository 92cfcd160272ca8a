"""SQLite store for the note index."""

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from mixnote.indexer.models import Index, Note

SCHEMA_SQL = """
-- mixnote index schema
-- Derived data: regenerated from the vault on every rebuild

PRAGMA journal_mode = WAL;

CREATE TABLE IF NOT EXISTS notes (
    filepath    TEXT PRIMARY KEY,
    id          TEXT,
    title       TEXT,
    content     TEXT,
    updated_at  TEXT
);

CREATE TABLE IF NOT EXISTS backlinks (
    target          TEXT,
    source_filepath TEXT
);

CREATE INDEX IF NOT EXISTS idx_backlinks_target ON backlinks(target);
CREATE INDEX IF NOT EXISTS idx_backlinks_source ON backlinks(source_filepath);

-- Reserved for semantic retrieval; not populated by the indexer
CREATE TABLE IF NOT EXISTS embeddings (
    id       TEXT PRIMARY KEY,
    filepath TEXT,
    vector   BLOB,
    meta     TEXT
);
"""


class Database:
    """SQLite database for the note index."""

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        self._local = threading.local()
        self._write_lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if not hasattr(self._local, "conn") or self._local.conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._local.conn = sqlite3.connect(str(self.db_path))
            self._local.conn.row_factory = sqlite3.Row
        return self._local.conn

    @contextmanager
    def _read_cursor(self) -> Iterator[sqlite3.Cursor]:
        """Get a cursor for read operations."""
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            yield cursor
        finally:
            cursor.close()

    @contextmanager
    def _write_cursor(self) -> Iterator[sqlite3.Cursor]:
        """Get a cursor for write operations with locking.

        Everything executed on the cursor is committed together, or rolled
        back if the block raises.
        """
        with self._write_lock:
            conn = self._get_connection()
            cursor = conn.cursor()
            try:
                yield cursor
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                cursor.close()

    def initialize(self) -> None:
        """Create the schema if it does not exist yet."""
        with self._write_cursor() as cursor:
            cursor.executescript(SCHEMA_SQL)

    def close(self) -> None:
        """Close the calling thread's database connection."""
        if hasattr(self._local, "conn") and self._local.conn:
            self._local.conn.close()
            self._local.conn = None

    # Index writes

    def write_index(self, index: Index, prune_missing: bool = False) -> None:
        """
        Persist an index in a single transaction.

        Upserts a row per note, replaces the backlink rows of every note in
        the index, and optionally removes rows for notes no longer in the
        index. Readers never observe a note whose backlinks were deleted but
        not yet re-inserted.
        """
        filepaths = list(index.notes)

        with self._write_cursor() as cursor:
            cursor.executemany(
                """INSERT INTO notes (filepath, id, title, content, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(filepath) DO UPDATE SET
                    id = excluded.id,
                    title = excluded.title,
                    content = excluded.content,
                    updated_at = excluded.updated_at
                """,
                [
                    (
                        note.filepath,
                        note.id,
                        note.title,
                        index.contents.get(filepath, ""),
                        note.updated_at,
                    )
                    for filepath, note in index.notes.items()
                ],
            )
            cursor.executemany(
                "DELETE FROM backlinks WHERE source_filepath = ?",
                [(fp,) for fp in filepaths],
            )
            cursor.executemany(
                "INSERT INTO backlinks (target, source_filepath) VALUES (?, ?)",
                index.backlink_pairs(),
            )

            if prune_missing:
                placeholders = ",".join("?" * len(filepaths))
                if filepaths:
                    cursor.execute(
                        f"DELETE FROM notes WHERE filepath NOT IN ({placeholders})",
                        filepaths,
                    )
                    cursor.execute(
                        f"DELETE FROM backlinks WHERE source_filepath NOT IN ({placeholders})",
                        filepaths,
                    )
                else:
                    cursor.execute("DELETE FROM notes")
                    cursor.execute("DELETE FROM backlinks")

    # Queries

    def get_note(self, filepath: str) -> Note | None:
        """Get a stored note by its vault-relative path."""
        with self._read_cursor() as cursor:
            cursor.execute("SELECT * FROM notes WHERE filepath = ?", (filepath,))
            row = cursor.fetchone()
            if row:
                return self._row_to_note(row)
            return None

    def get_content(self, filepath: str) -> str | None:
        """Get the stored body text of a note."""
        with self._read_cursor() as cursor:
            cursor.execute("SELECT content FROM notes WHERE filepath = ?", (filepath,))
            row = cursor.fetchone()
            return row["content"] if row else None

    def list_notes(self) -> list[Note]:
        """List all stored notes ordered by path."""
        with self._read_cursor() as cursor:
            cursor.execute("SELECT * FROM notes ORDER BY filepath")
            return [self._row_to_note(row) for row in cursor.fetchall()]

    def get_backlinks(self, target: str) -> list[str]:
        """Get the source paths linking to a target, in insertion order."""
        with self._read_cursor() as cursor:
            cursor.execute(
                "SELECT source_filepath FROM backlinks WHERE target = ? ORDER BY rowid",
                (target,),
            )
            return [row["source_filepath"] for row in cursor.fetchall()]

    def count_backlinks(self) -> int:
        """Count all backlink rows."""
        with self._read_cursor() as cursor:
            cursor.execute("SELECT COUNT(*) AS n FROM backlinks")
            return cursor.fetchone()["n"]

    def count_embeddings(self) -> int:
        """Count rows in the reserved embeddings table."""
        with self._read_cursor() as cursor:
            cursor.execute("SELECT COUNT(*) AS n FROM embeddings")
            return cursor.fetchone()["n"]

    def _row_to_note(self, row: sqlite3.Row) -> Note:
        """Convert a database row to a Note.

        Tags and links live only in the snapshot; stored notes carry neither.
        """
        return Note(
            filepath=row["filepath"],
            id=row["id"],
            title=row["title"],
            updated_at=row["updated_at"],
        )
