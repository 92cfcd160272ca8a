"""Main indexer that rebuilds the vault index and persists it."""

import logging
import sqlite3
import threading
from pathlib import Path

from mixnote.events import IndexEventBus
from mixnote.indexer.builder import build_index
from mixnote.indexer.database import Database
from mixnote.indexer.models import Index
from mixnote.indexer.snapshot import write_snapshot
from mixnote.indexer.walker import VaultError, scan_vault

logger = logging.getLogger(__name__)


class Indexer:
    """
    Indexer that rebuilds the index of a vault from scratch.

    The vault is always the source of truth. Each rebuild scans every note,
    builds a new index, writes it to SQLite and to the JSON snapshot, then
    publishes it on the event bus.

    Thread Safety:
        rebuild() holds a lock for the whole cycle, so concurrent callers
        run one after another and never interleave their writes.
    """

    def __init__(
        self,
        vault_root: Path,
        db_path: Path,
        snapshot_path: Path,
        bus: IndexEventBus | None = None,
        prune_db: bool = False,
    ):
        """
        Initialize the indexer.

        Args:
            vault_root: Path to the vault directory
            db_path: Path to the SQLite database file
            snapshot_path: Path to the JSON snapshot file
            bus: Event bus to publish rebuilt indexes on
            prune_db: Delete rows of notes that are no longer in the vault
        """
        self.vault_root = vault_root
        self.snapshot_path = snapshot_path
        self.db = Database(db_path)
        self.bus = bus or IndexEventBus()
        self.prune_db = prune_db
        self._initialized = False
        self._write_lock = threading.Lock()

    def initialize(self) -> None:
        """Initialize the database schema."""
        self.db.initialize()
        self._initialized = True

    def close(self) -> None:
        """Close the calling thread's database connection."""
        self.db.close()

    def _ensure_initialized(self) -> None:
        """Ensure the database is initialized."""
        if not self._initialized:
            self.initialize()

    def rebuild(self) -> Index:
        """
        Rescan the vault and replace the persisted index.

        A failed SQLite transaction is logged and rolled back; the snapshot is
        still written and the next rebuild brings the store up to date.
        A failed snapshot write propagates and nothing is published.

        Returns:
            The new index.
        """
        with self._write_lock:
            logger.debug("Rebuilding index of %s", self.vault_root)

            documents = scan_vault(self.vault_root)
            index = build_index(documents)

            try:
                self._ensure_initialized()
                self.db.write_index(index, prune_missing=self.prune_db)
            except sqlite3.Error:
                logger.exception("Database write failed for %s", self.vault_root)

            write_snapshot(self.snapshot_path, index)

            logger.info(
                "Index rebuilt: %d notes, %d link targets",
                len(index.notes),
                len(index.backlinks),
            )

            self.bus.publish(index)
        return index

    def read_note(self, filepath: str) -> str | None:
        """
        Read the raw text of a note.

        Args:
            filepath: Path relative to the vault root

        Returns:
            The note text, or None if the file does not exist.

        Raises:
            VaultError: If the path points outside the vault.
        """
        root = self.vault_root.resolve()
        full_path = (self.vault_root / filepath).resolve()
        if not full_path.is_relative_to(root):
            raise VaultError(f"Path is outside the vault: {filepath}")
        if not full_path.is_file():
            return None
        return full_path.read_text(encoding="utf-8")
