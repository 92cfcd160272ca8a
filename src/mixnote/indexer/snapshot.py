"""JSON snapshot of the index, replaced atomically on every rebuild."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from mixnote.indexer.models import Index

logger = logging.getLogger(__name__)


def write_snapshot(path: Path, index: Index) -> None:
    """
    Overwrite the snapshot file with the serialized index.

    The JSON is written to a temporary file in the same directory and then
    renamed over the target, so readers only ever see a complete snapshot.
    On failure the previous snapshot is left untouched and the error is raised.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(index.to_dict(), indent=2, ensure_ascii=False)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise

    logger.debug("Wrote snapshot with %d notes to %s", len(index.notes), path)


def read_snapshot(path: Path) -> dict[str, Any] | None:
    """Load a snapshot file, or None if it has not been written yet."""
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
