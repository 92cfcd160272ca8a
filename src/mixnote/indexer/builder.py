"""Builds the forward index and backlink graph from parsed notes."""

from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Any

from mixnote.indexer.links import extract_links
from mixnote.indexer.models import Index, Note, ParsedDocument


def _normalize_tags(raw: Any) -> list[str]:
    """Coerce a front matter ``tags`` value to a list of unique strings."""
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        return []

    tags: list[str] = []
    for tag in raw:
        if tag is None:
            continue
        value = str(tag)
        if value not in tags:
            tags.append(value)
    return tags


def build_note(document: ParsedDocument, updated_at: str) -> Note:
    """Resolve a single note's metadata and links.

    A missing or falsy ``id`` or ``title`` (empty string, 0, false) falls back
    to the filename and its stem.
    """
    name = PurePosixPath(document.filepath).name
    header = document.header

    note_id = header.get("id")
    title = header.get("title")

    return Note(
        filepath=document.filepath,
        id=str(note_id) if note_id else name,
        title=str(title) if title else PurePosixPath(name).stem,
        tags=_normalize_tags(header.get("tags")),
        links=extract_links(document.body),
        updated_at=updated_at,
    )


def build_index(documents: Iterable[ParsedDocument], now: datetime | None = None) -> Index:
    """
    Build a complete index from scratch.

    Every note is stamped with the same build time, whether or not its
    content changed since the last build. Backlinks are appended in document
    order, once per link occurrence.

    Args:
        documents: Parsed documents from a single scan
        now: Build time (defaults to the current UTC time)
    """
    stamp = (now or datetime.now(timezone.utc)).isoformat()

    index = Index()
    for document in documents:
        index.notes[document.filepath] = build_note(document, stamp)
        index.contents[document.filepath] = document.body

    for filepath, note in index.notes.items():
        for target in note.links:
            index.backlinks.setdefault(target, []).append(filepath)

    return index
