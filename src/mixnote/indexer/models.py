"""Data models for the indexer."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class ParsedDocument:
    """A vault document split into its front matter and body."""

    filepath: str  # Relative to the vault root, POSIX form
    path: Path  # Absolute
    header: dict[str, Any] = field(default_factory=dict)
    body: str = ""


@dataclass
class Note:
    """Represents an indexed note."""

    filepath: str
    id: str
    title: str
    tags: list[str] = field(default_factory=list)
    links: list[str] = field(default_factory=list)
    updated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "tags": list(self.tags),
            "links": list(self.links),
            "updated_at": self.updated_at,
            "filepath": self.filepath,
        }


@dataclass
class Index:
    """Forward index of notes plus the inverted backlink graph.

    ``notes`` is keyed by vault-relative file path. ``backlinks`` maps a link
    target to the file paths referencing it, once per occurrence. ``contents``
    holds note bodies for the relational store and is not part of the snapshot.
    """

    notes: dict[str, Note] = field(default_factory=dict)
    backlinks: dict[str, list[str]] = field(default_factory=dict)
    contents: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serializable form written to the snapshot file."""
        return {
            "notes": {fp: note.to_dict() for fp, note in self.notes.items()},
            "backlinks": {target: list(sources) for target, sources in self.backlinks.items()},
        }

    def backlink_pairs(self) -> list[tuple[str, str]]:
        """Flatten backlinks into (target, source_filepath) pairs."""
        return [
            (target, source)
            for target, sources in self.backlinks.items()
            for source in sources
        ]
