"""
Indexer package for mixnote.

Scans a vault of markdown notes, extracts front matter and wikilinks,
and builds the note index with its backlink graph. The index is persisted
to a JSON snapshot and to SQLite on every rebuild.
"""

from mixnote.indexer.builder import build_index
from mixnote.indexer.database import Database
from mixnote.indexer.indexer import Indexer
from mixnote.indexer.links import extract_links
from mixnote.indexer.models import Index, Note, ParsedDocument
from mixnote.indexer.parser import FrontmatterError, parse_frontmatter
from mixnote.indexer.snapshot import read_snapshot, write_snapshot
from mixnote.indexer.walker import VaultError, scan_vault

__all__ = [
    "Database",
    "FrontmatterError",
    "Index",
    "Indexer",
    "Note",
    "ParsedDocument",
    "VaultError",
    "build_index",
    "extract_links",
    "parse_frontmatter",
    "read_snapshot",
    "scan_vault",
    "write_snapshot",
]
