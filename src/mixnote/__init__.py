"""
mixnote - vault indexer for plain-text notes.

Watches a directory of markdown notes, extracts front matter and [[wikilinks]],
and keeps a forward/backlink index in sync with the filesystem.

Stack:
- Python + watchdog (filesystem events)
- SQLite (relational index store)
- JSON snapshot (authoritative index file)
- FastMCP (boundary for the desktop shell and agents)
"""

__version__ = "0.1.0"
