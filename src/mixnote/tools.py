"""MCP tools for the mixnote server.

This module defines the tools exposed to the desktop shell and agents:
- start_watch / stop_watch: control the single vault watch session
- watch_status: current vault and rebuild state
- get_index_path: location of the JSON snapshot
- get_note / get_backlinks: query the persisted index
- open_note: read the raw text of a note
"""

from fastmcp import FastMCP

from mixnote.indexer import Database, VaultError, read_snapshot
from mixnote.watcher import VaultWatcher


def start_watch(watcher: VaultWatcher, vault_path: str) -> dict:
    """Start watching a vault, replacing the current session."""
    try:
        session = watcher.start_watch(vault_path)
    except VaultError as e:
        return {"ok": False, "error": str(e)}
    return {"ok": True, "vault": str(session.vault_root)}


def stop_watch(watcher: VaultWatcher) -> dict:
    watcher.stop_watch()
    return {"ok": True}


def watch_status(watcher: VaultWatcher) -> dict:
    session = watcher.session
    return {
        "watching": session is not None,
        "vault": str(session.vault_root) if session else None,
        "rebuilding": session.scheduler.busy if session else False,
        "rebuilds_completed": session.scheduler.completed if session else 0,
        "snapshot_path": str(watcher.get_snapshot_path()),
    }


def get_note(watcher: VaultWatcher, filepath: str) -> dict | None:
    """Look a note up in the snapshot."""
    snapshot = read_snapshot(watcher.get_snapshot_path())
    if snapshot is None:
        return None
    note = snapshot["notes"].get(filepath)
    if note is None:
        return None
    # Notes are linked by title ([[b]]) or by id ([[b.md]])
    backlinks: list[str] = []
    for key in dict.fromkeys([note["title"], note["id"]]):
        backlinks.extend(snapshot["backlinks"].get(key, []))
    return {**note, "backlinks": backlinks}


def get_backlinks(watcher: VaultWatcher, db: Database, target: str) -> list[str]:
    """Source paths linking to a target, from the snapshot or the database."""
    snapshot = read_snapshot(watcher.get_snapshot_path())
    if snapshot is not None:
        return snapshot["backlinks"].get(target, [])
    return db.get_backlinks(target)


def open_note(watcher: VaultWatcher, filepath: str) -> dict:
    """Read a note from the watched vault."""
    session = watcher.session
    if session is None:
        return {"filepath": filepath, "raw": None, "error": "No vault is being watched"}
    try:
        raw = session.indexer.read_note(filepath)
    except (VaultError, OSError, UnicodeDecodeError) as e:
        return {"filepath": filepath, "raw": None, "error": str(e)}
    return {"filepath": filepath, "raw": raw}


def register_tools(mcp: FastMCP, watcher: VaultWatcher, db: Database) -> None:
    """Register all tools with the FastMCP server.

    Args:
        mcp: FastMCP server instance
        watcher: The process-wide vault watcher
        db: Database instance for queries
    """

    @mcp.tool(name="start_watch")
    def start_watch_tool(vault_path: str) -> dict:
        """Watch a vault directory and rebuild its index on every change.

        Any vault already being watched is released first. The index is
        rebuilt immediately and again after each file change.

        Args:
            vault_path: Absolute path of the vault directory

        Returns:
            {"ok": true, "vault": path} or {"ok": false, "error": message}
        """
        return start_watch(watcher, vault_path)

    @mcp.tool(name="stop_watch")
    def stop_watch_tool() -> dict:
        """Stop watching the current vault."""
        return stop_watch(watcher)

    @mcp.tool(name="watch_status")
    def watch_status_tool() -> dict:
        """Report the watched vault and whether a rebuild is in progress."""
        return watch_status(watcher)

    @mcp.tool(name="get_index_path")
    def get_index_path_tool() -> str:
        """Return the path of the JSON index snapshot."""
        return str(watcher.get_snapshot_path())

    @mcp.tool(name="get_note")
    def get_note_tool(filepath: str) -> dict | None:
        """Get a note's metadata (id, title, tags, links) and its backlinks.

        Args:
            filepath: Path of the note relative to the vault (e.g. "ideas.md")
        """
        return get_note(watcher, filepath)

    @mcp.tool(name="get_backlinks")
    def get_backlinks_tool(target: str) -> list[str]:
        """List the notes that link to a target with [[target]].

        Args:
            target: Link target as written inside the brackets
        """
        return get_backlinks(watcher, db, target)

    @mcp.tool(name="open_note")
    def open_note_tool(filepath: str) -> dict:
        """Read the raw markdown of a note in the watched vault.

        Args:
            filepath: Path of the note relative to the vault
        """
        return open_note(watcher, filepath)
