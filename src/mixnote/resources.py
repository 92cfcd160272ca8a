"""MCP Resources for mixnote.

Resources expose the persisted index as read-only URIs.
"""

import json

from mixnote.indexer import read_snapshot
from mixnote.watcher import VaultWatcher


def get_index_resource(watcher: VaultWatcher) -> str:
    """Return the snapshot as JSON text (an empty index before the first rebuild)."""
    snapshot = read_snapshot(watcher.get_snapshot_path())
    if snapshot is None:
        snapshot = {"notes": {}, "backlinks": {}}
    return json.dumps(snapshot, indent=2, ensure_ascii=False)


def register_resources(mcp, watcher: VaultWatcher):
    """Register all resources with the FastMCP server.

    Args:
        mcp: FastMCP server instance
        watcher: The process-wide vault watcher
    """

    @mcp.resource("mixnote://index", mime_type="application/json")
    def index():
        """The full note index: notes by path and backlinks by target."""
        return get_index_resource(watcher)
