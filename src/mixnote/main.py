"""Main entry point for the mixnote indexer server."""

import argparse
import logging
import sys
from pathlib import Path

from fastmcp import FastMCP

from mixnote.config import Config
from mixnote.indexer import Database, Indexer, VaultError
from mixnote.resources import register_resources
from mixnote.tools import register_tools
from mixnote.watcher import VaultWatcher
from mixnote.webhooks import WebhookNotifier

logger = logging.getLogger(__name__)


def create_server(config: Config, watcher: VaultWatcher) -> FastMCP:
    """Create and configure the MCP server.

    Args:
        config: Configuration instance with all settings.
        watcher: Vault watcher the tools operate on.
    """
    mcp = FastMCP(
        name="mixnote",
        instructions=(
            "mixnote indexes a vault of markdown notes. Use start_watch to select "
            "a vault, get_note and get_backlinks to navigate [[wikilinks]], and the "
            "mixnote://index resource for the full index."
        ),
    )

    logger.info("Initializing database at %s", config.db_path)
    db = Database(config.db_path)
    db.initialize()

    logger.info("Registering resources...")
    register_resources(mcp, watcher)

    logger.info("Registering tools...")
    register_tools(mcp, watcher, db)

    logger.info("Server configured successfully")
    return mcp


def reindex(config: Config, vault: Path) -> int:
    """Rebuild the index of a vault once. Returns the number of notes."""
    indexer = Indexer(vault, config.db_path, config.index_file, prune_db=config.prune_db)
    try:
        index = indexer.rebuild()
    finally:
        indexer.close()
    return len(index.notes)


def main() -> None:
    """Main function - watches the vault and serves the MCP tools."""
    # Configure logging here to avoid side effects on import
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="mixnote - vault indexer and backlink server")
    parser.add_argument(
        "--vault",
        type=Path,
        help="Vault directory to watch (default: MIXNOTE_VAULT or ~/MixNoteVault)",
    )
    parser.add_argument(
        "--reindex",
        action="store_true",
        help="Rebuild the index once and exit",
    )
    parser.add_argument(
        "--no-watch",
        action="store_true",
        help="Start the server without watching a vault",
    )
    args = parser.parse_args()

    config = Config.from_env()
    vault = (args.vault or config.vault).expanduser()

    logger.info("=" * 50)
    logger.info("mixnote starting...")
    logger.info("  VAULT:    %s", vault)
    logger.info("  INDEX:    %s", config.index_file)
    logger.info("  DB:       %s", config.db_path)
    logger.info("  DEPTH:    %d", config.watch_depth)
    logger.info("  PRUNE_DB: %s", config.prune_db)
    logger.info("  WEBHOOKS: %d", len(config.webhook_urls))
    logger.info("=" * 50)

    # The default vault is created on first use; an explicit one must exist
    if args.vault is None:
        vault.mkdir(parents=True, exist_ok=True)

    if args.reindex:
        try:
            count = reindex(config, vault)
        except VaultError as e:
            logger.error("%s", e)
            sys.exit(1)
        logger.info("Reindex complete: %d notes indexed", count)
        return

    watcher = VaultWatcher(config)
    notifier = WebhookNotifier.from_config(config, vault=lambda: watcher.current_vault)
    if notifier is not None:
        notifier.attach(watcher.bus)

    try:
        if not args.no_watch:
            watcher.start_watch(vault)
        mcp = create_server(config, watcher)
        logger.info("Starting MCP server on port %s...", config.port)
        mcp.run(transport="sse", host="127.0.0.1", port=config.port)
    except VaultError as e:
        logger.error("%s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception:
        logger.exception("Server error")
        sys.exit(1)
    finally:
        watcher.stop_watch()
        if notifier is not None:
            notifier.shutdown()


if __name__ == "__main__":
    main()
