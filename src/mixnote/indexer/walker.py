"""Scanner for discovering and parsing notes in a vault."""

import logging
import os
from pathlib import Path

from mixnote.indexer.models import ParsedDocument
from mixnote.indexer.parser import FrontmatterError, parse_frontmatter

logger = logging.getLogger(__name__)

NOTE_SUFFIX = ".md"


class VaultError(Exception):
    """Raised when a vault path is missing, not a directory, or unreadable."""

    pass


def check_vault(vault_root: Path) -> None:
    """Verify a vault can be scanned.

    Raises:
        VaultError: If the path does not exist, is not a directory or cannot be listed.
    """
    if not vault_root.exists():
        raise VaultError(f"Vault does not exist: {vault_root}")
    if not vault_root.is_dir():
        raise VaultError(f"Vault is not a directory: {vault_root}")
    try:
        with os.scandir(vault_root):
            pass
    except OSError as e:
        raise VaultError(f"Vault is not readable: {vault_root} ({e})") from e


def scan_vault(vault_root: Path) -> list[ParsedDocument]:
    """
    List the notes directly under the vault root and parse each one.

    Only regular files with the ``.md`` suffix are considered; sub-directories
    are not descended into. A note that cannot be read or parsed is skipped
    with a warning and the rest of the scan proceeds.

    Returns:
        Parsed documents in filesystem listing order.

    Raises:
        VaultError: If the vault itself cannot be listed.
    """
    check_vault(vault_root)

    documents: list[ParsedDocument] = []
    for file_path in vault_root.iterdir():
        if file_path.suffix != NOTE_SUFFIX:
            continue
        if not file_path.is_file():
            continue

        relative_path = file_path.relative_to(vault_root).as_posix()
        try:
            content = file_path.read_text(encoding="utf-8")
            header, body = parse_frontmatter(content, relative_path)
        except UnicodeDecodeError as e:
            # Encrypted or binary notes are not plain text
            logger.warning("Skipping note with invalid UTF-8 encoding: %s (%s)", relative_path, e)
            continue
        except FrontmatterError as e:
            logger.warning("Skipping note with invalid front matter: %s", e)
            continue
        except OSError as e:
            logger.warning("Cannot read note %s: %s", relative_path, e)
            continue

        documents.append(
            ParsedDocument(
                filepath=relative_path,
                path=file_path,
                header=header,
                body=body,
            )
        )

    logger.debug("Scanned %d notes in %s", len(documents), vault_root)
    return documents
