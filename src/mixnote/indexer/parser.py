"""Parser for YAML front matter at the top of a note."""

import logging
import re
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# Opening "---" line, header, closing "---" line
FRONTMATTER_PATTERN = re.compile(r"\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE)


class FrontmatterError(ValueError):
    """Raised when a note's front matter cannot be parsed."""


def parse_frontmatter(content: str, file_path: str) -> tuple[dict[str, Any], str]:
    """
    Split YAML front matter from markdown content.

    Args:
        content: The full markdown content
        file_path: Vault-relative path, used in diagnostics

    Returns:
        Tuple of (header mapping, body). Notes without front matter
        return an empty mapping and the content unchanged.

    Raises:
        FrontmatterError: If the header is not valid YAML or not a mapping.
    """
    match = FRONTMATTER_PATTERN.match(content)
    if not match:
        return {}, content

    try:
        raw = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        raise FrontmatterError(f"Invalid YAML front matter in {file_path}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise FrontmatterError(
            f"Front matter in {file_path} must be a mapping, got {type(raw).__name__}"
        )

    body = content[match.end():]
    return raw, body
