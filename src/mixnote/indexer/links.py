"""Extraction of [[wikilink]] references from note bodies."""

import re

# [[Target]] or [[Target|Alias]]; no brackets or line breaks inside
WIKILINK_PATTERN = re.compile(r"\[\[([^\[\]\r\n]+?)\]\]")


def extract_links(body: str) -> list[str]:
    """
    Return the link targets referenced in a note body.

    Targets are returned in order of appearance and duplicates are kept.
    For aliased links only the part before ``|`` is returned. Unterminated
    or empty brackets are ignored.
    """
    links: list[str] = []
    for match in WIKILINK_PATTERN.finditer(body):
        target = match.group(1).split("|", 1)[0].strip()
        if target:
            links.append(target)
    return links
