"""Parsing of the RFC 5988 ``Link`` header Canvas uses for pagination."""

from dataclasses import dataclass
from typing import Optional

KNOWN_RELATIONS = ("current", "next", "prev", "first", "last")


@dataclass(frozen=True)
class PaginationLinks:
    """Named pagination links from one response."""
    current: Optional[str] = None
    next: Optional[str] = None
    prev: Optional[str] = None
    first: Optional[str] = None
    last: Optional[str] = None


def _parse_entry(entry: str) -> tuple[Optional[str], Optional[str]]:
    """Split one ``<url>; rel="name"`` entry into (url, rel)."""
    segments = entry.split(';')
    url_part = segments[0].strip()
    if not (url_part.startswith('<') and url_part.endswith('>')):
        return None, None
    url = url_part[1:-1].strip()

    rel = None
    for segment in segments[1:]:
        key, _, value = segment.strip().partition('=')
        if key.strip().lower() == 'rel' and value:
            rel = value.strip().strip('"').strip()
            break
    return url or None, rel


def parse_link_header(header: Optional[str]) -> PaginationLinks:
    """
    Parse a Link header into PaginationLinks.

    Handles any number of comma-separated entries. Entries without a rel,
    or with a rel outside KNOWN_RELATIONS, are skipped. A space-separated
    rel list (``rel="next last"``) registers the URL under each name.
    """
    if not header:
        return PaginationLinks()

    found: dict[str, str] = {}
    for entry in header.split(','):
        url, rel = _parse_entry(entry)
        if not url or not rel:
            continue
        for name in rel.split():
            if name in KNOWN_RELATIONS and name not in found:
                found[name] = url

    return PaginationLinks(**found)
