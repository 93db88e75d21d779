"""Title search over the current library view."""
from typing import Iterable, List, Optional

from readinglist.models import LibraryEntry


def normalize(text: Optional[str]) -> str:
    """Lowercase and strip a string for case-insensitive comparison."""
    return (text or "").strip().lower()


def filter_entries(entries: Iterable[LibraryEntry], query: Optional[str]) -> List[LibraryEntry]:
    """
    Filter entries whose title contains ``query``.

    Recomputed by a linear scan on every call; catalogs are one fetch
    page long. A blank query returns every entry.

    Args:
        entries: Entries in catalog order
        query: Search text

    Returns:
        Matching entries in their original order
    """
    needle = normalize(query)
    if not needle:
        return list(entries)
    return [entry for entry in entries if needle in (entry.title or "").lower()]
