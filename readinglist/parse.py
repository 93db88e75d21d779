"""Parse and normalize Open Library subject responses."""
from typing import Dict, Any, List, Optional
import logging

from readinglist.models import BookRecord, NO_DESCRIPTION

logger = logging.getLogger(__name__)

DEFAULT_COVERS_BASE_URL = "https://covers.openlibrary.org"


def build_cover_url(cover_id: Any, covers_base_url: str = DEFAULT_COVERS_BASE_URL) -> str:
    """
    Build the large cover image URL for a cover id.

    A missing id still produces a URL (with an empty id) so callers
    never have to special-case it.
    """
    cover = "" if cover_id is None else cover_id
    return f"{covers_base_url.rstrip('/')}/b/id/{cover}-L.jpg"


def _parse_description(value: Any) -> str:
    # Open Library sends either a plain string or {"type": ..., "value": ...}
    if isinstance(value, dict):
        value = value.get("value")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return NO_DESCRIPTION


def parse_work(
    work: Dict[str, Any],
    genre: str = "",
    covers_base_url: str = DEFAULT_COVERS_BASE_URL
) -> Optional[BookRecord]:
    """
    Parse a single work from a subject response.

    Args:
        work: One entry of the ``works`` array
        genre: Subject label shared by every work of the page
        covers_base_url: Host serving cover images

    Returns:
        BookRecord or None if the work has no key
    """
    if not isinstance(work, dict):
        return None

    key = work.get("key")
    if not key or not isinstance(key, str):
        return None

    authors = [
        author["name"]
        for author in work.get("authors") or []
        if isinstance(author, dict) and isinstance(author.get("name"), str)
    ]

    year = work.get("first_publish_year")

    return BookRecord(
        key=key,
        title=str(work.get("title") or ""),
        authors=authors,
        cover_url=build_cover_url(work.get("cover_id"), covers_base_url),
        genre=genre,
        publication_year=year if isinstance(year, int) else None,
        description=_parse_description(work.get("description"))
    )


def parse_subject_response(
    response_json: Dict[str, Any],
    covers_base_url: str = DEFAULT_COVERS_BASE_URL
) -> List[BookRecord]:
    """
    Parse a full subject page.

    Args:
        response_json: Decoded subject endpoint payload
        covers_base_url: Host serving cover images

    Returns:
        List of BookRecord objects in catalog order

    Raises:
        ValueError: If the payload has no ``works`` list
    """
    if not isinstance(response_json, dict) or not isinstance(response_json.get("works"), list):
        raise ValueError("subject payload has no works list")

    genre = str(response_json.get("name") or "")
    books = []

    for work in response_json["works"]:
        book = parse_work(work, genre, covers_base_url)
        if book:
            books.append(book)
        else:
            logger.debug(f"Skipping work without key: {work!r}")

    return books


def deduplicate_books(books: List[BookRecord]) -> List[BookRecord]:
    """
    Remove duplicate books by key, keeping the first occurrence.

    Args:
        books: List of BookRecord objects

    Returns:
        Deduplicated list of books
    """
    seen_keys = set()
    unique_books = []

    for book in books:
        if book.key not in seen_keys:
            seen_keys.add(book.key)
            unique_books.append(book)

    return unique_books
