"""Data models for catalog books and user annotations."""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, List, Dict, Any

NO_DESCRIPTION = "No description available"


class LoadState(Enum):
    """Catalog lifecycle of a library."""
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    EMPTY = "empty"


@dataclass
class BookRecord:
    """Book as returned by the catalog for the current session."""
    key: str
    title: str
    authors: List[str] = field(default_factory=list)
    cover_url: str = ""
    genre: str = ""
    publication_year: Optional[int] = None
    description: str = NO_DESCRIPTION

    @property
    def authors_str(self) -> str:
        """Format authors as comma-separated string."""
        return ", ".join(self.authors) if self.authors else "Unknown"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the field names of the stored book slots."""
        return {
            "key": self.key,
            "title": self.title,
            "authors": list(self.authors),
            "coverUrl": self.cover_url,
            "genre": self.genre,
            "publicationYear": self.publication_year,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookRecord":
        """
        Rebuild a record from its stored form.

        Args:
            data: Dict produced by ``to_dict`` (or a legacy book slot entry)

        Returns:
            BookRecord

        Raises:
            ValueError: If the dict has no usable key
        """
        key = data.get("key")
        if not key or not isinstance(key, str):
            raise ValueError("stored book has no key")

        year = data.get("publicationYear")
        return cls(
            key=key,
            title=str(data.get("title") or ""),
            authors=[a for a in data.get("authors") or [] if isinstance(a, str)],
            cover_url=str(data.get("coverUrl") or ""),
            genre=str(data.get("genre") or ""),
            publication_year=year if isinstance(year, int) else None,
            description=data.get("description") or NO_DESCRIPTION,
        )

    @classmethod
    def placeholder(cls, key: str) -> "BookRecord":
        """Stand-in for an annotated book whose record was never captured."""
        return cls(key=key, title=key)


@dataclass
class Annotation:
    """User-owned data attached to a book key."""
    liked: bool = False
    favorited: bool = False
    reviews: List[str] = field(default_factory=list)
    # Last record seen for this key, so listings work without a catalog
    book: Optional[BookRecord] = None

    def copy(self, **changes) -> "Annotation":
        """Return an independent copy with ``changes`` applied."""
        changes.setdefault("reviews", list(self.reviews))
        return replace(self, **changes)

    def to_dict(self, key: str) -> Dict[str, Any]:
        return {
            "key": key,
            "liked": self.liked,
            "favorited": self.favorited,
            "reviews": list(self.reviews),
            "book": self.book.to_dict() if self.book else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Annotation":
        book = data.get("book")
        return cls(
            liked=bool(data.get("liked", False)),
            favorited=bool(data.get("favorited", False)),
            reviews=[r for r in data.get("reviews") or [] if isinstance(r, str)],
            book=BookRecord.from_dict(book) if isinstance(book, dict) else None,
        )


@dataclass
class LibraryEntry:
    """A catalog book with its current annotation projected onto it."""
    key: str
    title: str
    authors: List[str]
    cover_url: str
    genre: str
    publication_year: Optional[int]
    description: str
    liked: bool = False
    favorited: bool = False
    reviews: List[str] = field(default_factory=list)

    @classmethod
    def merge(cls, record: BookRecord, annotation: Optional[Annotation] = None) -> "LibraryEntry":
        """
        Project an annotation onto a book record.

        Args:
            record: Book record (fresh from the catalog or a stored snapshot)
            annotation: Annotation for the same key, if any

        Returns:
            LibraryEntry
        """
        annotation = annotation or Annotation()
        return cls(
            key=record.key,
            title=record.title,
            authors=list(record.authors),
            cover_url=record.cover_url,
            genre=record.genre,
            publication_year=record.publication_year,
            description=record.description,
            liked=annotation.liked,
            favorited=annotation.favorited,
            reviews=list(annotation.reviews),
        )

    @property
    def authors_str(self) -> str:
        """Format authors as comma-separated string."""
        return ", ".join(self.authors) if self.authors else "Unknown"
