"""Library state: the fetched catalog merged with durable annotations.

``LibraryManager`` is the single owner of both collections. The catalog
is replaced wholesale on every successful fetch; annotations are looked
up by key when entries are built, so likes, favorites and reviews always
win over a catalog refresh.

Mutations are committed through a shadow copy of the annotation map:
the copy is written durably first and only becomes visible once the
write succeeded. A failed write leaves the visible state untouched and
raises ``PersistError``.
"""
from typing import Callable, Dict, List, Optional, Any
import logging

from readinglist.annotations import AnnotationStore
from readinglist.errors import FetchError, StorageError, PersistError, ValidationError, LibraryError
from readinglist.models import Annotation, BookRecord, LibraryEntry, LoadState
from readinglist.search import filter_entries

logger = logging.getLogger(__name__)

Listener = Callable[[str, "LibraryManager"], Any]

STATE_EVENT = "state"
CATALOG_EVENT = "catalog"
ANNOTATIONS_EVENT = "annotations"


class LibraryManager:
    """Merged, queryable view of catalog books and user annotations."""

    def __init__(self, fetcher, store: AnnotationStore, subject: str = "sci-fi"):
        """
        Initialize the manager.

        Args:
            fetcher: Object with ``async fetch(subject, filters=None)``
            store: Durable annotation store
            subject: Subject loaded when ``load_catalog`` gets none
        """
        self.fetcher = fetcher
        self.store = store
        self.subject = subject

        self._catalog: List[BookRecord] = []
        self._annotations: Dict[str, Annotation] = {}
        self._state = LoadState.IDLE
        self._generation = 0
        self._listeners: List[Listener] = []
        self.last_error: Optional[LibraryError] = None

    # Observers

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a change listener.

        Args:
            listener: Called as ``listener(event, manager)``

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: str):
        for listener in list(self._listeners):
            try:
                listener(event, self)
            except Exception:
                logger.exception(f"Listener failed on {event} event")

    def _set_state(self, state: LoadState):
        if state is not self._state:
            logger.debug(f"Library state {self._state.value} -> {state.value}")
            self._state = state
            self._notify(STATE_EVENT)

    # Loading

    @property
    def state(self) -> LoadState:
        return self._state

    def load_annotations(self) -> int:
        """
        Read durable annotations into memory.

        Returns:
            Number of annotations loaded

        Raises:
            StorageError: If the store cannot be read; the library then
                starts with no annotations
        """
        try:
            annotations = self.store.load()
        except StorageError as e:
            logger.error(f"Could not load annotations: {e}")
            self._annotations = {}
            self.last_error = e
            raise

        self._annotations = annotations
        self._notify(ANNOTATIONS_EVENT)
        return len(annotations)

    async def load_catalog(
        self,
        subject: Optional[str] = None,
        filters: Optional[Dict[str, Any]] = None
    ) -> List[LibraryEntry]:
        """
        Fetch a fresh catalog and merge it with the annotations.

        Only the most recent call may change state; an older fetch that
        resolves later is discarded.

        Args:
            subject: Subject to load (defaults to ``self.subject``)
            filters: Extra query parameters for the fetcher

        Returns:
            The merged entries

        Raises:
            FetchError: If the fetch failed; the catalog is then empty
        """
        self._generation += 1
        generation = self._generation
        subject = subject or self.subject
        self._set_state(LoadState.LOADING)

        try:
            records = await self.fetcher.fetch(subject, filters)
        except FetchError as e:
            if generation != self._generation:
                logger.info(f"Ignoring failure of superseded fetch #{generation}: {e}")
                raise
            logger.warning(f"Catalog fetch failed, showing empty catalog: {e}")
            self._catalog = []
            self.last_error = e
            self._notify(CATALOG_EVENT)
            self._set_state(LoadState.EMPTY)
            raise

        if generation != self._generation:
            logger.info(f"Discarding result of superseded fetch #{generation}")
            return self.entries

        self._catalog = list(records)
        self.last_error = None
        logger.info(f"Catalog loaded: {len(self._catalog)} books for {subject}")
        self._notify(CATALOG_EVENT)
        self._set_state(LoadState.READY)
        return self.entries

    # Queries

    @property
    def entries(self) -> List[LibraryEntry]:
        """Current catalog with annotations applied, in catalog order."""
        return [LibraryEntry.merge(r, self._annotations.get(r.key)) for r in self._catalog]

    def search(self, query: str) -> List[LibraryEntry]:
        """Entries whose title contains ``query``; blank returns everything."""
        return filter_entries(self.entries, query)

    def _record(self, key: str) -> Optional[BookRecord]:
        for record in self._catalog:
            if record.key == key:
                return record
        annotation = self._annotations.get(key)
        return annotation.book if annotation else None

    def get_entry(self, key: str) -> Optional[LibraryEntry]:
        """Entry for ``key`` from the catalog or an annotation snapshot."""
        annotation = self._annotations.get(key)
        record = self._record(key)
        if record is None:
            if annotation is None:
                return None
            record = BookRecord.placeholder(key)
        return LibraryEntry.merge(record, annotation)

    def annotation(self, key: str) -> Annotation:
        """Copy of the committed annotation for ``key`` (default if none)."""
        current = self._annotations.get(key)
        return current.copy() if current else Annotation()

    def is_favorite(self, key: str) -> bool:
        current = self._annotations.get(key)
        return bool(current and current.favorited)

    def _listing(self, flag: str) -> List[LibraryEntry]:
        listing = []
        for key, annotation in self._annotations.items():
            if getattr(annotation, flag):
                record = self._record(key) or BookRecord.placeholder(key)
                listing.append(LibraryEntry.merge(record, annotation))
        return listing

    def get_favorites(self) -> List[LibraryEntry]:
        """Favorited books, in the order they were first annotated."""
        return self._listing("favorited")

    def get_liked(self) -> List[LibraryEntry]:
        """Liked books, in the order they were first annotated."""
        return self._listing("liked")

    # Mutations

    def _draft(self, key: str) -> Annotation:
        record = self._record(key)
        if record is None and key not in self._annotations:
            raise ValidationError(f"Unknown book: {key}")
        draft = self.annotation(key)
        if record is not None:
            draft.book = record
        return draft

    def _commit(self, key: str, annotation: Annotation) -> LibraryEntry:
        shadow = dict(self._annotations)
        shadow[key] = annotation
        try:
            self.store.save(shadow)
        except StorageError as e:
            logger.error(f"Annotation write for {key} failed, change discarded: {e}")
            error = PersistError(key, f"Could not save changes to {key}")
            self.last_error = error
            raise error from e

        self._annotations = shadow
        self._notify(ANNOTATIONS_EVENT)
        return self.get_entry(key)

    def toggle_like(self, key: str) -> LibraryEntry:
        """
        Flip the liked flag of a book.

        Raises:
            ValidationError: If the book is unknown
            PersistError: If the change could not be saved
        """
        draft = self._draft(key)
        draft.liked = not draft.liked
        return self._commit(key, draft)

    def set_favorite(self, key: str, value: bool) -> LibraryEntry:
        """
        Add a book to, or remove it from, the favorites.

        Raises:
            ValidationError: If the book is unknown
            PersistError: If the change could not be saved
        """
        draft = self._draft(key)
        if draft.favorited == bool(value):
            return self.get_entry(key)
        draft.favorited = bool(value)
        return self._commit(key, draft)

    def add_review(self, key: str, text: str) -> LibraryEntry:
        """
        Append a review to a book.

        Raises:
            ValidationError: If the text is blank or the book is unknown
            PersistError: If the review could not be saved
        """
        if not text or not text.strip():
            raise ValidationError("Review text is empty")
        draft = self._draft(key)
        draft.reviews.append(text.strip())
        return self._commit(key, draft)
