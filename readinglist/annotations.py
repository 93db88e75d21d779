"""Durable annotation store over an opaque key-value substrate.

The store keeps every annotation in a single ``annotations`` collection
that is rewritten wholesale on each commit. Favorites and liked listings
are derived from it, so there is nothing to keep in sync.

Older installs kept two separate collections, ``favorites`` and
``likedBooks``, each a JSON array of book records. When no
``annotations`` collection exists yet, ``load()`` imports those.
"""
import contextlib
import json
import os
import tempfile
from typing import Optional, Dict, List
import logging

from readinglist.errors import StorageError
from readinglist.models import Annotation, BookRecord

logger = logging.getLogger(__name__)

ANNOTATIONS = "annotations"
LEGACY_FAVORITES = "favorites"
LEGACY_LIKED = "likedBooks"
FORMAT_VERSION = 1


class MemorySubstrate:
    """Substrate backed by a dict; nothing survives the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.blobs: Dict[str, str] = dict(initial or {})

    def get(self, name: str) -> Optional[str]:
        return self.blobs.get(name)

    def set(self, name: str, blob: str) -> None:
        self.blobs[name] = blob


class FileSubstrate:
    """One JSON file per collection inside a directory."""

    def __init__(self, directory: str):
        self.directory = directory

    def _path(self, name: str) -> str:
        return os.path.join(self.directory, f"{name}.json")

    def get(self, name: str) -> Optional[str]:
        path = self._path(name)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def set(self, name: str, blob: str) -> None:
        """Write to a temp file then rename it over the collection."""
        path = self._path(name)
        try:
            os.makedirs(self.directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(blob)
                os.replace(tmp_path, path)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e
        logger.debug(f"Wrote {path}")


def open_substrate(config):
    """
    Build the substrate selected by ``config.STORAGE_BACKEND``.

    Args:
        config: Config instance

    Returns:
        Substrate with ``get``/``set``

    Raises:
        ValueError: If the backend name is unknown
    """
    backend = config.STORAGE_BACKEND.lower()

    if backend == "file":
        return FileSubstrate(config.STORAGE_PATH)
    if backend == "memory":
        return MemorySubstrate()
    if backend == "postgres":
        from readinglist.database import PostgresSubstrate

        substrate = PostgresSubstrate(config.DATABASE_URL)
        substrate.init_schema()
        return substrate

    raise ValueError(f"Unknown storage backend: {config.STORAGE_BACKEND}")


class AnnotationStore:
    """Reads and writes the annotation map as one collection."""

    def __init__(self, substrate):
        self.substrate = substrate

    def _decode(self, name: str, blob: str):
        try:
            return json.loads(blob)
        except ValueError as e:
            raise StorageError(f"Collection {name!r} is not valid JSON") from e

    def load(self) -> Dict[str, Annotation]:
        """
        Read every stored annotation.

        Returns:
            Dict of key -> Annotation in creation order

        Raises:
            StorageError: If the substrate fails or the data is corrupt
        """
        blob = self.substrate.get(ANNOTATIONS)
        if blob is None:
            return self._load_legacy()

        data = self._decode(ANNOTATIONS, blob)
        if not isinstance(data, dict) or not isinstance(data.get("annotations"), list):
            raise StorageError(f"Collection {ANNOTATIONS!r} has an unexpected layout")

        annotations: Dict[str, Annotation] = {}
        for item in data["annotations"]:
            try:
                key = item["key"]
                if not isinstance(key, str) or not key:
                    raise ValueError(f"annotation key must be a string, got {key!r}")
                annotations[key] = Annotation.from_dict(item)
            except (KeyError, TypeError, ValueError) as e:
                raise StorageError(f"Corrupt annotation entry: {item!r}") from e

        logger.info(f"Loaded {len(annotations)} annotations")
        return annotations

    def _legacy_records(self, name: str) -> List[dict]:
        blob = self.substrate.get(name)
        if blob is None:
            return []
        data = self._decode(name, blob)
        if not isinstance(data, list):
            raise StorageError(f"Collection {name!r} is not a list")
        return [item for item in data if isinstance(item, dict)]

    def _load_legacy(self) -> Dict[str, Annotation]:
        annotations: Dict[str, Annotation] = {}

        for name, flag in ((LEGACY_FAVORITES, "favorited"), (LEGACY_LIKED, "liked")):
            for item in self._legacy_records(name):
                try:
                    book = BookRecord.from_dict(item)
                except ValueError:
                    logger.warning(f"Skipping {name} entry without key")
                    continue

                annotation = annotations.setdefault(book.key, Annotation(book=book))
                setattr(annotation, flag, True)
                if not annotation.reviews:
                    annotation.reviews = [r for r in item.get("reviews") or [] if isinstance(r, str)]

        if annotations:
            logger.info(f"Imported {len(annotations)} annotations from legacy collections")
        return annotations

    def save(self, annotations: Dict[str, Annotation]) -> None:
        """
        Rewrite the annotation collection.

        Args:
            annotations: Complete key -> Annotation map

        Raises:
            StorageError: If the substrate rejects the write
        """
        blob = json.dumps({
            "version": FORMAT_VERSION,
            "annotations": [a.to_dict(key) for key, a in annotations.items()],
        })
        self.substrate.set(ANNOTATIONS, blob)
