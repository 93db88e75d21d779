"""Async HTTP client for Open Library subject catalogs."""
import httpx
from typing import List, Optional, Dict, Any
import logging

from readinglist.errors import FetchError
from readinglist.models import BookRecord
from readinglist.parse import parse_subject_response, deduplicate_books, DEFAULT_COVERS_BASE_URL

logger = logging.getLogger(__name__)


class AsyncCatalogClient:
    """Async client fetching one page of books for a subject."""

    BASE_URL = "https://openlibrary.org"

    def __init__(
        self,
        base_url: Optional[str] = None,
        covers_base_url: str = DEFAULT_COVERS_BASE_URL,
        timeout: int = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize async client.

        Args:
            base_url: Catalog host (defaults to Open Library)
            covers_base_url: Host serving cover images
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.covers_base_url = covers_base_url
        self.timeout = timeout

        # Create async HTTP client
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def subject_url(self, subject: str) -> str:
        """URL of the subject endpoint."""
        return f"{self.base_url}/subjects/{subject}.json"

    async def get_subject(
        self,
        subject: str,
        filters: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Fetch the raw subject payload.

        Args:
            subject: Subject identifier, e.g. ``sci-fi``
            filters: Extra query parameters (``limit``, ``offset``, ...)

        Returns:
            Decoded JSON payload

        Raises:
            FetchError: On transport failure, non-200 status or invalid JSON
        """
        params: Dict[str, Any] = {"details": "true"}
        if filters:
            params.update(filters)

        url = self.subject_url(subject)
        logger.info(f"Async request: {url} params={params}")

        try:
            response = await self.client.get(url, params=params)
        except httpx.HTTPError as e:
            logger.error(f"Async request failed: {e}")
            raise FetchError(f"Request for subject {subject!r} failed: {e}") from e

        if response.status_code != 200:
            logger.warning(f"Status {response.status_code} for subject: {subject}")
            raise FetchError(f"Subject {subject!r} returned status {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Invalid JSON for subject {subject}: {e}")
            raise FetchError(f"Subject {subject!r} returned invalid JSON") from e

    async def fetch(
        self,
        subject: str,
        filters: Optional[Dict[str, Any]] = None
    ) -> List[BookRecord]:
        """
        Fetch and parse one page of books for a subject.

        Args:
            subject: Subject identifier
            filters: Extra query parameters

        Returns:
            List of BookRecord objects in catalog order

        Raises:
            FetchError: On transport or decode failure
        """
        data = await self.get_subject(subject, filters)

        try:
            books = parse_subject_response(data, self.covers_base_url)
        except ValueError as e:
            logger.error(f"Could not decode subject {subject}: {e}")
            raise FetchError(f"Subject {subject!r} payload could not be decoded") from e

        books = deduplicate_books(books)
        logger.info(f"Fetched {len(books)} books for subject {subject}")
        return books

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
