"""Tests for the async catalog client."""
import asyncio

import httpx
import pytest

from readinglist.async_client import AsyncCatalogClient
from readinglist.errors import FetchError


SUBJECT_PAYLOAD = {
    "key": "/subjects/sci-fi",
    "name": "sci-fi",
    "work_count": 3,
    "works": [
        {
            "key": "/works/OL893415W",
            "title": "Dune",
            "authors": [{"key": "/authors/OL79034A", "name": "Frank Herbert"}],
            "cover_id": 11481354,
            "first_publish_year": 1965
        },
        {
            "key": "/works/OL46125W",
            "title": "Solaris",
            "cover_id": None
        },
        {
            "key": "/works/OL893415W",
            "title": "Dune (duplicate)"
        }
    ]
}


def run_fetch(handler, subject="sci-fi", filters=None, **kwargs):
    """Fetch through a mock transport and return the parsed books."""
    async def scenario():
        async with AsyncCatalogClient(transport=httpx.MockTransport(handler), **kwargs) as client:
            return await client.fetch(subject, filters)

    return asyncio.run(scenario())


def test_fetch_parses_subject_page():
    """Test a successful response becomes ordered, unique books."""
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json=SUBJECT_PAYLOAD)

    books = run_fetch(handler, filters={"limit": 3})

    assert [b.title for b in books] == ["Dune", "Solaris"]
    assert books[0].authors == ["Frank Herbert"]
    assert books[0].cover_url == "https://covers.openlibrary.org/b/id/11481354-L.jpg"
    assert books[1].authors == []
    assert books[1].description == "No description available"

    request = requests[0]
    assert request.url.path == "/subjects/sci-fi.json"
    assert request.url.params["details"] == "true"
    assert request.url.params["limit"] == "3"


def test_custom_hosts():
    """Test catalog and cover hosts come from the constructor."""
    seen = []

    def handler(request):
        seen.append(str(request.url.host))
        return httpx.Response(200, json=SUBJECT_PAYLOAD)

    books = run_fetch(handler, base_url="http://catalog.local/", covers_base_url="http://img.local")

    assert seen == ["catalog.local"]
    assert books[0].cover_url == "http://img.local/b/id/11481354-L.jpg"


def test_error_status_raises_fetch_error():
    """Test non-200 responses are fetch failures."""
    with pytest.raises(FetchError):
        run_fetch(lambda request: httpx.Response(503))

    with pytest.raises(FetchError):
        run_fetch(lambda request: httpx.Response(404, json={"error": "notfound"}))


def test_invalid_json_raises_fetch_error():
    """Test an undecodable body is a fetch failure."""
    with pytest.raises(FetchError):
        run_fetch(lambda request: httpx.Response(200, content=b"<html>oops</html>"))


def test_missing_works_raises_fetch_error():
    """Test a payload without works is a fetch failure."""
    with pytest.raises(FetchError):
        run_fetch(lambda request: httpx.Response(200, json={"name": "sci-fi"}))


def test_transport_error_raises_fetch_error():
    """Test connection problems are wrapped."""
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(FetchError) as excinfo:
        run_fetch(handler)

    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


def test_subject_url():
    """Test endpoint construction."""
    async def scenario():
        async with AsyncCatalogClient(base_url="https://openlibrary.org/") as client:
            return client.subject_url("fantasy")

    assert asyncio.run(scenario()) == "https://openlibrary.org/subjects/fantasy.json"
