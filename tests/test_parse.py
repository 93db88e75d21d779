"""Tests for parsing functions."""
import pytest

from readinglist.parse import parse_work, parse_subject_response, deduplicate_books, build_cover_url
from readinglist.models import BookRecord, NO_DESCRIPTION


def test_parse_work_complete():
    """Test parsing a work with all fields present."""
    work = {
        "key": "/works/OL893415W",
        "title": "Dune",
        "authors": [{"key": "/authors/OL79034A", "name": "Frank Herbert"}],
        "cover_id": 11481354,
        "first_publish_year": 1965,
        "description": {"type": "/type/text", "value": "Desert planet."}
    }

    book = parse_work(work, genre="Science Fiction")

    assert book is not None
    assert book.key == "/works/OL893415W"
    assert book.title == "Dune"
    assert book.authors == ["Frank Herbert"]
    assert book.cover_url == "https://covers.openlibrary.org/b/id/11481354-L.jpg"
    assert book.genre == "Science Fiction"
    assert book.publication_year == 1965
    assert book.description == "Desert planet."


def test_parse_work_missing_fields():
    """Test parsing a work with missing optional fields."""
    work = {
        "key": "/works/OL1W",
        "title": "Mystery Book"
    }

    book = parse_work(work)

    assert book is not None
    assert book.authors == []
    assert book.publication_year is None
    assert book.description == NO_DESCRIPTION
    # Still a URL, just not a valid cover
    assert book.cover_url == "https://covers.openlibrary.org/b/id/-L.jpg"


def test_parse_work_plain_string_description():
    """Test that a plain string description is used as-is."""
    book = parse_work({"key": "/works/OL2W", "title": "T", "description": "  Short.  "})

    assert book.description == "Short."


def test_parse_work_skips_nameless_authors():
    """Test that author entries without a name are dropped."""
    work = {
        "key": "/works/OL3W",
        "title": "Anthology",
        "authors": [{"name": "A. Writer"}, {"key": "/authors/OL9A"}, "junk"]
    }

    book = parse_work(work)

    assert book.authors == ["A. Writer"]


def test_parse_work_no_key():
    """Test that a work without key returns None."""
    assert parse_work({"title": "No Key Book"}) is None


def test_build_cover_url_custom_host():
    """Test cover URL on a different covers host."""
    assert build_cover_url(42, "http://covers.local/") == "http://covers.local/b/id/42-L.jpg"


def test_parse_subject_response():
    """Test parsing complete subject response."""
    response = {
        "name": "sci-fi",
        "works": [
            {"key": "/works/OL1W", "title": "Book 1"},
            {"title": "No key"},
            {"key": "/works/OL2W", "title": "Book 2"}
        ]
    }

    books = parse_subject_response(response)

    assert [b.title for b in books] == ["Book 1", "Book 2"]
    assert all(b.genre == "sci-fi" for b in books)


def test_parse_subject_response_without_works():
    """Test that a payload without works is a decode failure."""
    with pytest.raises(ValueError):
        parse_subject_response({"name": "sci-fi"})

    with pytest.raises(ValueError):
        parse_subject_response(["not", "a", "dict"])


def test_deduplicate_books():
    """Test deduplication by book key."""
    books = [
        BookRecord("1", "Book A"),
        BookRecord("2", "Book B"),
        BookRecord("1", "Book A Duplicate"),
    ]

    unique = deduplicate_books(books)

    assert len(unique) == 2
    assert unique[0].title == "Book A"
    assert unique[1].key == "2"
