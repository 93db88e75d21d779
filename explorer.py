#!/usr/bin/env python3
"""Reading List Explorer - terminal shell over the library."""
import argparse
import asyncio
import sys
import json
from tabulate import tabulate
from readinglist.annotations import AnnotationStore, open_substrate
from readinglist.async_client import AsyncCatalogClient
from readinglist.config import Config
from readinglist.errors import FetchError, LibraryError
from readinglist.library import LibraryManager
import logging

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool):
    """Configure root logging for the shell."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )


async def load_library(manager: LibraryManager, args) -> bool:
    """Load annotations and the catalog; False if the catalog is unavailable."""
    try:
        manager.load_annotations()
    except LibraryError as e:
        logger.error(f"Annotations unavailable: {e}")

    filters = {"limit": args.limit} if args.limit else None
    try:
        await manager.load_catalog(args.subject, filters)
    except FetchError as e:
        logger.error(f"Catalog unavailable: {e}")
        return False
    return True


def display_entries(entries, format_type: str):
    """Display library entries in specified format."""
    if format_type == "table":
        headers = ["Key", "Title", "Authors", "Year", "Liked", "Favorite", "Reviews"]
        rows = [
            [
                entry.key,
                entry.title[:50] + "..." if len(entry.title) > 50 else entry.title,
                entry.authors_str[:30] + "..." if len(entry.authors_str) > 30 else entry.authors_str,
                entry.publication_year or "Unknown",
                "yes" if entry.liked else "",
                "yes" if entry.favorited else "",
                len(entry.reviews)
            ]
            for entry in entries
        ]
        print("\n" + tabulate(rows, headers=headers, tablefmt="grid"))

    elif format_type == "json":
        data = [
            {
                "key": entry.key,
                "title": entry.title,
                "authors": entry.authors,
                "coverUrl": entry.cover_url,
                "genre": entry.genre,
                "publicationYear": entry.publication_year,
                "description": entry.description,
                "liked": entry.liked,
                "favorited": entry.favorited,
                "reviews": entry.reviews
            }
            for entry in entries
        ]
        print(json.dumps(data, indent=2))

    elif format_type == "compact":
        for i, entry in enumerate(entries, 1):
            print(f"{i}. {entry.title} - {entry.authors_str}")


def display_detail(entry):
    """Print every field of one entry."""
    print("\n" + "=" * 50)
    print(entry.title)
    print("=" * 50)
    print(f"By {entry.authors_str}")
    print(f"Genre: {entry.genre}")
    print(f"Publication Year: {entry.publication_year or 'Unknown'}")
    print(f"Cover: {entry.cover_url}")
    print(f"\n{entry.description}\n")
    print(f"Liked: {'yes' if entry.liked else 'no'}    Favorite: {'yes' if entry.favorited else 'no'}")
    if entry.reviews:
        print("\nReviews:")
        for review in entry.reviews:
            print(f"  - {review}")
    print("=" * 50 + "\n")


async def run_command(args, config: Config) -> int:
    """Execute one shell command; returns the exit status."""
    substrate = open_substrate(config)
    store = AnnotationStore(substrate)

    try:
        async with AsyncCatalogClient(
            base_url=config.CATALOG_BASE_URL,
            covers_base_url=config.COVERS_BASE_URL,
            timeout=config.DEFAULT_TIMEOUT
        ) as client:
            manager = LibraryManager(client, store, subject=config.CATALOG_SUBJECT)
            await load_library(manager, args)

            if args.command == "browse":
                display_entries(manager.search(args.query or ""), args.format)

            elif args.command == "favorites":
                display_entries(manager.get_favorites(), args.format)

            elif args.command == "liked":
                display_entries(manager.get_liked(), args.format)

            elif args.command == "show":
                entry = manager.get_entry(args.key)
                if entry is None:
                    logger.error(f"No book with key {args.key}")
                    return 1
                display_detail(entry)

            elif args.command == "stats":
                favorites = manager.get_favorites()
                liked = manager.get_liked()
                print(f"Catalog books: {len(manager.entries)} ({manager.state.value})")
                print(f"Favorites: {len(favorites)}")
                print(f"Liked: {len(liked)}")
                if hasattr(substrate, "get_stats"):
                    for name, value in substrate.get_stats().items():
                        print(f"{name}: {value}")

            else:
                try:
                    if args.command == "like":
                        entry = manager.toggle_like(args.key)
                    elif args.command == "favorite":
                        entry = manager.set_favorite(args.key, True)
                    elif args.command == "unfavorite":
                        entry = manager.set_favorite(args.key, False)
                    else:
                        entry = manager.add_review(args.key, args.text)
                except LibraryError as e:
                    logger.error(f"{args.command} failed: {e}")
                    return 1
                display_detail(entry)

    finally:
        if hasattr(substrate, "close"):
            substrate.close()

    return 0


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Reading List Explorer - browse a subject catalog and keep your annotations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Browse the default subject
  %(prog)s browse

  # Search titles
  %(prog)s browse --query dune --format compact

  # Annotate a book
  %(prog)s like /works/OL893415W
  %(prog)s review /works/OL893415W "Great book"

  # List favorites (works offline)
  %(prog)s favorites
        """
    )
    parser.add_argument("--subject", help="Catalog subject (default: CATALOG_SUBJECT)")
    parser.add_argument("--limit", type=int, help="Books per catalog page")
    parser.add_argument("--format", choices=["table", "json", "compact"], default="table", help="Output format")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    browse_parser = subparsers.add_parser("browse", help="List the catalog")
    browse_parser.add_argument("--query", help="Filter by title")

    subparsers.add_parser("favorites", help="List favorite books")
    subparsers.add_parser("liked", help="List liked books")
    subparsers.add_parser("stats", help="Show library statistics")

    for name, help_text in (
        ("show", "Show one book"),
        ("like", "Toggle like on a book"),
        ("favorite", "Add a book to favorites"),
        ("unfavorite", "Remove a book from favorites"),
    ):
        command_parser = subparsers.add_parser(name, help=help_text)
        command_parser.add_argument("key", help="Book key, e.g. /works/OL893415W")

    review_parser = subparsers.add_parser("review", help="Add a review to a book")
    review_parser.add_argument("key", help="Book key")
    review_parser.add_argument("text", help="Review text")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.verbose)
    config = Config()

    try:
        sys.exit(asyncio.run(run_command(args, config)))

    except KeyboardInterrupt:
        logger.info("\nInterrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
