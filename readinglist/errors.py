"""Error types raised by the reading list core."""


class LibraryError(Exception):
    """Base class for every error the core reports to its caller."""


class FetchError(LibraryError):
    """Catalog could not be retrieved or decoded."""


class StorageError(LibraryError):
    """Durable read or write against the persistence substrate failed."""


class PersistError(LibraryError):
    """A mutation was not committed because its durable write failed."""

    def __init__(self, key: str, message: str):
        super().__init__(message)
        self.key = key


class ValidationError(LibraryError):
    """Mutation input was rejected."""
