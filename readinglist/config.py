"""Configuration management."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration."""

    # Catalog
    CATALOG_BASE_URL = os.getenv("CATALOG_BASE_URL", "https://openlibrary.org")
    COVERS_BASE_URL = os.getenv("COVERS_BASE_URL", "https://covers.openlibrary.org")
    CATALOG_SUBJECT = os.getenv("CATALOG_SUBJECT", "sci-fi")
    DEFAULT_TIMEOUT = int(os.getenv("DEFAULT_TIMEOUT", "10"))

    # Annotation storage: file, postgres or memory
    STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "file")
    STORAGE_PATH = os.path.expanduser(os.getenv("STORAGE_PATH", "~/.readinglist"))

    # Database
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "5432")
    DB_NAME = os.getenv("DB_NAME", "readinglist")
    DB_USER = os.getenv("DB_USER", "postgres")
    DB_PASSWORD = os.getenv("DB_PASSWORD", "")

    @property
    def DATABASE_URL(self):
        """Build PostgreSQL connection string."""
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
