"""PostgreSQL key-value substrate for annotation collections."""
import psycopg2
from psycopg2 import pool
from typing import Optional, Dict, Any
import logging

from readinglist.errors import StorageError

logger = logging.getLogger(__name__)


class PostgresSubstrate:
    """Named blob collections stored in PostgreSQL with connection pooling."""

    def __init__(self, connection_string: str, min_conn: int = 1, max_conn: int = 5):
        """
        Initialize database connection pool.

        Args:
            connection_string: PostgreSQL connection string
            min_conn: Minimum connections in pool
            max_conn: Maximum connections in pool

        Raises:
            StorageError: If the pool cannot be created
        """
        try:
            self.connection_pool = psycopg2.pool.SimpleConnectionPool(
                min_conn,
                max_conn,
                connection_string
            )
        except psycopg2.Error as e:
            raise StorageError(f"Failed to create connection pool: {e}") from e

        logger.info("Database connection pool created successfully")

    def _getconn(self):
        try:
            return self.connection_pool.getconn()
        except psycopg2.Error as e:
            logger.error(f"No database connection available: {e}")
            raise StorageError(f"No database connection available: {e}") from e

    def _rollback(self, conn):
        # A dead connection cannot roll back; the caller reports the original error
        try:
            conn.rollback()
        except psycopg2.Error as e:
            logger.warning(f"Rollback failed: {e}")

    def init_schema(self):
        """Create the collection table if it doesn't exist."""
        conn = self._getconn()
        try:
            with conn.cursor() as cur:
                cur.execute("""
                    CREATE TABLE IF NOT EXISTS kv_store (
                        collection VARCHAR(255) PRIMARY KEY,
                        payload TEXT NOT NULL,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """)
                conn.commit()
                logger.info("Database schema initialized successfully")
        except psycopg2.Error as e:
            self._rollback(conn)
            raise StorageError(f"Failed to initialize schema: {e}") from e
        finally:
            self.connection_pool.putconn(conn)

    def get(self, name: str) -> Optional[str]:
        """
        Read a collection blob.

        Args:
            name: Collection name

        Returns:
            Stored blob or None if the collection was never written
        """
        conn = self._getconn()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT payload FROM kv_store WHERE collection = %s",
                    (name,)
                )
                row = cur.fetchone()
                return row[0] if row else None
        except psycopg2.Error as e:
            logger.error(f"Failed to read collection {name}: {e}")
            raise StorageError(f"Failed to read collection {name!r}") from e
        finally:
            self.connection_pool.putconn(conn)

    def set(self, name: str, blob: str) -> None:
        """
        Replace a collection blob in one transaction.

        Args:
            name: Collection name
            blob: Serialized collection

        Raises:
            StorageError: If the write does not commit
        """
        conn = self._getconn()
        try:
            with conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO kv_store (collection, payload, updated_at)
                    VALUES (%s, %s, CURRENT_TIMESTAMP)
                    ON CONFLICT (collection) DO UPDATE SET
                        payload = EXCLUDED.payload,
                        updated_at = CURRENT_TIMESTAMP
                """, (name, blob))
                conn.commit()
                logger.info(f"Stored collection: {name} ({len(blob)} bytes)")
        except psycopg2.Error as e:
            self._rollback(conn)
            logger.error(f"Failed to store collection {name}: {e}")
            raise StorageError(f"Failed to store collection {name!r}") from e
        finally:
            self.connection_pool.putconn(conn)

    def get_stats(self) -> Dict[str, Any]:
        """Get collection statistics."""
        conn = self._getconn()
        try:
            with conn.cursor() as cur:
                cur.execute("SELECT COUNT(*), MAX(updated_at) FROM kv_store")
                count, last_write = cur.fetchone()
                return {
                    "collections": count,
                    "last_write": last_write
                }
        except psycopg2.Error as e:
            raise StorageError(f"Failed to read statistics: {e}") from e
        finally:
            self.connection_pool.putconn(conn)

    def close(self):
        """Close all connections in the pool."""
        if self.connection_pool:
            self.connection_pool.closeall()
            logger.info("Database connection pool closed")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
