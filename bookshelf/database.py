"""PostgreSQL document store: JSONB records keyed by (collection, key)."""
import asyncio
import logging
from contextlib import contextmanager
from typing import Optional, List, Dict, Any

import psycopg2
from psycopg2 import pool
from psycopg2.extras import Json

from bookshelf.errors import InvalidRecord, StoreRejected, StoreUnavailable
from bookshelf.store import DocumentStore

logger = logging.getLogger(__name__)


class PostgresStore(DocumentStore):
    """PostgreSQL database with connection pooling."""

    def __init__(self, connection_string: str, min_conn: int = 1, max_conn: int = 10):
        """
        Prepare the store; the pool is created by ``connect``.

        Args:
            connection_string: PostgreSQL connection string
            min_conn: Minimum connections in pool
            max_conn: Maximum connections in pool
        """
        self.connection_string = connection_string
        self.min_conn = min_conn
        self.max_conn = max_conn
        self.connection_pool = None

    def connect(self):
        """Create the connection pool and the schema. Blocking; ``open`` runs it off the event loop."""
        try:
            # Calls run on worker threads, so the pool must be thread safe
            self.connection_pool = pool.ThreadedConnectionPool(
                self.min_conn,
                self.max_conn,
                self.connection_string
            )
        except psycopg2.OperationalError as e:
            raise StoreUnavailable(f"Cannot connect to database: {e}") from e

        logger.info("Database connection pool created successfully")
        self.init_schema()

    async def open(self):
        await asyncio.to_thread(self.connect)
        return self

    @staticmethod
    def _rollback(conn):
        try:
            conn.rollback()
        except psycopg2.Error as e:
            logger.warning(f"Rollback failed: {e}")

    @contextmanager
    def _cursor(self):
        """Borrow a connection, commit on success and map driver errors."""
        if self.connection_pool is None:
            raise StoreUnavailable("Database store is not connected")

        conn = self.connection_pool.getconn()
        try:
            with conn.cursor() as cur:
                yield cur
            conn.commit()
        except (psycopg2.OperationalError, psycopg2.InterfaceError) as e:
            self._rollback(conn)
            logger.error(f"Database unavailable: {e}")
            raise StoreUnavailable(str(e)) from e
        except psycopg2.DataError as e:
            self._rollback(conn)
            logger.error(f"Rejected record: {e}")
            raise InvalidRecord(str(e)) from e
        except psycopg2.Error as e:
            self._rollback(conn)
            logger.error(f"Database error: {e}")
            raise StoreRejected(str(e)) from e
        finally:
            # A dropped connection must not go back into the pool
            self.connection_pool.putconn(conn, close=bool(conn.closed))

    def init_schema(self):
        """Create the documents table if it doesn't exist."""
        with self._cursor() as cur:
            cur.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    collection VARCHAR(255) NOT NULL,
                    key VARCHAR(255) NOT NULL,
                    data JSONB NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    PRIMARY KEY (collection, key)
                )
            """)

            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_documents_created
                ON documents (collection, created_at)
            """)

        logger.info("Database schema initialized successfully")

    def list_all_sync(self, collection: str) -> List[Dict[str, Any]]:
        """
        Read every record of a collection in insertion order.

        Args:
            collection: Collection name

        Returns:
            List of records (JSONB is automatically deserialized)
        """
        with self._cursor() as cur:
            cur.execute("""
                SELECT data FROM documents
                WHERE collection = %s
                ORDER BY created_at, key
            """, (collection,))
            rows = cur.fetchall()

        logger.info(f"Listed {len(rows)} documents from {collection}")
        return [row[0] for row in rows]

    def get_sync(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        with self._cursor() as cur:
            cur.execute("""
                SELECT data FROM documents
                WHERE collection = %s AND key = %s
            """, (collection, key))
            row = cur.fetchone()

        return row[0] if row else None

    def upsert_sync(self, collection: str, key: str, record: Dict[str, Any]) -> None:
        """
        Insert or replace a record. ``created_at`` survives updates so list order is stable.

        Args:
            collection: Collection name
            key: Document key
            record: Full record
        """
        with self._cursor() as cur:
            cur.execute("""
                INSERT INTO documents (collection, key, data, updated_at)
                VALUES (%s, %s, %s, CURRENT_TIMESTAMP)
                ON CONFLICT (collection, key) DO UPDATE SET
                    data = EXCLUDED.data,
                    updated_at = CURRENT_TIMESTAMP
            """, (collection, key, Json(record)))

        logger.info(f"Upserted {collection}/{key}")

    def delete_sync(self, collection: str, key: str) -> None:
        with self._cursor() as cur:
            cur.execute("""
                DELETE FROM documents
                WHERE collection = %s AND key = %s
            """, (collection, key))
            deleted = cur.rowcount

        if deleted:
            logger.info(f"Deleted {collection}/{key}")
        else:
            logger.info(f"Nothing to delete at {collection}/{key}")

    async def list_all(self, collection: str) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self.list_all_sync, collection)

    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self.get_sync, collection, key)

    async def upsert(self, collection: str, key: str, record: Dict[str, Any]) -> None:
        await asyncio.to_thread(self.upsert_sync, collection, key, record)

    async def delete(self, collection: str, key: str) -> None:
        await asyncio.to_thread(self.delete_sync, collection, key)

    async def close(self):
        """Close all connections in the pool."""
        if self.connection_pool:
            self.connection_pool.closeall()
            logger.info("Database connection pool closed")
