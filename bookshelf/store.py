"""Document store interface shared by every backend."""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from bookshelf.config import Config


class DocumentStore(ABC):
    """
    A remote key-value collection of JSON-like records.

    Keys are strings. ``upsert`` replaces the whole record; ``delete`` of a
    missing key is not an error.
    """

    @abstractmethod
    async def list_all(self, collection: str) -> List[Dict[str, Any]]:
        """Return every record of the collection in the store's natural order."""
        ...

    @abstractmethod
    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        """Return one record, or None when the key does not exist."""
        ...

    @abstractmethod
    async def upsert(self, collection: str, key: str, record: Dict[str, Any]) -> None:
        """Create or replace the record stored under key."""
        ...

    @abstractmethod
    async def delete(self, collection: str, key: str) -> None:
        """Remove the record stored under key."""
        ...

    async def open(self) -> "DocumentStore":
        """Acquire connections and prepare the store."""
        return self

    async def close(self) -> None:
        """Release connections held by the store."""

    async def __aenter__(self):
        """Async context manager entry."""
        return await self.open()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()


def open_store(config: Config, backend: Optional[str] = None) -> DocumentStore:
    """
    Build the store selected by configuration.

    Args:
        config: Application configuration
        backend: Overrides ``config.STORE_BACKEND`` when given

    Returns:
        An unopened DocumentStore; use it with ``async with``
    """
    backend = backend or config.STORE_BACKEND

    if backend == "firestore":
        from bookshelf.firestore import FirestoreStore

        return FirestoreStore(
            config.FIRESTORE_BASE_URL,
            api_key=config.FIRESTORE_API_KEY,
            token=config.FIRESTORE_TOKEN,
            timeout=config.DEFAULT_TIMEOUT,
            max_retries=config.DEFAULT_MAX_RETRIES,
        )

    if backend == "postgres":
        from bookshelf.database import PostgresStore

        return PostgresStore(config.DATABASE_URL)

    raise ValueError(f"Unknown store backend: {backend}")
