import random
from typing import Any, Dict, List, Optional

import pytest

from bookshelf.errors import StoreUnavailable
from bookshelf.models import Book
from bookshelf.store import DocumentStore


class FakeStore(DocumentStore):
    """In-memory document store keeping insertion order per collection."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.fail_writes = False
        self.fail_collections = set()
        self.list_calls = 0

    async def list_all(self, collection: str) -> List[Dict[str, Any]]:
        self.list_calls += 1
        return [dict(record) for record in self.collections.get(collection, {}).values()]

    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        record = self.collections.get(collection, {}).get(key)
        return dict(record) if record is not None else None

    async def upsert(self, collection: str, key: str, record: Dict[str, Any]) -> None:
        if self.fail_writes or collection in self.fail_collections:
            raise StoreUnavailable("store is down")
        self.collections.setdefault(collection, {})[key] = dict(record)

    async def delete(self, collection: str, key: str) -> None:
        if self.fail_writes:
            raise StoreUnavailable("store is down")
        self.collections.get(collection, {}).pop(key, None)

    def books(self) -> Dict[str, Dict[str, Any]]:
        return self.collections.get("books", {})


class FixedRandom(random.Random):
    """Always draws the given index."""

    def __init__(self, index: int = 0):
        super().__init__(0)
        self.index = index

    def randrange(self, *args, **kwargs):
        return self.index


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def make_book():
    def _make(book_id, title="Untitled", author="Anon", year=None, rating=0, isbn=None):
        return Book(id=book_id, title=title, author=author, year=year, rating=rating, isbn=isbn)
    return _make
