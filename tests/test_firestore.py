"""Tests for the Firestore store using a mock HTTP transport."""
import json

import httpx
import pytest

from bookshelf.errors import InvalidRecord, StoreRejected, StoreUnavailable
from bookshelf.firestore import FirestoreStore

BASE = "https://firestore.test/v1/projects/p/databases/(default)/documents"


def document(book_id, title):
    return {
        "name": f"projects/p/databases/(default)/documents/books/{book_id}",
        "fields": {
            "id": {"integerValue": str(book_id)},
            "title": {"stringValue": title},
            "author": {"stringValue": "A"},
            "year": {"nullValue": None},
            "rating": {"integerValue": "0"},
        },
    }


def make_store(handler, **kwargs):
    kwargs.setdefault("base_backoff", 0)
    return FirestoreStore(BASE, transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio
async def test_list_all_follows_page_tokens():
    """Test that listing follows nextPageToken until the last page."""
    seen_tokens = []

    def handler(request):
        token = request.url.params.get("pageToken")
        seen_tokens.append(token)
        if token is None:
            return httpx.Response(200, json={"documents": [document(1, "One")], "nextPageToken": "p2"})
        return httpx.Response(200, json={"documents": [document(2, "Two")]})

    async with make_store(handler) as store:
        records = await store.list_all("books")

    assert [record["title"] for record in records] == ["One", "Two"]
    assert seen_tokens == [None, "p2"]


@pytest.mark.asyncio
async def test_list_all_empty_collection():
    """Test that an empty collection lists as no records."""
    async with make_store(lambda request: httpx.Response(200, json={})) as store:
        assert await store.list_all("books") == []


@pytest.mark.asyncio
async def test_get_missing_document_returns_none():
    """Test that a 404 on get reads as None."""
    async with make_store(lambda request: httpx.Response(404, json={"error": {"message": "nope"}})) as store:
        assert await store.get("catalog_meta", "books") is None


@pytest.mark.asyncio
async def test_upsert_patches_typed_fields():
    """Test that upsert PATCHes the record as typed fields."""
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={})

    async with make_store(handler, api_key="secret", token="tok") as store:
        await store.upsert("books", "7", {"id": 7, "title": "Dune", "year": None})

    request = requests[0]
    assert request.method == "PATCH"
    assert request.url.path.endswith("/documents/books/7")
    assert request.url.params["key"] == "secret"
    assert request.headers["Authorization"] == "Bearer tok"
    assert json.loads(request.content) == {
        "fields": {
            "id": {"integerValue": "7"},
            "title": {"stringValue": "Dune"},
            "year": {"nullValue": None},
        }
    }


@pytest.mark.asyncio
async def test_delete_missing_document_is_not_an_error():
    """Test that a 404 on delete succeeds."""
    async with make_store(lambda request: httpx.Response(404)) as store:
        await store.delete("books", "99")


@pytest.mark.asyncio
async def test_retries_server_errors_then_succeeds():
    """Test retrying 503 and 429 responses until one succeeds."""
    responses = iter([httpx.Response(503), httpx.Response(429), httpx.Response(200, json={})])

    async with make_store(lambda request: next(responses), max_retries=3) as store:
        await store.delete("books", "1")


@pytest.mark.asyncio
async def test_retries_timeouts():
    """Test that timeouts are retried."""
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(200, json={})

    async with make_store(handler) as store:
        await store.upsert("books", "1", {"id": 1})

    assert len(calls) == 2


@pytest.mark.asyncio
async def test_gives_up_after_max_retries():
    """Test that persistent failures raise StoreUnavailable after the retry limit."""
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("down", request=request)

    async with make_store(handler, max_retries=3) as store:
        with pytest.raises(StoreUnavailable):
            await store.list_all("books")

    assert len(calls) == 3


@pytest.mark.asyncio
async def test_bad_request_is_invalid_record_without_retry():
    """Test that a 400 raises InvalidRecord on the first attempt."""
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(400, json={"error": {"message": "Invalid value"}})

    async with make_store(handler) as store:
        with pytest.raises(InvalidRecord, match="Invalid value"):
            await store.upsert("books", "1", {"id": 1})

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_permission_denied_is_rejected():
    """Test that a 403 raises StoreRejected."""
    async with make_store(lambda request: httpx.Response(403, text="denied")) as store:
        with pytest.raises(StoreRejected, match="403"):
            await store.list_all("books")
