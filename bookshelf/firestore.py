"""Firestore REST client implementing the document store with retries."""
import asyncio
import random
import logging
from typing import Any, Dict, List, Optional

import httpx

from bookshelf.errors import InvalidRecord, StoreRejected, StoreUnavailable
from bookshelf.parse import decode_document, encode_fields
from bookshelf.store import DocumentStore

logger = logging.getLogger(__name__)


class FirestoreStore(DocumentStore):
    """Document store backed by Firestore, with timeouts, retries, and backoff."""

    PAGE_SIZE = 300

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        token: Optional[str] = None,
        timeout: int = 10,
        max_retries: int = 3,
        base_backoff: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the Firestore client.

        Args:
            base_url: ``.../v1/projects/<id>/databases/<db>/documents``
            api_key: Optional web API key
            token: Optional OAuth bearer token
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts per request
            base_backoff: Base delay for exponential backoff
            transport: Custom httpx transport (tests use a mock one)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.max_retries = max_retries
        self.base_backoff = base_backoff

        headers = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self.client = httpx.AsyncClient(timeout=timeout, headers=headers, transport=transport)

    def _url(self, collection: str, key: Optional[str] = None) -> str:
        if key is None:
            return f"{self.base_url}/{collection}"
        return f"{self.base_url}/{collection}/{key}"

    async def list_all(self, collection: str) -> List[Dict[str, Any]]:
        """
        Read a whole collection, following page tokens.

        Args:
            collection: Collection id

        Returns:
            Records in Firestore's document-name order
        """
        records = []
        params: Dict[str, Any] = {"pageSize": self.PAGE_SIZE}

        while True:
            response = await self._request("GET", self._url(collection), params=dict(params))
            payload = response.json()

            for document in payload.get("documents", []):
                records.append(decode_document(document))

            page_token = payload.get("nextPageToken")
            if not page_token:
                break
            params["pageToken"] = page_token

        logger.info(f"Listed {len(records)} documents from {collection}")
        return records

    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        response = await self._request("GET", self._url(collection, key), allow_missing=True)
        if response is None:
            return None
        return decode_document(response.json())

    async def upsert(self, collection: str, key: str, record: Dict[str, Any]) -> None:
        """PATCH without an update mask replaces every field, creating the document if needed."""
        await self._request(
            "PATCH",
            self._url(collection, key),
            json={"fields": encode_fields(record)}
        )
        logger.info(f"Upserted {collection}/{key}")

    async def delete(self, collection: str, key: str) -> None:
        await self._request("DELETE", self._url(collection, key), allow_missing=True)
        logger.info(f"Deleted {collection}/{key}")

    async def _request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        allow_missing: bool = False
    ) -> Optional[httpx.Response]:
        """
        Make HTTP request with retry logic.

        Args:
            method: HTTP method
            url: Request URL
            params: Query parameters
            json: JSON body
            allow_missing: Return None on 404 instead of failing

        Returns:
            Successful response, or None for an allowed 404

        Raises:
            InvalidRecord: The store rejected the payload (400)
            StoreRejected: Permission or other non-retryable client error
            StoreUnavailable: All retries exhausted
        """
        params = dict(params or {})
        if self.api_key:
            params["key"] = self.api_key

        for attempt in range(self.max_retries):
            try:
                logger.info(f"Request attempt {attempt + 1}/{self.max_retries}: {method} {url}")

                response = await self.client.request(method, url, params=params, json=json)

                # Handle different status codes
                if response.status_code == 200:
                    return response

                elif response.status_code == 404 and allow_missing:
                    logger.info(f"Not found: {url}")
                    return None

                elif response.status_code == 429:
                    # Rate limited - must retry with backoff
                    logger.warning(f"Rate limited (429) on attempt {attempt + 1}")
                    if attempt < self.max_retries - 1:
                        await self._backoff(attempt)
                        continue

                elif response.status_code >= 500:
                    # Server error - retryable
                    logger.warning(f"Server error ({response.status_code}) on attempt {attempt + 1}")
                    if attempt < self.max_retries - 1:
                        await self._backoff(attempt)
                        continue

                elif response.status_code == 400:
                    logger.error(f"Invalid request (400): {response.text}")
                    raise InvalidRecord(_error_message(response))

                else:
                    # Client error - don't retry
                    logger.error(f"Client error ({response.status_code}): {response.text}")
                    raise StoreRejected(f"{response.status_code}: {_error_message(response)}")

            except httpx.TimeoutException:
                logger.warning(f"Timeout on attempt {attempt + 1}")
                if attempt < self.max_retries - 1:
                    await self._backoff(attempt)
                    continue

            except httpx.TransportError as e:
                logger.warning(f"Connection error on attempt {attempt + 1}: {e}")
                if attempt < self.max_retries - 1:
                    await self._backoff(attempt)
                    continue

        logger.error(f"All {self.max_retries} attempts failed")
        raise StoreUnavailable(f"{method} {url} failed after {self.max_retries} attempts")

    async def _backoff(self, attempt: int):
        """
        Sleep with exponential backoff and jitter.

        Args:
            attempt: Current attempt number (0-indexed)
        """
        # Exponential backoff: base * 2^attempt
        delay = self.base_backoff * (2 ** attempt)

        # Add jitter: random value between 0 and delay
        jitter = random.uniform(0, delay)
        total_delay = delay + jitter

        logger.info(f"Backing off for {total_delay:.2f} seconds")
        await asyncio.sleep(total_delay)

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return response.text
