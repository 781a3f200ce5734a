"""Async HTTP adapter for a remote document store service."""

import asyncio
import logging
from typing import Any

import httpx

from ..settings import (
    DOCUMENT_STORE_API_KEY,
    DOCUMENT_STORE_BASE_URL,
    MAX_RETRIES,
    RETRY_BACKOFF_FACTOR,
)
from .errors import DocumentStoreError
from .models import CorpusStats, SearchFilters, StoreHit

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)


class HTTPDocumentStore:
    """
    Document store backed by the engine's REST API.

    Endpoints used:
    - POST /api/search   {"query", "limit", "filters"} -> {"results": [...]}
    - GET  /api/status   -> {"total_documents", "document_types"?}

    Usage:
        async with HTTPDocumentStore(base_url="http://127.0.0.1:8080") as store:
            hits = await store.search("acquisition", limit=20)
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float = 10.0,
        max_retries: int = MAX_RETRIES,
        backoff_factor: float = RETRY_BACKOFF_FACTOR,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the adapter.

        Args:
            base_url: Store service URL (defaults to DOCUMENT_STORE_BASE_URL)
            api_key: Optional bearer token
            timeout: Per-request timeout in seconds
            max_retries: Attempts per request for retryable failures
            backoff_factor: Exponential backoff base in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url or DOCUMENT_STORE_BASE_URL
        self.api_key = api_key or DOCUMENT_STORE_API_KEY
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.backoff_factor = backoff_factor
        self._transport = transport

        self.headers: dict[str, str] = {"Accept": "application/json"}
        if self.api_key:
            self.headers["Authorization"] = f"Bearer {self.api_key}"

        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HTTPDocumentStore":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "Client not initialized. Use 'async with' context manager."
            )
        return self._client

    def _backoff(self, attempt: int) -> float:
        return self.backoff_factor ** attempt

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make a request with exponential backoff on retryable failures."""
        last_error: str = "no attempts made"

        for attempt in range(self.max_retries):
            try:
                response = await self.client.request(method, url, **kwargs)
            except (httpx.ConnectError, httpx.ReadTimeout, httpx.WriteTimeout) as e:
                last_error = f"{type(e).__name__}: {e}"
                backoff = self._backoff(attempt)
                logger.warning(f"Store connection error: {e}, backoff {backoff}s")
                await asyncio.sleep(backoff)
                continue

            if response.status_code in RETRYABLE_STATUS_CODES:
                last_error = f"status {response.status_code}"
                backoff = self._backoff(attempt)
                logger.warning(
                    f"Store returned {response.status_code}, backoff {backoff}s "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                await asyncio.sleep(backoff)
                continue

            if response.status_code >= 400:
                raise DocumentStoreError(
                    f"{method} {url} failed with status {response.status_code}: "
                    f"{response.text[:200]}"
                )
            return response

        logger.error(f"Store request failed after {self.max_retries} attempts")
        raise DocumentStoreError(f"{method} {url} failed: {last_error}")

    async def search(
        self,
        pattern: str,
        limit: int = 50,
        filters: SearchFilters | None = None,
    ) -> list[StoreHit]:
        """Search the remote store."""
        payload: dict[str, Any] = {"query": pattern, "limit": limit}
        if filters:
            payload["filters"] = filters.to_payload()

        response = await self._request_with_retry("POST", "/api/search", json=payload)
        try:
            data = response.json()
        except ValueError as e:
            raise DocumentStoreError(f"Malformed search response: {e}") from e

        return [self._parse_hit(item) for item in data.get("results", [])][:limit]

    async def document_count(self) -> int:
        data = await self._status()
        return int(data.get("total_documents", 0))

    async def document_type_distribution(self) -> dict[str, int]:
        data = await self._status()
        return self._distribution(data)

    async def corpus_stats(self) -> CorpusStats:
        """Document count and type distribution from a single status call."""
        data = await self._status()
        return CorpusStats(
            document_count=max(0, int(data.get("total_documents", 0))),
            type_distribution=self._distribution(data),
        )

    @staticmethod
    def _distribution(data: dict[str, Any]) -> dict[str, int]:
        return {str(k): int(v) for k, v in (data.get("document_types") or {}).items()}

    async def _status(self) -> dict[str, Any]:
        response = await self._request_with_retry("GET", "/api/status")
        try:
            return response.json()
        except ValueError as e:
            raise DocumentStoreError(f"Malformed status response: {e}") from e

    @staticmethod
    def _parse_hit(item: dict[str, Any]) -> StoreHit:
        """Convert one remote search result into a StoreHit."""
        document = item.get("document") or {}
        metadata = document.get("metadata") or {}
        document_id = item.get("document_id") or document.get("id")
        if not document_id:
            raise DocumentStoreError("Search result is missing a document id")

        excerpts = item.get("matching_excerpts") or []
        excerpt = item.get("excerpt") or (excerpts[0] if excerpts else "")
        context = item.get("context") or (" ".join(excerpts) if excerpts else None)
        score = float(item.get("relevance_score", 0.0))

        return StoreHit(
            document_id=str(document_id),
            excerpt=excerpt,
            context=context,
            relevance_score=min(1.0, max(0.0, score)),
            title=item.get("title") or metadata.get("title"),
            document_type=document.get("document_type"),
        )
