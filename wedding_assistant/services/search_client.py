"""Async HTTP client for the Azure AI Search documents API.

Only the one operation the assistant needs is wrapped: ``POST
/indexes/{index}/docs/search``.  Requests are authenticated with the
admin/query ``api-key`` header.

Docs: https://learn.microsoft.com/rest/api/searchservice/documents/search-post
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from wedding_assistant.config import (
    AZURE_SEARCH_API_KEY,
    AZURE_SEARCH_API_VERSION,
    AZURE_SEARCH_ENDPOINT,
    AZURE_SEARCH_INDEX_NAME,
    REQUEST_TIMEOUT_SECONDS,
)
from wedding_assistant.services.metrics import metrics

logger = logging.getLogger(__name__)

# ── Retry configuration ─────────────────────────────────────────────
MAX_RETRIES = 3
INITIAL_BACKOFF_SECONDS = 0.5


class SearchAPIError(Exception):
    """Raised when a search request fails.

    ``error_code`` carries the service's structured ``error.code`` when the
    response body has one.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str | None = None,
    ):
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


@dataclass(frozen=True)
class VectorQuery:
    """A text query the service vectorizes server-side."""

    text: str
    k: int
    fields: str
    vectorizer: str | None = None

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "kind": "text",
            "text": self.text,
            "k": self.k,
            "fields": self.fields,
        }
        if self.vectorizer:
            body["vectorizer"] = self.vectorizer
        return body


@dataclass(frozen=True)
class SearchQuery:
    """Parameters for one ``docs/search`` call."""

    search: str | None
    top: int
    select: tuple[str, ...] = ("chunk", "title")
    semantic_configuration: str | None = None
    vector_queries: tuple[VectorQuery, ...] = field(default_factory=tuple)

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"top": self.top, "select": ",".join(self.select)}
        if self.search is not None:
            body["search"] = self.search
        if self.semantic_configuration:
            body["queryType"] = "semantic"
            body["semanticConfiguration"] = self.semantic_configuration
        if self.vector_queries:
            body["vectorQueries"] = [vq.to_body() for vq in self.vector_queries]
        return body


def _error_details(response: httpx.Response) -> tuple[str | None, str]:
    """Pull ``(code, message)`` out of an error response."""
    try:
        body = response.json()
    except ValueError:
        return None, response.text
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        return None, response.text
    return error.get("code"), error.get("message") or response.text


class SearchClient:
    """Thin async wrapper around one Azure AI Search index."""

    def __init__(
        self,
        endpoint: str | None = None,
        index_name: str | None = None,
        api_key: str | None = None,
        *,
        api_version: str | None = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ):
        self._endpoint = (endpoint or AZURE_SEARCH_ENDPOINT).rstrip("/")
        self._index_name = index_name or AZURE_SEARCH_INDEX_NAME
        self._api_version = api_version or AZURE_SEARCH_API_VERSION
        self._client = httpx.AsyncClient(
            base_url=self._endpoint,
            headers={
                "api-key": api_key or AZURE_SEARCH_API_KEY,
                "Content-Type": "application/json",
            },
            timeout=timeout,
        )

    @property
    def index_name(self) -> str:
        return self._index_name

    async def search(self, query: SearchQuery) -> list[dict[str, Any]]:
        """Run *query* and return the matched documents (``value`` array)."""
        data = await self._post(
            f"/indexes/{self._index_name}/docs/search",
            query.to_body(),
        )
        return data.get("value", [])

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── Internal helpers ─────────────────────────────────────────────

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        """POST with exponential-backoff retries on timeouts and 5xx."""
        last_error: Exception | None = None
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                async with metrics.track("search", "docs/search"):
                    response = await self._client.post(
                        path,
                        params={"api-version": self._api_version},
                        json=body,
                    )
                    if response.status_code >= 400:
                        code, message = _error_details(response)
                        raise SearchAPIError(
                            f"Search error {response.status_code}: {message}",
                            status_code=response.status_code,
                            error_code=code,
                        )
                return response.json()

            except (httpx.TimeoutException, httpx.ConnectError) as exc:
                last_error = exc
                logger.warning(
                    "Search attempt %d/%d failed (%s).",
                    attempt, MAX_RETRIES, type(exc).__name__,
                )
            except SearchAPIError as exc:
                if exc.status_code is None or exc.status_code < 500:
                    raise  # 4xx errors are not retried
                last_error = exc
                logger.warning(
                    "Search server error %d on attempt %d/%d.",
                    exc.status_code, attempt, MAX_RETRIES,
                )

            if attempt < MAX_RETRIES:
                await asyncio.sleep(INITIAL_BACKOFF_SECONDS * (2 ** (attempt - 1)))

        status = last_error.status_code if isinstance(last_error, SearchAPIError) else None
        raise SearchAPIError(
            f"Search request failed after {MAX_RETRIES} attempts: {last_error}",
            status_code=status,
        )
