"""
Web search: Parallel search API client.

Responsibility: Send an objective (plus optional queries) to Parallel and return
ranked hits with their excerpts joined and truncated to a per-result budget.
No HTTP framework types here; failures are raised as SearchError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import httpx

from app.core.config import PARALLEL_SEARCH_URL, SEARCH_API_TIMEOUT, SEARCH_PROCESSOR
from app.core.errors import SearchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchHit:
    position: int
    title: str
    url: str
    content: str

    def to_dict(self) -> dict:
        return {"position": self.position, "title": self.title, "url": self.url, "content": self.content}


@dataclass(frozen=True)
class SearchResponse:
    search_id: str
    results: list[SearchHit] = field(default_factory=list)


def _truncate(text: str, max_chars: int) -> str:
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    return text[:max_chars]


def parse_search_response(data: dict, max_chars_per_result: int) -> SearchResponse:
    """Map a raw Parallel response body to SearchResponse. Positions are 1-based, in API order."""
    hits: list[SearchHit] = []
    for index, item in enumerate(data.get("results") or [], start=1):
        excerpts = [str(e) for e in (item.get("excerpts") or []) if e]
        hits.append(
            SearchHit(
                position=index,
                title=str(item.get("title") or ""),
                url=str(item.get("url") or ""),
                content=_truncate(" ".join(excerpts), max_chars_per_result),
            )
        )
    return SearchResponse(search_id=str(data.get("search_id") or ""), results=hits)


class ParallelSearch:
    """Async client for the Parallel search endpoint. One HTTP connection pool per call."""

    def __init__(
        self,
        api_key: str,
        api_url: str | None = None,
        timeout: float = SEARCH_API_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("PARALLEL_API_KEY is required for Parallel search.")
        self._api_key = api_key
        self._api_url = api_url or PARALLEL_SEARCH_URL
        self._timeout = timeout
        self._transport = transport

    async def search(
        self,
        objective: str,
        search_queries: list[str] | None = None,
        max_results: int = 5,
        max_chars_per_result: int = 2000,
    ) -> SearchResponse:
        payload: dict = {
            "objective": objective,
            "max_results": max(max_results, 1),
            "max_chars_per_result": max_chars_per_result,
            "processor": SEARCH_PROCESSOR,
        }
        if search_queries:
            payload["search_queries"] = list(search_queries)
        headers = {"x-api-key": self._api_key, "Content-Type": "application/json"}
        logger.info(
            "[search:parallel] IN  objective=%r queries=%s max_results=%d max_chars=%d",
            objective, search_queries or [], payload["max_results"], max_chars_per_result,
        )
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._api_url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise SearchError("Search API request timed out") from e
        except httpx.HTTPError as e:
            raise SearchError(f"Search API request failed: {e}") from e
        if response.status_code != 200:
            logger.warning("[search:parallel] error %s: %s", response.status_code, response.text[:200])
            raise SearchError(
                f"Search API returned {response.status_code}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise SearchError("Search API returned invalid JSON") from e
        result = parse_search_response(data, max_chars_per_result)
        logger.info("[search:parallel] OUT search_id=%s results=%d", result.search_id, len(result.results))
        return result
