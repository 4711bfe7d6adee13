"""
Tavily Search Provider

Thin async client for the Tavily search API. Normalizes the response into
SearchHit records; everything else (caching, compaction) happens upstream.
"""

import logging
from typing import List, Optional

import httpx

from ..common.errors import UpstreamSearchFailure
from ..common.schemas.records import SearchHit

logger = logging.getLogger("tank.search.provider")

TAVILY_SEARCH_URL = "https://api.tavily.com/search"


class TavilySearchProvider:
    """
    Async Tavily client.

    The underlying httpx client is created lazily and reused; call close()
    when done.
    """

    def __init__(
        self,
        api_key: str,
        timeout: float = 30.0,
        search_depth: str = "advanced",
        base_url: str = TAVILY_SEARCH_URL,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_key = api_key
        self._timeout = timeout
        self._search_depth = search_depth
        self._base_url = base_url
        self._http_client = http_client

    @classmethod
    def from_config(cls, search_config) -> "TavilySearchProvider":
        return cls(
            api_key=search_config.tavily_api_key,
            timeout=search_config.timeout,
            search_depth=search_config.search_depth,
        )

    @property
    def is_available(self) -> bool:
        return bool(self._api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def close(self) -> None:
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def search(
        self,
        query: str,
        max_results: int = 10,
        depth: Optional[str] = None,
    ) -> List[SearchHit]:
        """
        Run one search.

        Args:
            query: Search query text
            max_results: Upper bound on returned documents
            depth: "basic" or "advanced" (defaults to the configured depth)

        Returns:
            Ranked SearchHit list (possibly empty)

        Raises:
            UpstreamSearchFailure: missing key, transport error or non-2xx status
        """
        if not self.is_available:
            raise UpstreamSearchFailure("TAVILY_API_KEY or TAVILY not set")

        payload = {
            "api_key": self._api_key,
            "query": query,
            "search_depth": depth or self._search_depth,
            "include_raw_content": False,
            "max_results": max_results,
        }

        client = await self._get_client()
        try:
            response = await client.post(self._base_url, json=payload)
        except httpx.HTTPError as e:
            raise UpstreamSearchFailure(f"Tavily request failed: {e}") from e

        if response.status_code >= 400:
            raise UpstreamSearchFailure(f"Tavily error: {response.status_code} {response.text}")

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamSearchFailure(f"Tavily returned invalid JSON: {e}") from e

        results = [SearchHit.from_provider(r) for r in data.get("results") or []]
        logger.debug("Tavily returned %d results for %r", len(results), query[:40])
        return results
