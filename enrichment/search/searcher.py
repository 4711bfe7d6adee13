"""
Searcher

Cache-first web search: QueryCache → (miss) Tavily → cache write.
Also holds the canned queries the pipelines use for products and seasons.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from ..common.schemas.records import SearchHit
from .provider import TavilySearchProvider
from .query_cache import CacheOptions, QueryCache

logger = logging.getLogger("tank.search.searcher")


@dataclass
class SearchResponse:
    """Search results plus where they came from"""
    results: List[SearchHit]
    query: str
    from_cache: bool
    cached_at: Optional[datetime] = None


class Searcher:
    """
    Searches the web through the query cache.

    Upstream failures propagate as UpstreamSearchFailure and are not
    retried here.
    """

    def __init__(self, provider: TavilySearchProvider, cache: QueryCache, skip_cache: bool = False):
        """
        Args:
            provider: Upstream web search
            cache: Query cache consulted before every upstream call
            skip_cache: Force upstream for every query (results are still cached)
        """
        self._provider = provider
        self._cache = cache
        self._skip_cache = skip_cache

    async def search(self, query: str, options: Optional[CacheOptions] = None) -> SearchResponse:
        options = options or CacheOptions()

        if not (options.skip_cache or self._skip_cache):
            cached = await self._cache.get(query, options)
            if cached:
                logger.info("Cache hit: %r", query[:40])
                return SearchResponse(
                    results=cached.results,
                    query=cached.query,
                    from_cache=True,
                    cached_at=cached.fetched_at,
                )

        logger.info("Tavily search: %r", query[:40])
        results = await self._provider.search(query, max_results=options.max_results)
        await self._cache.put(query, results, options)

        return SearchResponse(results=results, query=query, from_cache=False)

    async def search_season_products(self, season: int) -> SearchResponse:
        return await self.search(
            f"Shark Tank Season {season} all products companies pitches deals list",
            CacheOptions(
                entity_type="season",
                entity_name=f"Season {season}",
                ttl_days=180,
                max_results=15,
            ),
        )

    async def search_product_status(self, product_name: str, product_id: Optional[str] = None) -> SearchResponse:
        return await self.search(
            f"{product_name} Shark Tank still in business 2024 2025 where to buy",
            CacheOptions(
                entity_type="product",
                entity_id=product_id,
                entity_name=product_name,
                ttl_days=30,
            ),
        )

    async def search_product_details(self, product_name: str, product_id: Optional[str] = None) -> SearchResponse:
        return await self.search(
            f"{product_name} Shark Tank deal details founders sharks invested",
            CacheOptions(
                entity_type="product",
                entity_id=product_id,
                entity_name=product_name,
                ttl_days=90,
            ),
        )

    async def close(self) -> None:
        await self._provider.close()
