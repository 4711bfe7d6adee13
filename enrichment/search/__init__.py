"""
Search Module

Cache-first web search and context compaction for LLM synthesis.

Key Components:
- QueryCache: content-addressed, TTL-scoped search result cache
- TavilySearchProvider: async search API client
- Searcher: cache → provider → cache write
- combine_results: greedy bounded context builder
"""

from .compactor import combine_results
from .provider import TavilySearchProvider
from .query_cache import CacheOptions, QueryCache, hash_query, DEFAULT_TTL_DAYS
from .searcher import Searcher, SearchResponse

__all__ = [
    "combine_results",
    "TavilySearchProvider",
    "CacheOptions",
    "QueryCache",
    "hash_query",
    "DEFAULT_TTL_DAYS",
    "Searcher",
    "SearchResponse",
]
