"""
Query Cache

Content-addressed store for search results. Rows are keyed by the md5 of the
normalized query and scoped by a per-entity-type TTL.

Cache failures never block the pipeline: a failed read is a miss, a failed
write is logged and the freshly fetched results are still returned.

There is no distributed lock. Concurrent identical misses may each fetch and
write; with an upsert-capable store the last write wins, otherwise readers
pick the newest row. Eventually consistent, not exactly-once.
"""

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from ..common.schemas.records import CachedSearchResult, SearchHit
from ..common.storage import EnrichmentStore

logger = logging.getLogger("tank.search.query_cache")

DEFAULT_TTL_DAYS: Dict[str, int] = {
    "product": 30,
    "investor": 90,
    "season": 180,
}


@dataclass
class CacheOptions:
    """Per-call cache scope"""
    entity_type: str = "product"
    entity_id: Optional[str] = None
    entity_name: Optional[str] = None
    ttl_days: Optional[int] = None
    skip_cache: bool = False
    max_results: int = 10


def normalize_query(query: str) -> str:
    return query.casefold().strip()


def hash_query(query: str) -> str:
    """Deterministic cache key for a query"""
    return hashlib.md5(normalize_query(query).encode("utf-8")).hexdigest()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QueryCache:
    """TTL-scoped search result cache over an EnrichmentStore."""

    def __init__(
        self,
        store: EnrichmentStore,
        ttl_days: Optional[Dict[str, int]] = None,
        now: Callable[[], datetime] = _utcnow,
    ):
        """
        Args:
            store: Persistence collaborator holding cache rows
            ttl_days: Per-entity-type TTL override table (merged over defaults)
            now: Clock, injectable for tests
        """
        self._store = store
        self._ttl_days = dict(DEFAULT_TTL_DAYS)
        if ttl_days:
            self._ttl_days.update(ttl_days)
        self._now = now

    def ttl_for(self, options: CacheOptions) -> int:
        if options.ttl_days is not None:
            return options.ttl_days
        return self._ttl_days.get(options.entity_type, DEFAULT_TTL_DAYS["product"])

    async def get(self, query: str, options: Optional[CacheOptions] = None) -> Optional[CachedSearchResult]:
        """Most recently fetched non-expired row for the query, or None on miss."""
        query_hash = hash_query(query)
        try:
            rows = await self._store.fetch_cache_rows(query_hash)
            # Rows come from outside; mixed naive/aware datetimes raise TypeError here
            now = self._now()
            live = [r for r in rows if not r.is_expired(now)]
            if not live:
                return None
            return max(live, key=lambda r: r.fetched_at)
        except Exception as e:
            logger.warning("Cache read failed for %r, treating as miss: %s", query[:40], e)
            return None

    async def put(
        self,
        query: str,
        results: List[SearchHit],
        options: Optional[CacheOptions] = None,
    ) -> CachedSearchResult:
        """Store freshly fetched results. Write failures are logged and swallowed."""
        options = options or CacheOptions()
        fetched_at = self._now()
        row = CachedSearchResult(
            entity_type=options.entity_type,
            entity_id=options.entity_id,
            entity_name=options.entity_name,
            query=query,
            query_hash=hash_query(query),
            results=list(results),
            fetched_at=fetched_at,
            expires_at=fetched_at + timedelta(days=self.ttl_for(options)),
        )

        try:
            await self._store.write_cache_row(row)
        except Exception as e:
            logger.warning("Failed to cache search results for %r: %s", query[:40], e)

        return row
