"""Tests for the content-addressed search cache and the cache-first searcher."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from enrichment.common.errors import CacheUnavailable
from enrichment.common.schemas.records import SearchHit


class _Clock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def _hits(n: int = 2):
    return [SearchHit(title=f"t{i}", url=f"https://e.com/{i}", content=f"content {i}") for i in range(n)]


def cache_hash(query: str) -> str:
    from enrichment.search.query_cache import hash_query
    return hash_query(query)


def _searcher(store, clock, hits=None):
    from enrichment.search.query_cache import QueryCache
    from enrichment.search.searcher import Searcher

    provider = MagicMock()
    provider.search = AsyncMock(return_value=hits if hits is not None else _hits())
    provider.close = AsyncMock()
    return Searcher(provider, QueryCache(store, now=clock)), provider


class TestHashQuery:
    def test_normalized_queries_share_hash(self):
        from enrichment.search.query_cache import hash_query
        assert hash_query("  Scrub Daddy Shark Tank ") == hash_query("scrub daddy shark tank")

    def test_md5_hex(self):
        import hashlib
        from enrichment.search.query_cache import hash_query
        assert hash_query("Abc") == hashlib.md5(b"abc").hexdigest()


class TestQueryCache:
    @pytest.mark.asyncio
    async def test_identical_queries_fetch_upstream_once(self):
        from enrichment.common.storage import InMemoryStore

        clock = _Clock(datetime(2025, 1, 1, tzinfo=timezone.utc))
        searcher, provider = _searcher(InMemoryStore(), clock)

        first = await searcher.search("Scrub Daddy deal")
        second = await searcher.search("  scrub daddy DEAL ")

        assert provider.search.await_count == 1
        assert not first.from_cache
        assert second.from_cache
        assert [h.url for h in first.results] == [h.url for h in second.results]

    @pytest.mark.asyncio
    async def test_expired_row_triggers_fresh_fetch(self):
        from enrichment.common.storage import InMemoryStore
        from enrichment.search.query_cache import CacheOptions

        clock = _Clock(datetime(2025, 1, 1, tzinfo=timezone.utc))
        searcher, provider = _searcher(InMemoryStore(), clock)
        options = CacheOptions(entity_type="product", ttl_days=30)

        await searcher.search("query", options)
        clock.advance(days=29)
        assert (await searcher.search("query", options)).from_cache

        clock.advance(days=2)
        response = await searcher.search("query", options)
        assert not response.from_cache
        assert provider.search.await_count == 2

    @pytest.mark.asyncio
    async def test_ttl_by_entity_type(self):
        from enrichment.common.storage import InMemoryStore
        from enrichment.search.query_cache import CacheOptions, QueryCache

        clock = _Clock(datetime(2025, 1, 1, tzinfo=timezone.utc))
        cache = QueryCache(InMemoryStore(), now=clock)

        row = await cache.put("season 3", _hits(), CacheOptions(entity_type="season"))
        assert row.expires_at - row.fetched_at == timedelta(days=180)

        row = await cache.put("someone", _hits(), CacheOptions(entity_type="investor"))
        assert row.expires_at - row.fetched_at == timedelta(days=90)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [CacheUnavailable("store offline"), ConnectionError("db down")])
    async def test_read_failure_is_a_miss(self, error, caplog):
        import logging
        from enrichment.search.query_cache import QueryCache

        store = MagicMock()
        store.fetch_cache_rows = AsyncMock(side_effect=error)
        cache = QueryCache(store)

        with caplog.at_level(logging.WARNING, logger="tank.search.query_cache"):
            assert await cache.get("anything") is None
        assert "treating as miss" in caplog.text

    @pytest.mark.asyncio
    async def test_unreadable_row_is_a_miss(self, caplog):
        import logging
        from enrichment.common.schemas.records import CachedSearchResult
        from enrichment.search.query_cache import QueryCache

        naive = CachedSearchResult(
            entity_type="product",
            query="anything",
            query_hash=cache_hash("anything"),
            results=_hits(1),
            fetched_at=datetime(2025, 1, 1),
            expires_at=datetime(2025, 2, 1),
        )
        store = MagicMock()
        store.fetch_cache_rows = AsyncMock(return_value=[naive])
        cache = QueryCache(store, now=_Clock(datetime(2025, 1, 5, tzinfo=timezone.utc)))

        with caplog.at_level(logging.WARNING, logger="tank.search.query_cache"):
            assert await cache.get("anything") is None
        assert "treating as miss" in caplog.text

    @pytest.mark.asyncio
    async def test_write_failure_is_swallowed(self, caplog):
        import logging
        from enrichment.search.query_cache import QueryCache
        from enrichment.search.searcher import Searcher

        store = MagicMock()
        store.fetch_cache_rows = AsyncMock(return_value=[])
        store.write_cache_row = AsyncMock(side_effect=ConnectionError("db down"))
        provider = MagicMock()
        provider.search = AsyncMock(return_value=_hits(3))
        searcher = Searcher(provider, QueryCache(store))

        with caplog.at_level(logging.WARNING, logger="tank.search.query_cache"):
            response = await searcher.search("query")

        assert len(response.results) == 3
        assert "Failed to cache" in caplog.text

    @pytest.mark.asyncio
    async def test_most_recent_row_wins_without_upsert(self):
        from enrichment.common.storage import InMemoryStore
        from enrichment.search.query_cache import QueryCache

        store = InMemoryStore(upsert=False)
        clock = _Clock(datetime(2025, 1, 1, tzinfo=timezone.utc))
        cache = QueryCache(store, now=clock)

        await cache.put("query", _hits(1))
        clock.advance(hours=1)
        await cache.put("query", _hits(2))

        assert len(await store.fetch_cache_rows(cache_hash("query"))) == 2
        row = await cache.get("query")
        assert row.result_count == 2

    @pytest.mark.asyncio
    async def test_upsert_keeps_single_row(self):
        from enrichment.common.storage import InMemoryStore
        from enrichment.search.query_cache import QueryCache

        store = InMemoryStore(upsert=True)
        cache = QueryCache(store)
        await cache.put("query", _hits(1))
        await cache.put("query", _hits(2))

        assert len(await store.fetch_cache_rows(cache_hash("query"))) == 1

    @pytest.mark.asyncio
    async def test_skip_cache_forces_upstream(self):
        from enrichment.common.storage import InMemoryStore
        from enrichment.search.query_cache import CacheOptions

        clock = _Clock(datetime(2025, 1, 1, tzinfo=timezone.utc))
        searcher, provider = _searcher(InMemoryStore(), clock)

        await searcher.search("query")
        response = await searcher.search("query", CacheOptions(skip_cache=True))

        assert not response.from_cache
        assert provider.search.await_count == 2


class TestSearcherQueries:
    @pytest.mark.asyncio
    async def test_season_query_options(self):
        from enrichment.common.storage import InMemoryStore

        store = InMemoryStore()
        clock = _Clock(datetime(2025, 1, 1, tzinfo=timezone.utc))
        searcher, provider = _searcher(store, clock)

        await searcher.search_season_products(4)

        provider.search.assert_awaited_once()
        assert provider.search.await_args.kwargs["max_results"] == 15
        query = provider.search.await_args.args[0]
        (row,) = await store.fetch_cache_rows(cache_hash(query))
        assert row.entity_type == "season"
        assert row.expires_at - row.fetched_at == timedelta(days=180)

    @pytest.mark.asyncio
    async def test_product_queries_carry_entity_scope(self):
        from enrichment.common.storage import InMemoryStore

        store = InMemoryStore()
        clock = _Clock(datetime(2025, 1, 1, tzinfo=timezone.utc))
        searcher, provider = _searcher(store, clock)

        await searcher.search_product_details("Bombas", "p-1")
        query = provider.search.await_args.args[0]
        (row,) = await store.fetch_cache_rows(cache_hash(query))
        assert row.entity_id == "p-1"
        assert row.entity_name == "Bombas"
        assert "Bombas" in query
