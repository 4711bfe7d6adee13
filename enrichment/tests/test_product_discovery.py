"""Tests for season product discovery."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from enrichment.common.errors import UpstreamSearchFailure
from enrichment.common.llm_client import GenerationResponse
from enrichment.common.schemas.records import SearchHit, TokenUsage
from enrichment.common.usage_tracker import UsageTracker
from enrichment.pipeline.product_discovery import ProductDiscovery
from enrichment.search.searcher import SearchResponse
from enrichment.synthesis.synthesizer import SynthesisClient


SEASON_JSON = """```json
{"products": [
  {"name": "Scrub Daddy", "companyName": "Scrub Daddy Inc", "founders": ["Aaron Krause"],
   "episodeNumber": 7, "askingAmount": 100000, "askingEquity": 10,
   "dealAmount": 200000, "dealEquity": 20, "dealOutcome": "deal",
   "sharks": ["Lori Greiner"], "category": "Home ([wiki](https://w.org))", "description": null},
  {"name": "Ring", "dealOutcome": "no_deal"}
]}
```"""


def _searcher(content="x" * 400, from_cache=False):
    searcher = MagicMock()
    searcher.search_season_products = AsyncMock(return_value=SearchResponse(
        results=[SearchHit(title="Season list", url="https://e.com", content=content)] if content else [],
        query="season",
        from_cache=from_cache,
    ))
    return searcher


def _synthesizer(text=SEASON_JSON, tracker=None):
    llm = MagicMock()
    llm.model = "gpt-4o-mini"
    llm.generate = AsyncMock(return_value=GenerationResponse(
        text=text, model="gpt-4o-mini", usage=TokenUsage(prompt=2000, completion=500, total=2500),
    ))
    return SynthesisClient(llm, tracker=tracker)


class TestDiscoverSeason:
    @pytest.mark.asyncio
    async def test_products_tagged_with_season(self):
        discovery = ProductDiscovery(_searcher(from_cache=True), _synthesizer())

        result = await discovery.discover_season(5)

        assert result.success
        assert result.search_cache_hit
        assert result.tokens_used == 2500
        assert [p.name for p in result.products] == ["Scrub Daddy", "Ring"]
        scrub = result.products[0]
        assert scrub.season == 5
        assert scrub.fields.category == "Home"
        assert scrub.fields.investors == ["Lori Greiner"]
        assert scrub.to_dict()["season"] == 5
        assert result.products[1].fields.founders == []

    @pytest.mark.asyncio
    async def test_low_temperature_and_prompt(self):
        synthesizer = _synthesizer()
        discovery = ProductDiscovery(_searcher(), synthesizer)

        await discovery.discover_season(2)

        call = synthesizer._llm.generate.await_args
        assert call.kwargs["temperature"] == 0.2
        assert call.args[0].startswith("Extract all Shark Tank Season 2 products")

    @pytest.mark.asyncio
    async def test_thin_content_fails_without_llm_call(self):
        synthesizer = _synthesizer()
        discovery = ProductDiscovery(_searcher(content="tiny"), synthesizer)

        result = await discovery.discover_season(1)

        assert not result.success
        assert result.error == "No search results found"
        synthesizer._llm.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_search_failure_reported(self):
        searcher = MagicMock()
        searcher.search_season_products = AsyncMock(side_effect=UpstreamSearchFailure("Tavily error: 401"))
        discovery = ProductDiscovery(searcher, _synthesizer())

        result = await discovery.discover_season(3)

        assert not result.success
        assert "401" in result.error

    @pytest.mark.asyncio
    async def test_synthesis_failure_reported(self):
        discovery = ProductDiscovery(_searcher(), _synthesizer(text="nothing useful"))

        with patch("enrichment.synthesis.synthesizer.asyncio.sleep", new_callable=AsyncMock):
            result = await discovery.discover_season(3)

        assert not result.success
        assert result.products == []
        assert result.tokens_used == 0


class TestDiscoverAllSeasons:
    @pytest.mark.asyncio
    async def test_totals_and_delay(self):
        tracker = UsageTracker()
        discovery = ProductDiscovery(_searcher(), _synthesizer(tracker=tracker), tracker=tracker)

        with patch("enrichment.pipeline.product_discovery.asyncio.sleep", new_callable=AsyncMock) as sleep:
            report = await discovery.discover_all_seasons([1, 2, 3], delay=1.0)

        assert [r.season for r in report.results] == [1, 2, 3]
        assert report.total_products == 6
        assert report.total_tokens == 7500
        assert sleep.await_count == 2
        assert report.estimated_cost == pytest.approx(tracker.estimate_cost("gpt-4o-mini"))
        assert report.estimated_cost > 0
