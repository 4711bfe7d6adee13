"""
Product Discovery

Finds every product that appeared in a season: one cached season search,
compacted, then one schema-validated synthesis call. Seasons are processed
sequentially with a fixed delay.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from ..common.errors import EnrichmentError
from ..common.schemas.extraction import DiscoveredProductFields, SeasonProducts
from ..common.usage_tracker import UsageTracker
from ..search.compactor import combine_results
from ..search.searcher import Searcher
from ..synthesis.synthesizer import SynthesisClient, SynthesisOptions

logger = logging.getLogger("tank.pipeline.product_discovery")

MIN_CONTENT_LENGTH = 100
ALL_SEASONS = tuple(range(1, 17))


SYSTEM_PROMPT = """You are a Shark Tank expert. Given search results about a Shark Tank season, extract ALL products/companies that appeared in that season.

Return a JSON object with this exact structure:
{"products": [...]}

For each product in the array, include:
- name: The product or company name
- companyName: Company name if different from product name (or null)
- founders: Array of founder names
- episodeNumber: Episode number within the season (1-29 typically, or null)
- askingAmount: Dollar amount they asked for (number, or null if unknown)
- askingEquity: Percentage equity offered (number, or null if unknown)
- dealAmount: Final deal amount in dollars (number, or null if no deal)
- dealEquity: Final deal equity percentage (number, or null if no deal)
- dealOutcome: "deal", "no_deal", or "unknown"
- sharks: Array of shark names who invested (e.g., ["Mark Cuban", "Lori Greiner"])
- category: Product category (e.g., "Food & Beverage", "Technology", "Health & Wellness", or null)
- description: Brief description of the product (or null)

Important:
- Include ALL products mentioned, even if details are incomplete
- Use standard shark names: Mark Cuban, Barbara Corcoran, Daymond John, Kevin O'Leary, Lori Greiner, Robert Herjavec
- Amounts should be numbers (e.g., 100000 for $100,000)
- Return ONLY valid JSON, no other text"""


@dataclass
class DiscoveredProduct:
    """A validated product tagged with its season"""
    season: int
    fields: DiscoveredProductFields

    @property
    def name(self) -> str:
        return self.fields.name

    def to_dict(self) -> dict:
        data = self.fields.model_dump()
        data["season"] = self.season
        return data


@dataclass
class SeasonDiscoveryResult:
    season: int
    products: List[DiscoveredProduct] = field(default_factory=list)
    search_cache_hit: bool = False
    tokens_used: int = 0
    success: bool = False
    error: Optional[str] = None


@dataclass
class DiscoveryReport:
    results: List[SeasonDiscoveryResult] = field(default_factory=list)
    total_products: int = 0
    total_tokens: int = 0
    estimated_cost: float = 0.0


class ProductDiscovery:
    """Season-level product discovery."""

    def __init__(
        self,
        searcher: Searcher,
        synthesizer: SynthesisClient,
        tracker: Optional[UsageTracker] = None,
        max_content_length: int = 10000,
    ):
        self._searcher = searcher
        self._synthesizer = synthesizer
        self._tracker = tracker
        self._max_content_length = max_content_length
        self._options = SynthesisOptions(max_tokens=4000, temperature=0.2)

    async def discover_season(self, season: int) -> SeasonDiscoveryResult:
        """Discover one season's products. Never raises for pipeline errors."""
        logger.info("Discovering Season %d products", season)

        try:
            response = await self._searcher.search_season_products(season)
        except EnrichmentError as e:
            logger.warning("Season %d discovery failed: %s", season, e)
            return SeasonDiscoveryResult(season=season, error=str(e))

        content = combine_results(response.results, self._max_content_length)
        if len(content) < MIN_CONTENT_LENGTH:
            return SeasonDiscoveryResult(
                season=season,
                search_cache_hit=response.from_cache,
                error="No search results found",
            )

        result = await self._synthesizer.synthesize(
            SYSTEM_PROMPT,
            f"Extract all Shark Tank Season {season} products from these search results:\n\n{content}",
            SeasonProducts,
            self._options,
        )

        if not result.success or result.data is None:
            return SeasonDiscoveryResult(
                season=season,
                search_cache_hit=response.from_cache,
                tokens_used=result.usage.total,
                error=result.error or "LLM synthesis failed",
            )

        products = [DiscoveredProduct(season=season, fields=p) for p in result.data.products]
        logger.info("Found %d products in Season %d", len(products), season)

        return SeasonDiscoveryResult(
            season=season,
            products=products,
            search_cache_hit=response.from_cache,
            tokens_used=result.usage.total,
            success=True,
        )

    async def discover_all_seasons(
        self,
        seasons: Iterable[int] = ALL_SEASONS,
        delay: float = 1.0,
    ) -> DiscoveryReport:
        """Discover seasons one after another, sleeping ``delay`` seconds between them."""
        seasons = list(seasons)
        report = DiscoveryReport()

        for index, season in enumerate(seasons):
            result = await self.discover_season(season)
            report.results.append(result)
            report.total_products += len(result.products)
            report.total_tokens += result.tokens_used

            if delay > 0 and index < len(seasons) - 1:
                await asyncio.sleep(delay)

        if self._tracker is not None:
            report.estimated_cost = self._tracker.estimate_cost(self._synthesizer.model)
        return report
