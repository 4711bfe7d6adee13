"""
Runtime wiring

Builds every collaborator a batch job needs from an EnrichmentConfig.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..common.config import EnrichmentConfig
from ..common.llm_client import LLMClient
from ..common.storage import EnrichmentStore, create_store
from ..common.usage_tracker import UsageTracker
from ..search.provider import TavilySearchProvider
from ..search.query_cache import QueryCache
from ..search.searcher import Searcher
from ..synthesis.alias_registry import AliasRegistry
from ..synthesis.entity_resolver import EntityResolver
from ..synthesis.synthesizer import SynthesisClient, SynthesisOptions
from .deal_enricher import DealEnricher
from .pending_deals import PendingDealEnricher
from .product_discovery import ProductDiscovery

logger = logging.getLogger("tank.pipeline.runtime")


@dataclass
class Components:
    config: EnrichmentConfig
    store: EnrichmentStore
    tracker: UsageTracker
    llm: LLMClient
    searcher: Searcher
    synthesizer: SynthesisClient
    resolver: EntityResolver

    def deal_enricher(self) -> DealEnricher:
        return DealEnricher(
            searcher=self.searcher,
            synthesizer=self.synthesizer,
            resolver=self.resolver,
            store=self.store,
            tracker=self.tracker,
            section_max_length=self.config.pipeline.section_max_length,
            synthesis_options=synthesis_options(self.config),
        )

    def pending_deal_enricher(self) -> PendingDealEnricher:
        return PendingDealEnricher(
            searcher=self.searcher,
            synthesizer=self.synthesizer,
            resolver=self.resolver,
            store=self.store,
            tracker=self.tracker,
            max_content_length=self.config.pipeline.pending_max_length,
            synthesis_options=synthesis_options(self.config),
        )

    def product_discovery(self) -> ProductDiscovery:
        return ProductDiscovery(
            searcher=self.searcher,
            synthesizer=self.synthesizer,
            tracker=self.tracker,
            max_content_length=self.config.pipeline.season_max_length,
        )

    async def close(self) -> None:
        await self.searcher.close()


def synthesis_options(config: EnrichmentConfig) -> SynthesisOptions:
    """SynthesisOptions from the llm and synthesis config sections"""
    return SynthesisOptions(
        max_tokens=config.llm.max_tokens,
        temperature=config.llm.temperature,
        retries=config.synthesis.retries,
        base_delay=config.synthesis.base_delay,
        strict=config.synthesis.strict_extraction,
    )


def build_components(config: EnrichmentConfig, store: Optional[EnrichmentStore] = None) -> Components:
    """Initialize collaborators. An explicit ``store`` overrides the configured backend."""
    store = store or create_store(config.storage)
    logger.info("Store ready (%s)", config.storage.backend)

    tracker = UsageTracker()

    llm = LLMClient.from_config(config.llm)
    if llm.is_available:
        logger.info("LLM client ready (%s/%s)", config.llm.provider, llm.model)
    else:
        logger.warning("LLM client not available (%s): check API key", config.llm.provider)

    provider = TavilySearchProvider.from_config(config.search)
    if not provider.is_available:
        logger.warning("Tavily API key not set: cache misses will fail")

    cache = QueryCache(store, ttl_days=config.cache.ttl_table())
    searcher = Searcher(provider, cache, skip_cache=config.cache.skip_cache)

    aliases = AliasRegistry.load(Path(config.aliases_path))

    return Components(
        config=config,
        store=store,
        tracker=tracker,
        llm=llm,
        searcher=searcher,
        synthesizer=SynthesisClient(llm, tracker=tracker),
        resolver=EntityResolver(store, aliases),
    )
