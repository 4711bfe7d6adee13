"""
Tank Enrichment

Turns noisy web-search and LLM output into validated product/investor records.

Philosophy:
- Search calls are expensive: cache them by query content, scoped by TTL
- LLM output is untrusted text: extract, parse, validate, retry
- Every investor spelling resolves to one canonical record per run
- One product's failure never aborts a batch; re-running converges

Usage:
    from enrichment.common import load_config, UsageTracker, InMemoryStore
    from enrichment.search import Searcher, QueryCache, TavilySearchProvider
    from enrichment.synthesis import SynthesisClient, EntityResolver
    from enrichment.pipeline import DealEnricher, ProductDiscovery
"""

__version__ = "0.1.0"
