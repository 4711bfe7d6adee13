"""
Pipeline Module

Batch jobs built on the search and synthesis layers.
"""

from .deal_enricher import DealEnricher, EnrichmentSummary, SubjectOutcome, replace_links, waves
from .pending_deals import PendingDealEnricher
from .product_discovery import (
    DiscoveredProduct,
    DiscoveryReport,
    ProductDiscovery,
    SeasonDiscoveryResult,
)
from .runtime import Components, build_components

__all__ = [
    "DealEnricher",
    "EnrichmentSummary",
    "SubjectOutcome",
    "waves",
    "replace_links",
    "PendingDealEnricher",
    "DiscoveredProduct",
    "DiscoveryReport",
    "ProductDiscovery",
    "SeasonDiscoveryResult",
    "Components",
    "build_components",
]
