"""
Enrichment Schemas

Records exchanged between components, and the pydantic schemas LLM output
is validated against.
"""

from .records import (
    TokenUsage,
    SearchHit,
    CachedSearchResult,
    ExtractionOutcome,
    CanonicalEntity,
    EntityLink,
    Subject,
)
from .extraction import (
    InvestorInvestment,
    InvestorsOnly,
    DealInfo,
    DiscoveredProductFields,
    SeasonProducts,
)

__all__ = [
    "TokenUsage",
    "SearchHit",
    "CachedSearchResult",
    "ExtractionOutcome",
    "CanonicalEntity",
    "EntityLink",
    "Subject",
    "InvestorInvestment",
    "InvestorsOnly",
    "DealInfo",
    "DiscoveredProductFields",
    "SeasonProducts",
]
