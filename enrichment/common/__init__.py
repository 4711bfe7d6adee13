"""
Tank Enrichment Common Module

Shared infrastructure for the search, synthesis and pipeline layers.
"""

from .config import EnrichmentConfig, load_config
from .llm_client import LLMClient, GenerationResponse
from .storage import EnrichmentStore, InMemoryStore, JsonFileStore, create_store
from .usage_tracker import UsageTracker

__all__ = [
    "EnrichmentConfig",
    "load_config",
    "LLMClient",
    "GenerationResponse",
    "EnrichmentStore",
    "InMemoryStore",
    "JsonFileStore",
    "create_store",
    "UsageTracker",
]
