"""
Synthesis Module

LLM synthesis of structured records and canonical investor resolution.

Key Components:
- SynthesisClient: schema-validated generation with bounded retries
- AliasRegistry: known investor spellings loaded from a markdown table
- EntityResolver: create-or-get mapping of names to investor IDs
"""

from .synthesizer import SynthesisClient, SynthesisOptions, SynthesisResult, RawSynthesisResult
from .alias_registry import AliasRegistry, AliasEntry, normalize_name
from .entity_resolver import EntityResolver, EntityIdMap, Resolution, slugify

__all__ = [
    "SynthesisClient",
    "SynthesisOptions",
    "SynthesisResult",
    "RawSynthesisResult",
    "AliasRegistry",
    "AliasEntry",
    "normalize_name",
    "EntityResolver",
    "EntityIdMap",
    "Resolution",
    "slugify",
]
