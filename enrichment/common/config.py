"""
Configuration Management for Tank Enrichment

Loads configuration from ~/.tank-enrichment/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field

logger = logging.getLogger("tank.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".tank-enrichment"
CONFIG_PATH = CONFIG_DIR / "config.json"
DEFAULT_STORE_PATH = CONFIG_DIR / "store.json"

# Package data (relative to this file)
PACKAGE_ROOT = Path(__file__).parent.parent  # enrichment/
DATA_DIR = PACKAGE_ROOT / "data"
ALIASES_PATH = DATA_DIR / "investor-aliases.md"


@dataclass
class LLMConfig:
    """Generation provider configuration"""
    provider: str = "openai"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    google_api_key: str = ""
    google_model: str = "gemini-2.0-flash-exp"
    max_tokens: int = 4000
    temperature: float = 0.3
    timeout: float = 120.0

    @property
    def model(self) -> str:
        """Model name for the selected provider"""
        return {
            "anthropic": self.anthropic_model,
            "openai": self.openai_model,
            "google": self.google_model,
        }.get(self.provider, self.openai_model)


@dataclass
class SearchConfig:
    """Search provider configuration"""
    tavily_api_key: str = ""
    search_depth: str = "advanced"
    max_results: int = 10
    timeout: float = 30.0


@dataclass
class CacheConfig:
    """Search cache configuration (TTL in days per entity type)"""
    product_ttl_days: int = 30
    investor_ttl_days: int = 90
    season_ttl_days: int = 180
    skip_cache: bool = False

    def ttl_table(self) -> dict:
        return {
            "product": self.product_ttl_days,
            "investor": self.investor_ttl_days,
            "season": self.season_ttl_days,
        }


@dataclass
class SynthesisConfig:
    """Synthesis retry configuration"""
    retries: int = 2
    base_delay: float = 1.0
    strict_extraction: bool = False


@dataclass
class PipelineConfig:
    """Wave runner and pending-deal selection configuration"""
    concurrency: int = 50
    wave_delay: float = 0.0
    section_max_length: int = 6000
    season_max_length: int = 10000
    pending_max_length: int = 8000
    pending_limit: int = 10
    pending_min_age_hours: int = 24
    pending_max_attempts: int = 7


@dataclass
class StorageConfig:
    """Persistence backend configuration"""
    backend: str = "json"  # "json" or "memory"
    path: str = str(DEFAULT_STORE_PATH)


@dataclass
class EnrichmentConfig:
    """Main enrichment configuration"""
    llm: LLMConfig = field(default_factory=LLMConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    synthesis: SynthesisConfig = field(default_factory=SynthesisConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    aliases_path: str = str(ALIASES_PATH)
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _parse_llm_config(data: dict) -> LLMConfig:
    """Parse llm section from config dict"""
    llm_data = data.get("llm", {})
    return LLMConfig(
        provider=llm_data.get("provider", "openai"),
        anthropic_api_key=llm_data.get("anthropic_api_key", ""),
        anthropic_model=llm_data.get("anthropic_model", "claude-sonnet-4-20250514"),
        openai_api_key=llm_data.get("openai_api_key", ""),
        openai_model=llm_data.get("openai_model", "gpt-4o-mini"),
        google_api_key=llm_data.get("google_api_key", ""),
        google_model=llm_data.get("google_model", "gemini-2.0-flash-exp"),
        max_tokens=llm_data.get("max_tokens", 4000),
        temperature=llm_data.get("temperature", 0.3),
        timeout=llm_data.get("timeout", 120.0),
    )


def _parse_search_config(data: dict) -> SearchConfig:
    """Parse search section from config dict"""
    search_data = data.get("search", {})
    return SearchConfig(
        tavily_api_key=search_data.get("tavily_api_key", ""),
        search_depth=search_data.get("search_depth", "advanced"),
        max_results=search_data.get("max_results", 10),
        timeout=search_data.get("timeout", 30.0),
    )


def _parse_cache_config(data: dict) -> CacheConfig:
    """Parse cache section from config dict"""
    cache_data = data.get("cache", {})
    return CacheConfig(
        product_ttl_days=cache_data.get("product_ttl_days", 30),
        investor_ttl_days=cache_data.get("investor_ttl_days", 90),
        season_ttl_days=cache_data.get("season_ttl_days", 180),
        skip_cache=cache_data.get("skip_cache", False),
    )


def _parse_synthesis_config(data: dict) -> SynthesisConfig:
    """Parse synthesis section from config dict"""
    synthesis_data = data.get("synthesis", {})
    return SynthesisConfig(
        retries=synthesis_data.get("retries", 2),
        base_delay=synthesis_data.get("base_delay", 1.0),
        strict_extraction=synthesis_data.get("strict_extraction", False),
    )


def _parse_pipeline_config(data: dict) -> PipelineConfig:
    """Parse pipeline section from config dict"""
    pipeline_data = data.get("pipeline", {})
    return PipelineConfig(
        concurrency=pipeline_data.get("concurrency", 50),
        wave_delay=pipeline_data.get("wave_delay", 0.0),
        section_max_length=pipeline_data.get("section_max_length", 6000),
        season_max_length=pipeline_data.get("season_max_length", 10000),
        pending_max_length=pipeline_data.get("pending_max_length", 8000),
        pending_limit=pipeline_data.get("pending_limit", 10),
        pending_min_age_hours=pipeline_data.get("pending_min_age_hours", 24),
        pending_max_attempts=pipeline_data.get("pending_max_attempts", 7),
    )


def _parse_storage_config(data: dict) -> StorageConfig:
    """Parse storage section from config dict"""
    storage_data = data.get("storage", {})
    return StorageConfig(
        backend=storage_data.get("backend", "json"),
        path=storage_data.get("path", str(DEFAULT_STORE_PATH)),
    )


def load_config() -> EnrichmentConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.tank-enrichment/config.json)
    3. Default values
    """
    config = EnrichmentConfig()

    # Load from config file if exists
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.llm = _parse_llm_config(data)
            config.search = _parse_search_config(data)
            config.cache = _parse_cache_config(data)
            config.synthesis = _parse_synthesis_config(data)
            config.pipeline = _parse_pipeline_config(data)
            config.storage = _parse_storage_config(data)
            config.aliases_path = data.get("aliases_path", str(ALIASES_PATH))
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load config file: %s", e)

    # LLM env var overrides (track env-sourced keys)
    _env_llm_map = {
        "ANTHROPIC_API_KEY": "anthropic_api_key",
        "ANTHROPIC_MODEL": "anthropic_model",
        "OPENAI_API_KEY": "openai_api_key",
        "OPENAI_MODEL": "openai_model",
        "GOOGLE_API_KEY": "google_api_key",
        "GEMINI_API_KEY": "google_api_key",
        "GOOGLE_MODEL": "google_model",
        "TANK_LLM_PROVIDER": "provider",
    }
    for env_var, attr in _env_llm_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.llm, attr, val)
            config._env_sourced_keys.add(attr)

    tavily_key = os.getenv("TAVILY_API_KEY") or os.getenv("TAVILY")
    if tavily_key:
        config.search.tavily_api_key = tavily_key
        config._env_sourced_keys.add("tavily_api_key")

    if os.getenv("TANK_STORE_PATH"):
        config.storage.path = os.getenv("TANK_STORE_PATH")
    if os.getenv("TANK_CONCURRENCY"):
        config.pipeline.concurrency = int(os.getenv("TANK_CONCURRENCY"))

    return config


def save_config(config: EnrichmentConfig) -> None:
    """Save configuration to file.

    API key fields that were sourced from environment variables are written
    as empty strings so that secrets are not persisted to disk.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    env_sourced = getattr(config, "_env_sourced_keys", set())

    llm_section = {
        "provider": config.llm.provider,
        "anthropic_api_key": config.llm.anthropic_api_key,
        "anthropic_model": config.llm.anthropic_model,
        "openai_api_key": config.llm.openai_api_key,
        "openai_model": config.llm.openai_model,
        "google_api_key": config.llm.google_api_key,
        "google_model": config.llm.google_model,
        "max_tokens": config.llm.max_tokens,
        "temperature": config.llm.temperature,
        "timeout": config.llm.timeout,
    }
    for key in ("anthropic_api_key", "openai_api_key", "google_api_key"):
        if key in env_sourced:
            llm_section[key] = ""

    data = {
        "llm": llm_section,
        "search": {
            "tavily_api_key": "" if "tavily_api_key" in env_sourced else config.search.tavily_api_key,
            "search_depth": config.search.search_depth,
            "max_results": config.search.max_results,
            "timeout": config.search.timeout,
        },
        "cache": {
            "product_ttl_days": config.cache.product_ttl_days,
            "investor_ttl_days": config.cache.investor_ttl_days,
            "season_ttl_days": config.cache.season_ttl_days,
            "skip_cache": config.cache.skip_cache,
        },
        "synthesis": {
            "retries": config.synthesis.retries,
            "base_delay": config.synthesis.base_delay,
            "strict_extraction": config.synthesis.strict_extraction,
        },
        "pipeline": {
            "concurrency": config.pipeline.concurrency,
            "wave_delay": config.pipeline.wave_delay,
            "section_max_length": config.pipeline.section_max_length,
            "season_max_length": config.pipeline.season_max_length,
            "pending_max_length": config.pipeline.pending_max_length,
            "pending_limit": config.pipeline.pending_limit,
            "pending_min_age_hours": config.pipeline.pending_min_age_hours,
            "pending_max_attempts": config.pipeline.pending_max_attempts,
        },
        "storage": {
            "backend": config.storage.backend,
            "path": config.storage.path,
        },
        "aliases_path": config.aliases_path,
    }

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)
