"""Tests for config loading, env overrides and saving."""

import json
import os
import stat
from unittest.mock import patch


class TestLLMConfig:
    def test_llm_config_defaults(self):
        from enrichment.common.config import LLMConfig
        cfg = LLMConfig()
        assert cfg.provider == "openai"
        assert cfg.model == "gpt-4o-mini"
        assert cfg.max_tokens == 4000
        assert cfg.openai_api_key == ""

    def test_model_follows_provider(self):
        from enrichment.common.config import LLMConfig
        cfg = LLMConfig(provider="anthropic")
        assert cfg.model == "claude-sonnet-4-20250514"
        cfg.provider = "google"
        assert cfg.model == "gemini-2.0-flash-exp"


class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path):
        from enrichment.common.config import load_config
        with patch("enrichment.common.config.CONFIG_PATH", tmp_path / "missing.json"), \
             patch.dict(os.environ, {}, clear=True):
            cfg = load_config()

        assert cfg.pipeline.concurrency == 50
        assert cfg.pipeline.pending_limit == 10
        assert cfg.synthesis.retries == 2
        assert cfg.cache.ttl_table() == {"product": 30, "investor": 90, "season": 180}
        assert cfg.storage.backend == "json"

    def test_load_sections_from_file(self, tmp_path):
        from enrichment.common.config import load_config
        config_data = {
            "llm": {"provider": "anthropic", "anthropic_api_key": "sk-ant-test"},
            "search": {"tavily_api_key": "tvly-file", "max_results": 5},
            "cache": {"product_ttl_days": 7},
            "synthesis": {"retries": 4, "strict_extraction": True},
            "pipeline": {"concurrency": 10, "wave_delay": 2.5, "pending_max_attempts": 3},
            "storage": {"backend": "memory"},
        }
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps(config_data))

        with patch("enrichment.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, {}, clear=True):
            cfg = load_config()

        assert cfg.llm.provider == "anthropic"
        assert cfg.llm.anthropic_api_key == "sk-ant-test"
        assert cfg.search.max_results == 5
        assert cfg.cache.ttl_table()["product"] == 7
        assert cfg.synthesis.retries == 4
        assert cfg.synthesis.strict_extraction is True
        assert cfg.pipeline.wave_delay == 2.5
        assert cfg.pipeline.pending_max_attempts == 3
        assert cfg.pipeline.pending_min_age_hours == 24
        assert cfg.storage.backend == "memory"

    def test_corrupt_file_falls_back_to_defaults(self, tmp_path, caplog):
        import logging
        from enrichment.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text("{not json")

        with patch("enrichment.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, {}, clear=True), \
             caplog.at_level(logging.WARNING, logger="tank.common.config"):
            cfg = load_config()

        assert cfg.llm.provider == "openai"
        assert "Failed to load config file" in caplog.text

    def test_env_var_overrides(self, tmp_path):
        from enrichment.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"llm": {"provider": "openai", "openai_api_key": "sk-file"}}))

        env = {
            "OPENAI_API_KEY": "sk-env",
            "TANK_LLM_PROVIDER": "google",
            "GEMINI_API_KEY": "g-env",
            "TAVILY": "tvly-env",
            "TANK_CONCURRENCY": "8",
            "TANK_STORE_PATH": "/tmp/store.json",
        }
        with patch("enrichment.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, env, clear=True):
            cfg = load_config()

        assert cfg.llm.openai_api_key == "sk-env"
        assert cfg.llm.provider == "google"
        assert cfg.llm.google_api_key == "g-env"
        assert cfg.search.tavily_api_key == "tvly-env"
        assert cfg.pipeline.concurrency == 8
        assert cfg.storage.path == "/tmp/store.json"

    def test_tavily_api_key_preferred_over_legacy_name(self, tmp_path):
        from enrichment.common.config import load_config
        env = {"TAVILY_API_KEY": "tvly-new", "TAVILY": "tvly-old"}
        with patch("enrichment.common.config.CONFIG_PATH", tmp_path / "missing.json"), \
             patch.dict(os.environ, env, clear=True):
            cfg = load_config()
        assert cfg.search.tavily_api_key == "tvly-new"


class TestSaveConfig:
    def test_save_config_omits_env_keys(self, tmp_path):
        from enrichment.common.config import load_config, save_config
        config_file = tmp_path / "config.json"
        config_file.write_text("{}")

        env = {"ANTHROPIC_API_KEY": "sk-from-env", "TAVILY_API_KEY": "tvly-from-env"}
        with patch("enrichment.common.config.CONFIG_PATH", config_file), \
             patch("enrichment.common.config.CONFIG_DIR", tmp_path), \
             patch.dict(os.environ, env, clear=True):
            cfg = load_config()
            save_config(cfg)

        saved = json.loads(config_file.read_text())
        assert saved["llm"]["anthropic_api_key"] == ""
        assert saved["search"]["tavily_api_key"] == ""

    def test_save_config_keeps_file_keys(self, tmp_path):
        from enrichment.common.config import load_config, save_config
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"llm": {"openai_api_key": "sk-file"}}))

        with patch("enrichment.common.config.CONFIG_PATH", config_file), \
             patch("enrichment.common.config.CONFIG_DIR", tmp_path), \
             patch.dict(os.environ, {}, clear=True):
            cfg = load_config()
            save_config(cfg)

        saved = json.loads(config_file.read_text())
        assert saved["llm"]["openai_api_key"] == "sk-file"
        assert set(saved) >= {"llm", "search", "cache", "synthesis", "pipeline", "storage"}

    def test_save_config_permissions(self, tmp_path):
        from enrichment.common.config import EnrichmentConfig, save_config
        config_file = tmp_path / "config.json"

        with patch("enrichment.common.config.CONFIG_PATH", config_file), \
             patch("enrichment.common.config.CONFIG_DIR", tmp_path):
            save_config(EnrichmentConfig())

        assert stat.S_IMODE(config_file.stat().st_mode) == 0o600
