"""Tests for LLMClient provider abstraction."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from enrichment.common.errors import ProviderError
from enrichment.common.llm_client import LLMClient


class TestLLMClientInit:
    def test_missing_anthropic_key_logs_info(self, caplog):
        import logging
        with caplog.at_level(logging.INFO, logger="tank.common.llm_client"):
            client = LLMClient(provider="anthropic")
        assert not client.is_available
        assert "API key not provided" in caplog.text

    def test_missing_openai_key_logs_info(self, caplog):
        import logging
        with caplog.at_level(logging.INFO, logger="tank.common.llm_client"):
            client = LLMClient(provider="openai")
        assert not client.is_available
        assert "API key not provided" in caplog.text

    def test_missing_google_key_logs_info(self, caplog):
        import logging
        with caplog.at_level(logging.INFO, logger="tank.common.llm_client"):
            client = LLMClient(provider="google")
        assert not client.is_available
        assert "API key not provided" in caplog.text

    def test_unsupported_provider_logs_warning(self, caplog):
        import logging
        with caplog.at_level(logging.WARNING, logger="tank.common.llm_client"):
            client = LLMClient(provider="unsupported_xyz")
        assert not client.is_available
        assert "Unsupported" in caplog.text

    def test_from_config(self):
        from enrichment.common.config import LLMConfig
        client = LLMClient.from_config(LLMConfig(provider="anthropic", timeout=5.0))
        assert client.provider == "anthropic"
        assert client.model == "claude-sonnet-4-20250514"
        assert client.timeout == 5.0


class TestLLMClientGenerate:
    @pytest.mark.asyncio
    async def test_generate_raises_when_unavailable(self):
        client = LLMClient(provider="anthropic")
        with pytest.raises(ProviderError, match="not available"):
            await client.generate("test")

    @pytest.mark.asyncio
    async def test_openai_response_and_usage(self):
        client = LLMClient(provider="openai", model="gpt-4o-mini")
        response = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content='  {"sharks": []}  '))],
            usage=SimpleNamespace(prompt_tokens=120, completion_tokens=30, total_tokens=150),
        )
        client._client = MagicMock()
        client._client.chat.completions.create = AsyncMock(return_value=response)

        result = await client.generate("user", system="sys", max_tokens=100, temperature=0.1)

        assert result.text == '{"sharks": []}'
        assert (result.usage.prompt, result.usage.completion, result.usage.total) == (120, 30, 150)
        kwargs = client._client.chat.completions.create.await_args.kwargs
        assert kwargs["messages"][0] == {"role": "system", "content": "sys"}
        assert kwargs["max_tokens"] == 100

    @pytest.mark.asyncio
    async def test_anthropic_response_and_usage(self):
        client = LLMClient(provider="anthropic", model="claude-haiku-4-5-20251001")
        response = SimpleNamespace(
            content=[SimpleNamespace(text="hello "), SimpleNamespace(text="world")],
            usage=SimpleNamespace(input_tokens=10, output_tokens=4),
        )
        client._client = MagicMock()
        client._client.messages.create = AsyncMock(return_value=response)

        result = await client.generate("user", system="sys")

        assert result.text == "hello world"
        assert result.usage.total == 14
        assert client._client.messages.create.await_args.kwargs["system"] == "sys"

    @pytest.mark.asyncio
    async def test_sdk_exception_wrapped(self):
        client = LLMClient(provider="openai", model="gpt-4o-mini")
        client._client = MagicMock()
        client._client.chat.completions.create = AsyncMock(side_effect=RuntimeError("429 Too Many Requests"))

        with pytest.raises(ProviderError, match="429"):
            await client.generate("user")
