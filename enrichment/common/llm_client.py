"""
Provider-agnostic async LLM client for enrichment pipelines.

Supports Anthropic, OpenAI, and Google Gemini with a shared text-generation
interface that also reports token usage.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Optional

from .errors import ProviderError
from .schemas.records import TokenUsage

logger = logging.getLogger("tank.common.llm_client")


@dataclass
class GenerationResponse:
    """Completion text plus the usage the provider reported for it"""
    text: str
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)


class LLMClient:
    """Unified async text generation client across LLM providers."""

    def __init__(
        self,
        provider: str = "openai",
        model: str = "",
        anthropic_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        google_api_key: Optional[str] = None,
        timeout: float = 120.0,
    ) -> None:
        self.provider = (provider or "openai").lower()
        self.model = model
        self.timeout = timeout
        self._client = None

        if self.provider == "anthropic":
            if not anthropic_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                import anthropic

                self._client = anthropic.AsyncAnthropic(api_key=anthropic_api_key)
            except ImportError:
                logger.warning("anthropic package not installed")
            except Exception as e:
                logger.warning("Failed to initialize Anthropic client: %s", e)
            return

        if self.provider == "openai":
            if not openai_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                from openai import AsyncOpenAI

                self._client = AsyncOpenAI(api_key=openai_api_key)
            except ImportError:
                logger.warning("openai package not installed")
            except Exception as e:
                logger.warning("Failed to initialize OpenAI client: %s", e)
            return

        if self.provider == "google":
            if not google_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                import google.generativeai as genai

                genai.configure(api_key=google_api_key)
                self._client = genai  # Store the module, not a model instance
                self._google_models = {}  # Cache models by system prompt hash
            except ImportError:
                logger.warning("google-generativeai package not installed")
            except Exception as e:
                logger.warning("Failed to initialize Gemini client: %s", e)
            return

        logger.warning("Unsupported LLM provider: %s", self.provider)

    @classmethod
    def from_config(cls, llm_config) -> "LLMClient":
        """Build a client from an LLMConfig section"""
        return cls(
            provider=llm_config.provider,
            model=llm_config.model,
            anthropic_api_key=llm_config.anthropic_api_key or None,
            openai_api_key=llm_config.openai_api_key or None,
            google_api_key=llm_config.google_api_key or None,
            timeout=llm_config.timeout,
        )

    @property
    def is_available(self) -> bool:
        return self._client is not None

    async def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 4000,
        temperature: float = 0.3,
    ) -> GenerationResponse:
        if not self.is_available:
            raise ProviderError("LLM client is not available")

        try:
            if self.provider == "anthropic":
                return await self._generate_anthropic(prompt, system, max_tokens, temperature)
            if self.provider == "openai":
                return await self._generate_openai(prompt, system, max_tokens, temperature)
            if self.provider == "google":
                return await self._generate_google(prompt, system, max_tokens, temperature)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(f"{self.provider} request failed: {e}") from e

        raise ProviderError(f"Unsupported LLM provider: {self.provider}")

    async def _generate_anthropic(self, prompt, system, max_tokens, temperature) -> GenerationResponse:
        kwargs = {}
        if system:
            kwargs["system"] = system
        response = await self._client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}],
            timeout=self.timeout,
            **kwargs,
        )
        text = "".join(getattr(block, "text", "") for block in response.content or [])
        usage = getattr(response, "usage", None)
        prompt_tokens = getattr(usage, "input_tokens", 0) or 0
        completion_tokens = getattr(usage, "output_tokens", 0) or 0
        return GenerationResponse(
            text=text.strip(),
            model=self.model,
            usage=TokenUsage(
                prompt=prompt_tokens,
                completion=completion_tokens,
                total=prompt_tokens + completion_tokens,
            ),
        )

    async def _generate_openai(self, prompt, system, max_tokens, temperature) -> GenerationResponse:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        response = await self._client.chat.completions.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=messages,
            timeout=self.timeout,
        )
        text = ""
        if response.choices:
            text = response.choices[0].message.content or ""
        usage = getattr(response, "usage", None)
        return GenerationResponse(
            text=text.strip(),
            model=self.model,
            usage=TokenUsage(
                prompt=getattr(usage, "prompt_tokens", 0) or 0,
                completion=getattr(usage, "completion_tokens", 0) or 0,
                total=getattr(usage, "total_tokens", 0) or 0,
            ),
        )

    async def _generate_google(self, prompt, system, max_tokens, temperature) -> GenerationResponse:
        cache_key = hashlib.md5((system or "").encode()).hexdigest()
        if cache_key not in self._google_models:
            kwargs = {"model_name": self.model}
            if system:
                kwargs["system_instruction"] = system
            self._google_models[cache_key] = self._client.GenerativeModel(**kwargs)
        model = self._google_models[cache_key]
        response = await model.generate_content_async(
            prompt,
            generation_config={"max_output_tokens": max_tokens, "temperature": temperature},
            request_options={"timeout": self.timeout},
        )
        metadata = getattr(response, "usage_metadata", None)
        return GenerationResponse(
            text=(response.text or "").strip(),
            model=self.model,
            usage=TokenUsage(
                prompt=getattr(metadata, "prompt_token_count", 0) or 0,
                completion=getattr(metadata, "candidates_token_count", 0) or 0,
                total=getattr(metadata, "total_token_count", 0) or 0,
            ),
        )
