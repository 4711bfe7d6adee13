"""
Synthesis Client

Turns search context into schema-validated structured data with an LLM.

Each attempt is one provider call followed by extraction, JSON decoding and
schema validation. Any retryable failure (empty completion, provider error,
no JSON, invalid JSON, schema mismatch) is retried by tenacity with a linearly
growing delay: ``attempt * base_delay`` seconds.

Usage accounting: a successful result reports the usage of the successful
attempt only, and an exhausted result reports zero usage. Tokens burned by
failed attempts are exposed separately as ``attempted_usage`` and are not
added to the tracker.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from ..common.errors import EnrichmentError, GenerationEmptyResponse, JsonExtractionFailure
from ..common.llm_client import LLMClient
from ..common.llm_utils import extract_json, validate_payload
from ..common.schemas.records import ExtractionOutcome, TokenUsage
from ..common.usage_tracker import UsageTracker

logger = logging.getLogger("tank.synthesis.synthesizer")


def _is_retryable(exc: BaseException) -> bool:
    """Only enrichment errors flagged retryable earn another attempt."""
    return isinstance(exc, EnrichmentError) and exc.retryable


@dataclass
class SynthesisOptions:
    """Per-call generation and retry settings"""
    max_tokens: int = 4000
    temperature: float = 0.3
    retries: int = 2
    base_delay: float = 1.0
    strict: bool = False  # string-aware JSON boundary scan


@dataclass
class SynthesisResult:
    """Outcome of synthesize(): validated data or the last error"""
    data: Any
    model: str
    usage: TokenUsage
    success: bool
    error: Optional[str] = None
    error_kind: Optional[str] = None
    attempts: List[ExtractionOutcome] = field(default_factory=list)

    @property
    def attempted_usage(self) -> TokenUsage:
        """Usage summed over every attempt, failed ones included"""
        total = TokenUsage()
        for outcome in self.attempts:
            total = total + outcome.usage
        return total


@dataclass
class RawSynthesisResult:
    """Outcome of synthesize_raw(): free text, no schema"""
    text: str
    model: str
    usage: TokenUsage
    success: bool
    error: Optional[str] = None


class SynthesisClient:
    """
    Schema-validated LLM synthesis with bounded retries.

    Pure request/response; nothing here touches persistence.
    """

    def __init__(self, llm_client: LLMClient, tracker: Optional[UsageTracker] = None):
        """
        Args:
            llm_client: Generation provider client
            tracker: Receives the usage of every successful call
        """
        self._llm = llm_client
        self._tracker = tracker

    @property
    def model(self) -> str:
        return self._llm.model

    async def synthesize(
        self,
        system_prompt: str,
        user_prompt: str,
        schema: Any,
        options: Optional[SynthesisOptions] = None,
    ) -> SynthesisResult:
        """
        Generate and validate structured data.

        Args:
            system_prompt: Instructions, including the JSON shape to return
            user_prompt: Task input (usually compacted search results)
            schema: Pydantic model class or any TypeAdapter-compatible type
            options: Generation/retry settings

        Returns:
            SynthesisResult; never raises for retryable failures
        """
        options = options or SynthesisOptions()
        attempts: List[ExtractionOutcome] = []

        retrying = AsyncRetrying(
            stop=stop_after_attempt(options.retries + 1),
            wait=wait_incrementing(start=options.base_delay, increment=options.base_delay),
            retry=retry_if_exception(_is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=asyncio.sleep,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    outcome = ExtractionOutcome()
                    attempts.append(outcome)
                    await self._attempt(outcome, system_prompt, user_prompt, schema, options)
        except EnrichmentError as e:
            if not e.retryable:
                raise
            logger.warning("Synthesis failed after %d attempts: %s", len(attempts), e)
            return SynthesisResult(
                data=None,
                model=self.model,
                usage=TokenUsage(),
                success=False,
                error=str(e),
                error_kind=type(e).__name__,
                attempts=attempts,
            )

        outcome = attempts[-1]
        if self._tracker is not None:
            self._tracker.accumulate(outcome.usage)
        return SynthesisResult(
            data=outcome.validated_data,
            model=self.model,
            usage=outcome.usage,
            success=True,
            attempts=attempts,
        )

    async def _attempt(self, outcome, system_prompt, user_prompt, schema, options):
        """One provider call + extraction + validation, recorded on ``outcome``."""
        try:
            response = await self._llm.generate(
                user_prompt,
                system=system_prompt,
                max_tokens=options.max_tokens,
                temperature=options.temperature,
            )
            outcome.raw_text = response.text
            outcome.usage = response.usage

            if not response.text.strip():
                raise GenerationEmptyResponse("Empty response from LLM")

            outcome.extracted_json = extract_json(response.text, strict=options.strict)
            try:
                parsed = json.loads(outcome.extracted_json)
            except json.JSONDecodeError as e:
                raise JsonExtractionFailure(f"Invalid JSON in LLM response: {e}") from e

            outcome.validated_data = validate_payload(parsed, schema)
            outcome.success = True
        except EnrichmentError as e:
            outcome.error = str(e)
            logger.debug("Attempt failed (%s); raw text: %r", type(e).__name__, outcome.raw_text[:200])
            raise

    async def synthesize_raw(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 4000,
        temperature: float = 0.7,
    ) -> RawSynthesisResult:
        """Single free-text generation, no extraction and no retries."""
        try:
            response = await self._llm.generate(
                user_prompt,
                system=system_prompt,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except EnrichmentError as e:
            return RawSynthesisResult(
                text="",
                model=self.model,
                usage=TokenUsage(),
                success=False,
                error=str(e),
            )

        if self._tracker is not None:
            self._tracker.accumulate(response.usage)
        return RawSynthesisResult(
            text=response.text,
            model=self.model,
            usage=response.usage,
            success=True,
        )
