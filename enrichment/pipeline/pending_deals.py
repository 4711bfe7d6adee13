"""
Pending Deal Enricher

Looks up the deal outcome for products whose outcome is still unknown.
Meant to run on a schedule (daily) over a small batch.

Selection:
- deal_outcome == "unknown"
- last enriched more than ``min_age_hours`` ago (never-enriched first)
- fewer than ``max_attempts`` searches so far
- ``force`` drops the age and attempt gates

Per product:
1. Search deal details (cache-first) and compact the hits
2. Synthesize DealInfo (outcome, terms, investors, confidence)
3. Only a high-confidence, known outcome is applied to the product
4. A closed deal with investors rewrites the product's investor links

Every product that got as far as a search has its attempt counter bumped,
whether it was updated or skipped. Failed products keep their counter so a
transient outage does not burn attempts.
"""

import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from ..common.errors import EnrichmentError, PersistenceFailure
from ..common.schemas.extraction import DealInfo
from ..common.schemas.records import Subject
from ..common.storage import EnrichmentStore
from ..common.usage_tracker import UsageTracker
from ..search.compactor import combine_results
from ..search.searcher import Searcher
from ..synthesis.entity_resolver import EntityIdMap, EntityResolver
from ..synthesis.synthesizer import SynthesisClient, SynthesisOptions
from .deal_enricher import FAILED, SKIPPED, UPDATED, EnrichmentSummary, SubjectOutcome, replace_links

logger = logging.getLogger("tank.pipeline.pending_deals")

DEAL_SEARCH_PROMPT = """You are extracting Shark Tank deal information. Based on the search results, extract ONLY the deal outcome and terms.

Return ONLY valid JSON:
{
  "dealOutcome": "deal" | "no_deal" | "deal_fell_through" | "unknown",
  "askingAmount": number in dollars or null,
  "askingEquity": percentage (e.g., 10 for 10%) or null,
  "dealAmount": number in dollars or null,
  "dealEquity": percentage or null,
  "sharks": [{"name": "Shark Name", "amount": dollars or null, "equity": percent or null}],
  "confidence": "high" | "medium" | "low"
}

IMPORTANT:
- Only extract information you are CONFIDENT about from the search results
- Set confidence to "high" only if the deal outcome is explicitly stated
- Set confidence to "low" if information is ambiguous or conflicting
- If truly unknown, use "unknown" for dealOutcome and "low" for confidence
- Do NOT make up deal terms"""

_NEVER = datetime.min.replace(tzinfo=timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def apply_deal_info(subject: Subject, info: DealInfo, now: datetime) -> Subject:
    """Copy of ``subject`` with the outcome set and non-zero terms filled in."""
    updated = replace(
        subject,
        deal_outcome=info.deal_outcome,
        last_enriched_at=now,
        deal_search_attempts=subject.deal_search_attempts + 1,
    )
    for attr in ("asking_amount", "asking_equity", "deal_amount", "deal_equity"):
        value = getattr(info, attr)
        if value:
            setattr(updated, attr, value)
    return updated


class PendingDealEnricher:
    """Resolves unknown deal outcomes one product at a time."""

    def __init__(
        self,
        searcher: Searcher,
        synthesizer: SynthesisClient,
        resolver: EntityResolver,
        store: EnrichmentStore,
        tracker: Optional[UsageTracker] = None,
        max_content_length: int = 8000,
        synthesis_options: Optional[SynthesisOptions] = None,
        now: Callable[[], datetime] = _utcnow,
    ):
        self._searcher = searcher
        self._synthesizer = synthesizer
        self._resolver = resolver
        self._store = store
        self._tracker = tracker
        self._max_content_length = max_content_length
        self._synthesis_options = synthesis_options or SynthesisOptions(max_tokens=2000)
        self._now = now

    async def select_pending(
        self,
        limit: int = 10,
        min_age_hours: int = 24,
        max_attempts: int = 7,
        force: bool = False,
    ) -> List[Subject]:
        """Unknown-outcome products due for another search, oldest attempt first."""
        subjects = await self._store.list_subjects(deal_outcome="unknown")

        if not force:
            cutoff = self._now() - timedelta(hours=min_age_hours)
            subjects = [
                s for s in subjects
                if (s.last_enriched_at is None or s.last_enriched_at < cutoff)
                and s.deal_search_attempts < max_attempts
            ]

        subjects.sort(key=lambda s: s.last_enriched_at or _NEVER)
        return subjects[:limit]

    async def _record_attempt(self, subject: Subject) -> None:
        try:
            await self._store.upsert_subject(replace(
                subject,
                last_enriched_at=self._now(),
                deal_search_attempts=subject.deal_search_attempts + 1,
            ))
        except Exception as e:
            raise PersistenceFailure(f"Failed to record attempt: {e}") from e

    async def _skip(self, subject: Subject, reason: str) -> SubjectOutcome:
        await self._record_attempt(subject)
        return SubjectOutcome(subject_id=subject.id, name=subject.name, status=SKIPPED, error=reason)

    async def enrich_one(self, subject: Subject, scope: EntityIdMap) -> SubjectOutcome:
        """Look up one product's deal. Never raises."""
        try:
            response = await self._searcher.search_product_details(subject.name, subject.id)
            if not response.results:
                return await self._skip(subject, "No search results")

            content = combine_results(response.results, self._max_content_length)
            result = await self._synthesizer.synthesize(
                DEAL_SEARCH_PROMPT,
                f"Product: {subject.name}\n\nSearch Results:\n{content}",
                DealInfo,
                self._synthesis_options,
            )
            if not result.success or result.data is None:
                return await self._skip(subject, result.error or "Synthesis failed")

            info = result.data
            if info.confidence != "high" or info.deal_outcome == "unknown":
                return await self._skip(subject, f"{info.deal_outcome} (confidence: {info.confidence})")

            updated = apply_deal_info(subject, info, self._now())
            try:
                await self._store.upsert_subject(updated)
            except Exception as e:
                raise PersistenceFailure(f"Failed to update product: {e}") from e

            linked = []
            if info.deal_outcome == "deal" and info.investors:
                linked = await replace_links(self._store, self._resolver, updated, info.investors, scope)

            logger.info("Updated: %s -> %s", subject.name, info.deal_outcome)
            return SubjectOutcome(
                subject_id=subject.id,
                name=subject.name,
                status=UPDATED,
                investors=linked,
            )
        except EnrichmentError as e:
            return SubjectOutcome(
                subject_id=subject.id,
                name=subject.name,
                status=FAILED,
                error=f"{type(e).__name__}: {e}",
            )
        except Exception as e:
            logger.exception("Unexpected failure looking up deal for %s", subject.name)
            return SubjectOutcome(subject_id=subject.id, name=subject.name, status=FAILED, error=str(e))

    async def run(
        self,
        limit: int = 10,
        min_age_hours: int = 24,
        max_attempts: int = 7,
        force: bool = False,
        dry_run: bool = False,
    ) -> EnrichmentSummary:
        """
        Select pending products and look up each deal in turn.

        Args:
            limit: Maximum products this run
            min_age_hours: Minimum hours since a product's last search
            max_attempts: Products searched this many times are left alone
            force: Ignore the age and attempt gates
            dry_run: Report the selection; no searches, LLM calls or writes

        Returns:
            EnrichmentSummary with counts and per-product reasons
        """
        logger.info(
            "Starting deal enrichment: limit=%d min_age_hours=%d max_attempts=%d force=%s",
            limit, min_age_hours, max_attempts, force,
        )
        subjects = await self.select_pending(limit, min_age_hours, max_attempts, force)
        logger.info("Found %d products with unknown deals", len(subjects))

        summary = EnrichmentSummary()
        if dry_run:
            summary.dry_run = True
            summary.planned = [s.name for s in subjects]
            return summary
        if not subjects:
            return summary

        scope = await self._resolver.load_scope()
        for subject in subjects:
            outcome = await self.enrich_one(subject, scope)
            summary.add(outcome)
            if not outcome.success:
                logger.info("%s %s: %s", outcome.status, outcome.name, outcome.error)

        if self._tracker is not None:
            summary.estimated_cost = self._tracker.estimate_cost(self._synthesizer.model)

        logger.info(
            "Summary: updated=%d skipped=%d failed=%d cost=$%.4f",
            summary.updated, summary.skipped, summary.failed, summary.estimated_cost,
        )
        return summary
