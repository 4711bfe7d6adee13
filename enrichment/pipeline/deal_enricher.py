"""
Deal Enricher

Re-derives which investors backed each product and rewrites its deal links.

Per product, strictly in order:
1. Search deal details and current status (cache-first)
2. Compact both result sets into one context
3. Synthesize the investor list (InvestorsOnly schema)
4. Delete the product's links, resolve each investor, insert new links

Products run in fixed-size waves: a wave is launched together and fully
awaited before the next one starts, with an optional fixed delay between
waves. One product's failure never aborts a wave. Writes are not atomic;
a half-written product is fixed by re-running.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..common.errors import EmptyUpstreamResult, EnrichmentError, PersistenceFailure
from ..common.schemas.extraction import InvestorsOnly
from ..common.schemas.records import EntityLink, Subject
from ..common.storage import EnrichmentStore
from ..common.usage_tracker import UsageTracker
from ..search.compactor import combine_results
from ..search.searcher import Searcher
from ..synthesis.entity_resolver import EntityIdMap, EntityResolver
from ..synthesis.synthesizer import SynthesisClient, SynthesisOptions

logger = logging.getLogger("tank.pipeline.deal_enricher")

UPDATED = "updated"
SKIPPED = "skipped"
FAILED = "failed"


INVESTORS_PROMPT = """Extract ONLY the sharks who invested in this Shark Tank product.

Return JSON:
{
  "sharks": [
    {"name": "Full Shark Name", "amount": dollars_or_null, "equity": percent_or_null, "isLead": true_or_false}
  ]
}

IMPORTANT:
- Use the shark's FULL REAL NAME (e.g., "Mark Cuban", "Lori Greiner", "Kevin O'Leary", "Robert Herjavec", "Barbara Corcoran", "Daymond John")
- For guest sharks, use their full name (e.g., "Michael Rubin", "Alex Rodriguez", "Rohan Oza")
- Do NOT use generic names like "Shark 1", "Shark 2", or first names only like "Robert" or "Kevin"
- Include ALL sharks who invested in the deal, not just the lead investor
- If multiple sharks invested together, list each one separately"""


@dataclass
class SubjectOutcome:
    """Discriminated result for one product"""
    subject_id: str
    name: str
    status: str  # "updated" | "skipped" | "failed"
    investors: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == UPDATED


@dataclass
class EnrichmentSummary:
    """Batch totals plus per-product failure reasons"""
    processed: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    outcomes: List[SubjectOutcome] = field(default_factory=list)
    estimated_cost: float = 0.0
    dry_run: bool = False
    planned: List[str] = field(default_factory=list)

    def add(self, outcome: SubjectOutcome) -> None:
        self.processed += 1
        self.outcomes.append(outcome)
        if outcome.status == UPDATED:
            self.updated += 1
        elif outcome.status == SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1

    @property
    def reasons(self) -> Dict[str, str]:
        """Product name → reason, for skipped and failed products"""
        return {o.name: o.error or "" for o in self.outcomes if o.status != UPDATED}


def waves(items: List, size: int) -> List[List]:
    """Split items into consecutive batches of ``size``"""
    if size < 1:
        raise ValueError("wave size must be >= 1")
    return [items[i:i + size] for i in range(0, len(items), size)]


async def replace_links(
    store: EnrichmentStore,
    resolver: EntityResolver,
    subject: Subject,
    investors,
    scope: EntityIdMap,
) -> List[str]:
    """Delete-then-insert a product's links. Returns linked investor names."""
    try:
        await store.delete_links(subject.id)
    except Exception as e:
        raise PersistenceFailure(f"Failed to delete links: {e}") from e

    linked = []
    for investor in investors:
        try:
            entity_id = await resolver.resolve(investor.name, scope)
        except ValueError as e:
            logger.warning("Skipping investor for %s: %s", subject.name, e)
            continue

        link = EntityLink(
            subject_id=subject.id,
            entity_id=entity_id,
            amount=investor.amount,
            equity_percent=investor.equity,
            is_lead=bool(investor.is_lead),
        )
        try:
            await store.insert_link(link)
        except Exception as e:
            raise PersistenceFailure(f"Failed to link {investor.name}: {e}") from e
        linked.append(investor.name)
    return linked


class DealEnricher:
    """
    Investor enrichment for products with deals.

    Shares one EntityIdMap across every worker in a run.
    """

    def __init__(
        self,
        searcher: Searcher,
        synthesizer: SynthesisClient,
        resolver: EntityResolver,
        store: EnrichmentStore,
        tracker: Optional[UsageTracker] = None,
        section_max_length: int = 6000,
        synthesis_options: Optional[SynthesisOptions] = None,
    ):
        self._searcher = searcher
        self._synthesizer = synthesizer
        self._resolver = resolver
        self._store = store
        self._tracker = tracker
        self._section_max_length = section_max_length
        self._synthesis_options = synthesis_options or SynthesisOptions()

    async def _build_context(self, subject: Subject) -> str:
        details = await self._searcher.search_product_details(subject.name, subject.id)
        status = await self._searcher.search_product_status(subject.name, subject.id)

        if not details.results and not status.results:
            raise EmptyUpstreamResult("insufficient data: no search results")

        return "\n".join([
            "=== DEAL DETAILS ===",
            combine_results(details.results, self._section_max_length),
            "",
            "=== CURRENT STATUS ===",
            combine_results(status.results, self._section_max_length),
        ])

    async def enrich_one(self, subject: Subject, scope: EntityIdMap) -> SubjectOutcome:
        """Enrich a single product. Never raises."""
        try:
            context = await self._build_context(subject)

            result = await self._synthesizer.synthesize(
                INVESTORS_PROMPT,
                f"Product: {subject.name}\n\nSearch Results:\n{context}",
                InvestorsOnly,
                self._synthesis_options,
            )
            if not result.success or result.data is None:
                return SubjectOutcome(
                    subject_id=subject.id,
                    name=subject.name,
                    status=FAILED,
                    error=result.error or "LLM synthesis failed",
                )

            investors = result.data.investors
            if not investors:
                return SubjectOutcome(
                    subject_id=subject.id,
                    name=subject.name,
                    status=SKIPPED,
                    error="no investors found",
                )

            linked = await replace_links(self._store, self._resolver, subject, investors, scope)
            return SubjectOutcome(
                subject_id=subject.id,
                name=subject.name,
                status=UPDATED,
                investors=linked,
            )
        except EmptyUpstreamResult as e:
            return SubjectOutcome(subject_id=subject.id, name=subject.name, status=SKIPPED, error=str(e))
        except EnrichmentError as e:
            return SubjectOutcome(
                subject_id=subject.id,
                name=subject.name,
                status=FAILED,
                error=f"{type(e).__name__}: {e}",
            )
        except Exception as e:
            logger.exception("Unexpected failure enriching %s", subject.name)
            return SubjectOutcome(subject_id=subject.id, name=subject.name, status=FAILED, error=str(e))

    async def run(
        self,
        subjects: List[Subject],
        concurrency: int = 50,
        wave_delay: float = 0.0,
        scope: Optional[EntityIdMap] = None,
        dry_run: bool = False,
    ) -> EnrichmentSummary:
        """
        Enrich products in waves.

        Args:
            subjects: Products to enrich
            concurrency: Wave size
            wave_delay: Seconds to sleep between waves (simple throttle)
            scope: Run-scoped id map (loaded from the store when omitted)
            dry_run: List what would be processed; no searches, LLM calls or writes

        Returns:
            EnrichmentSummary with counts and per-product reasons
        """
        summary = EnrichmentSummary()
        if not subjects:
            return summary

        if dry_run:
            summary.dry_run = True
            summary.planned = [s.name for s in subjects]
            logger.info("Dry run: would process %d products", len(subjects))
            return summary

        if scope is None:
            scope = await self._resolver.load_scope()

        batches = waves(subjects, concurrency)
        for index, batch in enumerate(batches):
            outcomes = await asyncio.gather(*(self.enrich_one(s, scope) for s in batch))

            for outcome in outcomes:
                summary.add(outcome)
                if outcome.success:
                    logger.info("%s | %s", outcome.name, ", ".join(outcome.investors))
                else:
                    logger.info("%s %s: %s", outcome.status, outcome.name, outcome.error)

            logger.info("[%d/%d] wave complete", summary.processed, len(subjects))

            if wave_delay > 0 and index < len(batches) - 1:
                await asyncio.sleep(wave_delay)

        if self._tracker is not None:
            summary.estimated_cost = self._tracker.estimate_cost(self._synthesizer.model)

        logger.info(
            "Summary: updated=%d skipped=%d failed=%d cost=$%.4f",
            summary.updated, summary.skipped, summary.failed, summary.estimated_cost,
        )
        return summary
