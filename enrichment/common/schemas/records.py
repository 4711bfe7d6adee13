"""
Enrichment Records

Plain records passed between the cache, the synthesis client, the resolver
and the persistence collaborator. LLM output schemas live in extraction.py.
"""

from datetime import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# ============================================================================
# Token usage
# ============================================================================

@dataclass
class TokenUsage:
    """Token counts reported by the generation provider"""
    prompt: int = 0
    completion: int = 0
    total: int = 0

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            prompt=self.prompt + other.prompt,
            completion=self.completion + other.completion,
            total=self.total + other.total,
        )


# ============================================================================
# Search cache
# ============================================================================

@dataclass
class SearchHit:
    """A single ranked document from the search provider"""
    title: str
    url: str
    content: str
    score: Optional[float] = None

    @classmethod
    def from_provider(cls, raw: Dict[str, Any]) -> "SearchHit":
        score = raw.get("score")
        return cls(
            title=str(raw.get("title") or ""),
            url=str(raw.get("url") or ""),
            content=str(raw.get("content") or ""),
            score=float(score) if score is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "url": self.url, "content": self.content, "score": self.score}


@dataclass
class CachedSearchResult:
    """One stored fetch of a search query.

    Several rows may share ``query_hash`` (re-fetches); readers pick the most
    recently fetched row that has not expired.
    """
    entity_type: str
    query: str
    query_hash: str
    results: List[SearchHit]
    fetched_at: datetime
    expires_at: Optional[datetime] = None
    entity_id: Optional[str] = None
    entity_name: Optional[str] = None
    source: str = "tavily"

    @property
    def result_count(self) -> int:
        return len(self.results)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "entity_name": self.entity_name,
            "query": self.query,
            "query_hash": self.query_hash,
            "results": [r.to_dict() for r in self.results],
            "result_count": self.result_count,
            "source": self.source,
            "fetched_at": self.fetched_at.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CachedSearchResult":
        expires_at = data.get("expires_at")
        return cls(
            entity_type=data["entity_type"],
            entity_id=data.get("entity_id"),
            entity_name=data.get("entity_name"),
            query=data["query"],
            query_hash=data["query_hash"],
            results=[SearchHit.from_provider(r) for r in data.get("results", [])],
            source=data.get("source", "tavily"),
            fetched_at=datetime.fromisoformat(data["fetched_at"]),
            expires_at=datetime.fromisoformat(expires_at) if expires_at else None,
        )


# ============================================================================
# Extraction
# ============================================================================

@dataclass
class ExtractionOutcome:
    """Result of one synthesis attempt. Never persisted."""
    raw_text: str = ""
    extracted_json: Optional[str] = None
    validated_data: Any = None
    usage: TokenUsage = field(default_factory=TokenUsage)
    success: bool = False
    error: Optional[str] = None


# ============================================================================
# Canonical entities and links
# ============================================================================

@dataclass
class CanonicalEntity:
    """The single authoritative record for a real-world investor"""
    id: str
    name: str
    slug: str
    is_auto_created: bool = False
    aliases: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "is_auto_created": self.is_auto_created,
            "aliases": list(self.aliases),
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CanonicalEntity":
        return cls(
            id=data["id"],
            name=data["name"],
            slug=data["slug"],
            is_auto_created=data.get("is_auto_created", False),
            aliases=data.get("aliases", []),
            metadata=data.get("metadata", {}),
        )


@dataclass
class EntityLink:
    """Product ↔ investor deal row, replaced wholesale per enrichment run"""
    subject_id: str
    entity_id: str
    amount: Optional[float] = None
    equity_percent: Optional[float] = None
    is_lead: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subject_id": self.subject_id,
            "entity_id": self.entity_id,
            "amount": self.amount,
            "equity_percent": self.equity_percent,
            "is_lead": self.is_lead,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EntityLink":
        return cls(
            subject_id=data["subject_id"],
            entity_id=data["entity_id"],
            amount=data.get("amount"),
            equity_percent=data.get("equity_percent"),
            is_lead=data.get("is_lead", False),
        )


@dataclass
class Subject:
    """A product to enrich, with its deal terms and enrichment bookkeeping"""
    id: str
    name: str
    deal_outcome: str = "unknown"
    asking_amount: Optional[float] = None
    asking_equity: Optional[float] = None
    deal_amount: Optional[float] = None
    deal_equity: Optional[float] = None
    last_enriched_at: Optional[datetime] = None
    deal_search_attempts: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "deal_outcome": self.deal_outcome,
            "asking_amount": self.asking_amount,
            "asking_equity": self.asking_equity,
            "deal_amount": self.deal_amount,
            "deal_equity": self.deal_equity,
            "last_enriched_at": self.last_enriched_at.isoformat() if self.last_enriched_at else None,
            "deal_search_attempts": self.deal_search_attempts,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Subject":
        last_enriched_at = data.get("last_enriched_at")
        return cls(
            id=data["id"],
            name=data["name"],
            deal_outcome=data.get("deal_outcome", "unknown"),
            asking_amount=data.get("asking_amount"),
            asking_equity=data.get("asking_equity"),
            deal_amount=data.get("deal_amount"),
            deal_equity=data.get("deal_equity"),
            last_enriched_at=datetime.fromisoformat(last_enriched_at) if last_enriched_at else None,
            deal_search_attempts=data.get("deal_search_attempts") or 0,
        )
