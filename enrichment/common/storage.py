"""
Enrichment Store

Persistence collaborator for the search cache, canonical investors, deal
links and the products being enriched. Schema ownership lives elsewhere;
this module only defines the operations the pipeline needs.

Backends:
- InMemoryStore: tests and dry runs
- JsonFileStore: single JSON file (default ~/.tank-enrichment/store.json)
"""

import json
import uuid
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .errors import PersistenceFailure
from .schemas.records import CachedSearchResult, CanonicalEntity, EntityLink, Subject

logger = logging.getLogger("tank.common.storage")


class EnrichmentStore(ABC):
    """
    Abstract persistence collaborator.

    Each backend must implement cache rows, entities, links and subjects.
    Multi-step writes are not transactional; callers are expected to re-run.
    """

    @property
    def supports_upsert(self) -> bool:
        """Whether write_cache_row replaces rows sharing a query_hash"""
        return False

    # -- search cache -------------------------------------------------------

    @abstractmethod
    async def fetch_cache_rows(self, query_hash: str) -> List[CachedSearchResult]:
        """
        All stored rows for a query hash, in any order.

        Raises:
            CacheUnavailable: the backing store cannot be read
        """

    @abstractmethod
    async def write_cache_row(self, row: CachedSearchResult) -> None:
        """Insert a row (or upsert on query_hash when supported)"""

    # -- canonical entities -------------------------------------------------

    @abstractmethod
    async def list_entities(self) -> List[CanonicalEntity]:
        """Every canonical investor"""

    @abstractmethod
    async def get_or_create_entity(
        self,
        name: str,
        slug: str,
        is_auto_created: bool = False,
        metadata: Optional[Dict] = None,
    ) -> Tuple[CanonicalEntity, bool]:
        """Return the entity with ``slug``, creating it if absent. Second item is True when created."""

    # -- links --------------------------------------------------------------

    @abstractmethod
    async def delete_links(self, subject_id: str) -> None:
        """Remove every link for a subject"""

    @abstractmethod
    async def insert_link(self, link: EntityLink) -> None:
        """Insert one link"""

    @abstractmethod
    async def list_links(self, subject_id: str) -> List[EntityLink]:
        """Links currently stored for a subject"""

    # -- subjects -----------------------------------------------------------

    @abstractmethod
    async def list_subjects(self, deal_outcome: Optional[str] = None) -> List[Subject]:
        """Products, optionally filtered by deal outcome"""

    @abstractmethod
    async def upsert_subject(self, subject: Subject) -> None:
        """Insert or replace a product by id"""


class InMemoryStore(EnrichmentStore):
    """Dict-backed store. ``upsert=False`` keeps every cache row (append-only)."""

    def __init__(self, upsert: bool = True):
        self._upsert = upsert
        self._cache_rows: List[CachedSearchResult] = []
        self._entities: Dict[str, CanonicalEntity] = {}
        self._links: List[EntityLink] = []
        self._subjects: Dict[str, Subject] = {}

    @property
    def supports_upsert(self) -> bool:
        return self._upsert

    async def fetch_cache_rows(self, query_hash: str) -> List[CachedSearchResult]:
        return [r for r in self._cache_rows if r.query_hash == query_hash]

    async def write_cache_row(self, row: CachedSearchResult) -> None:
        if self._upsert:
            self._cache_rows = [r for r in self._cache_rows if r.query_hash != row.query_hash]
        self._cache_rows.append(row)
        self._persist()

    async def list_entities(self) -> List[CanonicalEntity]:
        return list(self._entities.values())

    async def get_or_create_entity(
        self,
        name: str,
        slug: str,
        is_auto_created: bool = False,
        metadata: Optional[Dict] = None,
    ) -> Tuple[CanonicalEntity, bool]:
        for entity in self._entities.values():
            if entity.slug == slug:
                return entity, False

        entity = CanonicalEntity(
            id=str(uuid.uuid4()),
            name=name,
            slug=slug,
            is_auto_created=is_auto_created,
            metadata=dict(metadata or {}),
        )
        self._entities[entity.id] = entity
        self._persist()
        return entity, True

    async def delete_links(self, subject_id: str) -> None:
        self._links = [l for l in self._links if l.subject_id != subject_id]
        self._persist()

    async def insert_link(self, link: EntityLink) -> None:
        self._links.append(link)
        self._persist()

    async def list_links(self, subject_id: str) -> List[EntityLink]:
        return [l for l in self._links if l.subject_id == subject_id]

    async def list_subjects(self, deal_outcome: Optional[str] = None) -> List[Subject]:
        subjects = list(self._subjects.values())
        if deal_outcome:
            subjects = [s for s in subjects if s.deal_outcome == deal_outcome]
        return subjects

    async def upsert_subject(self, subject: Subject) -> None:
        self._subjects[subject.id] = subject
        self._persist()

    def _persist(self) -> None:
        """Hook for durable subclasses"""


class JsonFileStore(InMemoryStore):
    """
    Store persisted to a single JSON file.

    The whole file is rewritten after each write. A missing or corrupt file
    starts empty.
    """

    def __init__(self, path: Path, upsert: bool = True):
        super().__init__(upsert=upsert)
        self._path = Path(path).expanduser()
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        """Load state from disk"""
        if not self._path.exists():
            return

        try:
            with open(self._path) as f:
                data = json.load(f)

            self._cache_rows = [CachedSearchResult.from_dict(r) for r in data.get("search_cache", [])]
            self._entities = {
                e["id"]: CanonicalEntity.from_dict(e) for e in data.get("investors", [])
            }
            self._links = [EntityLink.from_dict(l) for l in data.get("product_investors", [])]
            self._subjects = {
                s["id"]: Subject.from_dict(s) for s in data.get("products", [])
            }
        except (json.JSONDecodeError, IOError, KeyError, ValueError) as e:
            logger.warning("Failed to load store %s: %s", self._path, e)
            self._cache_rows = []
            self._entities = {}
            self._links = []
            self._subjects = {}

    def _persist(self) -> None:
        """Save state to disk"""
        data = {
            "search_cache": [r.to_dict() for r in self._cache_rows],
            "investors": [e.to_dict() for e in self._entities.values()],
            "product_investors": [l.to_dict() for l in self._links],
            "products": [s.to_dict() for s in self._subjects.values()],
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            with open(tmp_path, "w") as f:
                json.dump(data, f, indent=2, default=str)
            tmp_path.replace(self._path)
        except OSError as e:
            raise PersistenceFailure(f"Failed to write store {self._path}: {e}") from e


def create_store(storage_config) -> EnrichmentStore:
    """Build the backend named in a StorageConfig section"""
    if storage_config.backend == "memory":
        return InMemoryStore()
    if storage_config.backend == "json":
        return JsonFileStore(Path(storage_config.path))
    raise ValueError(f"Unsupported storage backend: {storage_config.backend}")
