"""
Entity Resolver

Maps free-text investor names from LLM output to canonical investor IDs,
creating new investors on demand.

Resolution order (first match wins):
1. Normalize (case-fold, trim)
2. Known alias → canonical slug → run-scoped id map
3. No alias: normalized name → id map
4. Derived slug → id map
5. Create an auto-created investor, register it under name and slug

Within one run every normalized name resolves to one ID: the run-scoped
EntityIdMap is the source of truth. Creation is serialized per resolver
instance, so workers sharing a resolver never create the same investor
twice. Separate processes each holding their own map can still race;
``get_or_create_entity`` on a slug-unique store narrows that window.
"""

import re
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..common.schemas.records import CanonicalEntity
from ..common.storage import EnrichmentStore
from .alias_registry import AliasRegistry, normalize_name

logger = logging.getLogger("tank.synthesis.entity_resolver")

_APOSTROPHES = re.compile(r"['’]")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """``"Kevin O'Leary"`` → ``"kevin-oleary"``"""
    slug = _APOSTROPHES.sub("", (name or "").casefold())
    slug = _NON_ALNUM.sub("-", slug)
    return slug.strip("-")


@dataclass
class Resolution:
    """How a name was resolved"""
    entity_id: str
    slug: str
    source: str  # "alias", "name", "slug", "created", "store"
    created: bool = False

    @property
    def via_known_alias(self) -> bool:
        return self.source == "alias"


class EntityIdMap:
    """
    Run-scoped lookup of slug / normalized name → entity ID.

    Shared by every worker in a run; only ever grows.
    """

    def __init__(self):
        self._ids: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, key: str) -> bool:
        return key in self._ids

    @property
    def entity_count(self) -> int:
        return len(set(self._ids.values()))

    def get(self, key: str) -> Optional[str]:
        return self._ids.get(key)

    def register(self, key: str, entity_id: str) -> None:
        if key:
            self._ids[key] = entity_id

    @classmethod
    def from_entities(cls, entities: List[CanonicalEntity]) -> "EntityIdMap":
        id_map = cls()
        for entity in entities:
            id_map.register(entity.slug, entity.id)
            id_map.register(normalize_name(entity.name), entity.id)
            for alias in entity.aliases:
                id_map.register(normalize_name(alias), entity.id)
        return id_map


class EntityResolver:
    """Create-or-get resolution of investor names."""

    def __init__(self, store: EnrichmentStore, aliases: Optional[AliasRegistry] = None):
        """
        Args:
            store: Persistence collaborator for canonical investors
            aliases: Known alias table (empty when omitted)
        """
        self._store = store
        self._aliases = aliases or AliasRegistry()
        self._create_lock = asyncio.Lock()

    async def load_scope(self) -> EntityIdMap:
        """Build a run-scoped id map from every stored investor."""
        entities = await self._store.list_entities()
        scope = EntityIdMap.from_entities(entities)
        logger.info("Loaded %d investors into run scope", scope.entity_count)
        return scope

    def lookup(self, name: str, scope: EntityIdMap) -> Optional[Resolution]:
        """Resolve without creating. None when the name is unknown to this run."""
        normalized = normalize_name(name)
        alias = self._aliases.lookup(normalized)

        if alias is not None:
            entity_id = scope.get(alias.slug)
            if entity_id:
                return Resolution(entity_id=entity_id, slug=alias.slug, source="alias")
        else:
            entity_id = scope.get(normalized)
            if entity_id:
                return Resolution(entity_id=entity_id, slug=slugify(name), source="name")

        derived = slugify(name)
        entity_id = scope.get(derived)
        if entity_id:
            return Resolution(entity_id=entity_id, slug=derived, source="slug")

        return None

    async def resolve_detailed(self, name: str, scope: EntityIdMap) -> Resolution:
        """
        Resolve a name, creating the investor if this run has never seen it.

        Raises:
            ValueError: name has no alphanumeric characters
            PersistenceFailure: the store could not create the investor
        """
        resolution = self.lookup(name, scope)
        if resolution:
            return resolution

        async with self._create_lock:
            # Another worker may have created it while we waited
            resolution = self.lookup(name, scope)
            if resolution:
                return resolution

            normalized = normalize_name(name)
            alias = self._aliases.lookup(normalized)
            if alias is not None:
                # Known investor missing from the store: create under its canonical slug and name
                slug = alias.slug
                display_name = self._aliases.canonical_name(slug) or name.strip()
                metadata = {"resolution": "alias", "alias_kind": alias.kind, "source_name": name}
            else:
                slug = slugify(name)
                display_name = name.strip()
                metadata = {"resolution": "auto_slug", "source_name": name}

            if not slug:
                raise ValueError(f"Cannot derive a slug from investor name {name!r}")

            entity, created = await self._store.get_or_create_entity(
                name=display_name,
                slug=slug,
                is_auto_created=True,
                metadata=metadata,
            )
            scope.register(normalized, entity.id)
            scope.register(slug, entity.id)

            if created:
                logger.info("Created investor %r (%s)", entity.name, slug)
                return Resolution(entity_id=entity.id, slug=slug, source="created", created=True)

            logger.info("Investor %s existed in store but not in run scope", slug)
            return Resolution(entity_id=entity.id, slug=slug, source="store")

    async def resolve(self, name: str, scope: EntityIdMap) -> str:
        """Entity ID for ``name`` (create-or-get)."""
        resolution = await self.resolve_detailed(name, scope)
        return resolution.entity_id
