"""
Alias Registry

Parses known investor spellings from data/investor-aliases.md.
Each row maps a normalized alias to a canonical slug and records what kind
of alias it is, so resolver output can tell a known alias from a derived
slug.
"""

import re
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger("tank.synthesis.alias_registry")

ALIAS_KINDS = ("canonical", "variant", "nickname", "honorific")

# | alias | slug | kind |
_ROW_PATTERN = re.compile(r"^\|\s*(?P<alias>[^|]+?)\s*\|\s*(?P<slug>[a-z0-9-]+)\s*\|\s*(?:(?P<kind>[a-z]*)\s*\|)?\s*$")


def normalize_name(name: str) -> str:
    """Case-fold and trim a free-text name"""
    return (name or "").strip().casefold()


@dataclass(frozen=True)
class AliasEntry:
    """A known spelling of an investor"""
    alias: str
    slug: str
    kind: str = "variant"


class AliasRegistry:
    """Lookup table of known aliases → canonical slug."""

    def __init__(self, entries: Optional[List[AliasEntry]] = None):
        self._entries: Dict[str, AliasEntry] = {}
        self._display_names: Dict[str, str] = {}
        for entry in entries or []:
            self.add(entry)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: str) -> bool:
        return normalize_name(name) in self._entries

    def add(self, entry: AliasEntry) -> None:
        key = normalize_name(entry.alias)
        existing = self._entries.get(key)
        if existing and existing.slug != entry.slug:
            logger.warning(
                "Alias %r remapped from %s to %s", entry.alias, existing.slug, entry.slug
            )
        self._entries[key] = AliasEntry(alias=key, slug=entry.slug, kind=entry.kind)
        if entry.kind == "canonical":
            self._display_names[entry.slug] = entry.alias.strip()

    def lookup(self, name: str) -> Optional[AliasEntry]:
        return self._entries.get(normalize_name(name))

    def canonical_name(self, slug: str) -> Optional[str]:
        """Display spelling of the ``canonical`` row for a slug, if the table has one"""
        return self._display_names.get(slug)

    def slugs(self) -> List[str]:
        """Unique canonical slugs in the registry"""
        return sorted({e.slug for e in self._entries.values()})

    def aliases_for(self, slug: str) -> List[str]:
        return sorted(e.alias for e in self._entries.values() if e.slug == slug)

    @classmethod
    def from_mapping(cls, mapping: Dict[str, str], kind: str = "variant") -> "AliasRegistry":
        return cls([AliasEntry(alias=a, slug=s, kind=kind) for a, s in mapping.items()])

    @classmethod
    def from_markdown(cls, text: str) -> "AliasRegistry":
        """
        Parse a markdown table of ``| alias | slug | kind |`` rows.

        Header and separator rows are skipped; unknown kinds fall back to
        "variant".
        """
        entries = []
        for line in text.splitlines():
            match = _ROW_PATTERN.match(line.strip())
            if not match:
                continue
            alias = match.group("alias")
            if alias.lower() == "alias" or set(alias) <= {"-", ":", " "}:
                continue
            kind = match.group("kind") or "variant"
            if kind not in ALIAS_KINDS:
                kind = "variant"
            entries.append(AliasEntry(alias=alias, slug=match.group("slug"), kind=kind))
        return cls(entries)

    @classmethod
    def load(cls, path: Path) -> "AliasRegistry":
        """Load from a markdown file; a missing file gives an empty registry."""
        path = Path(path)
        if not path.exists():
            logger.warning("Alias table not found: %s", path)
            return cls()

        registry = cls.from_markdown(path.read_text(encoding="utf-8"))
        logger.info("Loaded %d aliases for %d investors", len(registry), len(registry.slugs()))
        return registry
