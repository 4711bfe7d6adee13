"""
Result Compactor

Packs ranked search documents into a bounded context string for the LLM.
"""

from typing import Iterable

from ..common.schemas.records import SearchHit

ENTRY_SEPARATOR = "\n\n"


def format_entry(hit: SearchHit) -> str:
    return f"[{hit.title}]\n{hit.content}"


def combine_results(results: Iterable[SearchHit], max_length: int = 12000) -> str:
    """
    Greedily append entries in rank order until the next one would overflow.

    Stops at the first entry that does not fit; later, smaller entries are
    not considered. The returned string never exceeds ``max_length``; an
    oversized first entry yields "" rather than a truncated entry.
    """
    entries = []
    current_length = 0

    for hit in results:
        entry = format_entry(hit)
        added = len(entry) + (len(ENTRY_SEPARATOR) if entries else 0)
        if current_length + added > max_length:
            break
        entries.append(entry)
        current_length += added

    return ENTRY_SEPARATOR.join(entries)
