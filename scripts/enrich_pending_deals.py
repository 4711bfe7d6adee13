#!/usr/bin/env python3
"""
Daily Pending Deal Search

Searches for deal information on products whose deal outcome is still
unknown. Only high-confidence answers are written back.

Usage:
    python scripts/enrich_pending_deals.py [--limit 10] [--min-age 24] [--max-attempts 7] [--dry-run] [--force]
"""

import sys
import asyncio
import logging
import argparse
from pathlib import Path

from dotenv import load_dotenv

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


async def run(args) -> int:
    from enrichment.common.config import load_config
    from enrichment.pipeline.runtime import build_components

    config = load_config()
    if args.store:
        config.storage.backend = "json"
        config.storage.path = args.store

    limit = args.limit if args.limit is not None else config.pipeline.pending_limit
    min_age = args.min_age if args.min_age is not None else config.pipeline.pending_min_age_hours
    max_attempts = args.max_attempts if args.max_attempts is not None else config.pipeline.pending_max_attempts

    print("=" * 60)
    print("[Pending] Daily deal info search")
    print(f"[Pending] Limit: {limit}")
    print(f"[Pending] Min age: {min_age} hours")
    print(f"[Pending] Max attempts: {max_attempts}")
    print(f"[Pending] Dry run: {args.dry_run}")
    print(f"[Pending] Force: {args.force}")
    print("=" * 60)

    components = build_components(config)
    try:
        summary = await components.pending_deal_enricher().run(
            limit=limit,
            min_age_hours=min_age,
            max_attempts=max_attempts,
            force=args.force,
            dry_run=args.dry_run,
        )
    finally:
        await components.close()

    if summary.dry_run:
        if not summary.planned:
            print("[Pending] Nothing to do")
            return 0
        print("[Pending] DRY RUN - would search:")
        for name in summary.planned:
            print(f"  - {name}")
        return 0

    if not summary.processed:
        print("[Pending] Nothing to do")
        return 0

    print("=" * 60)
    print("[Pending] Summary:")
    print(f"  Updated: {summary.updated}")
    print(f"  Skipped: {summary.skipped}")
    print(f"  Failed:  {summary.failed}")
    for name, reason in summary.reasons.items():
        print(f"    {name}: {reason}")
    print(f"  Cost: ${summary.estimated_cost:.4f}")
    print("=" * 60)
    return 1 if summary.failed and not summary.updated else 0


def main():
    parser = argparse.ArgumentParser(description="Search deal info for products with unknown deal outcomes")
    parser.add_argument("--limit", type=int, default=None, help="Maximum products to process (default from config)")
    parser.add_argument("--min-age", type=int, default=None, help="Only products last searched at least this many hours ago")
    parser.add_argument("--max-attempts", type=int, default=None, help="Skip products already searched this many times")
    parser.add_argument("--force", action="store_true", help="Ignore age and attempt limits")
    parser.add_argument("--dry-run", action="store_true", help="List products without searching, calling the LLM or writing")
    parser.add_argument("--store", type=str, default=None, help="Path to a JSON store file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    load_dotenv(".env.local")
    load_dotenv()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
