#!/usr/bin/env python3
"""
Re-enrich Deal Products

Re-derives the investors for every product with a closed deal and rewrites
its investor links. Safe to re-run: each product's links are deleted and
re-inserted from fresh synthesis.

Usage:
    python scripts/re_enrich_deals.py [--dry-run] [--concurrency 50] [--store PATH]
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
    concurrency = args.concurrency or config.pipeline.concurrency

    print("=" * 60)
    print("[Re-enrich] Deal products (investors only)")
    print(f"[Re-enrich] Dry run: {args.dry_run}")
    print(f"[Re-enrich] Concurrency: {concurrency}")
    print("=" * 60)

    components = build_components(config)
    try:
        subjects = await components.store.list_subjects(deal_outcome="deal")
        print(f"[Re-enrich] Found {len(subjects)} deal products to re-enrich")
        if not subjects:
            print("[Re-enrich] Nothing to do")
            return 0

        enricher = components.deal_enricher()
        summary = await enricher.run(
            subjects,
            concurrency=concurrency,
            wave_delay=config.pipeline.wave_delay,
            dry_run=args.dry_run,
        )
    finally:
        await components.close()

    if summary.dry_run:
        print("[Re-enrich] DRY RUN - would process:")
        for name in summary.planned[:10]:
            print(f"  - {name}")
        if len(summary.planned) > 10:
            print(f"  ... and {len(summary.planned) - 10} more")
        return 0

    print("=" * 60)
    print("[Re-enrich] Summary:")
    print(f"  Updated: {summary.updated}")
    print(f"  Skipped: {summary.skipped}")
    print(f"  Failed:  {summary.failed}")
    for name, reason in summary.reasons.items():
        print(f"    {name}: {reason}")
    print(f"  Cost: ${summary.estimated_cost:.4f}")
    print("=" * 60)
    return 1 if summary.failed and not summary.updated else 0


def main():
    parser = argparse.ArgumentParser(description="Re-enrich investors for products with deals")
    parser.add_argument("--dry-run", action="store_true", help="List products without searching, calling the LLM or writing")
    parser.add_argument("--concurrency", type=int, default=None, help="Products per wave (default from config)")
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
