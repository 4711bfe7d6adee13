#!/usr/bin/env python3
"""
Season Product Discovery

Discovers the products of one or more seasons and optionally saves them as
products in the store.

Usage:
    python scripts/discover_products.py [--season 3 | --limit 5] [--save] [--store PATH]
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
    from enrichment.common.schemas.records import Subject
    from enrichment.pipeline.product_discovery import ALL_SEASONS
    from enrichment.pipeline.runtime import build_components
    from enrichment.synthesis.entity_resolver import slugify

    config = load_config()
    if args.store:
        config.storage.backend = "json"
        config.storage.path = args.store

    if args.season:
        seasons = [args.season]
    elif args.limit:
        seasons = list(range(1, args.limit + 1))
    else:
        seasons = list(ALL_SEASONS)

    components = build_components(config)
    try:
        report = await components.product_discovery().discover_all_seasons(seasons, delay=args.delay)

        if args.save:
            # Product ids are derived from names so re-runs replace rather than duplicate
            saved = 0
            for result in report.results:
                for product in result.products:
                    product_id = slugify(product.name)
                    if not product_id:
                        continue
                    fields = product.fields
                    await components.store.upsert_subject(Subject(
                        id=product_id,
                        name=product.name,
                        deal_outcome=fields.deal_outcome or "unknown",
                        asking_amount=fields.asking_amount,
                        asking_equity=fields.asking_equity,
                        deal_amount=fields.deal_amount,
                        deal_equity=fields.deal_equity,
                    ))
                    saved += 1
            print(f"[Discovery] Saved {saved} products")
    finally:
        await components.close()

    print("=" * 60)
    for result in report.results:
        status = "ok" if result.success else f"failed ({result.error})"
        cache = " [cache]" if result.search_cache_hit else ""
        print(f"  Season {result.season}: {len(result.products)} products, {status}{cache}")
    print(f"[Discovery] Total products: {report.total_products}")
    print(f"[Discovery] Total tokens: {report.total_tokens}")
    print(f"[Discovery] Estimated cost: ${report.estimated_cost:.4f}")
    print("=" * 60)
    return 0


def main():
    parser = argparse.ArgumentParser(description="Discover products per season")
    parser.add_argument("--season", type=int, default=None, help="Discover a single season")
    parser.add_argument("--limit", type=int, default=None, help="Discover seasons 1..N")
    parser.add_argument("--delay", type=float, default=1.0, help="Seconds between seasons")
    parser.add_argument("--save", action="store_true", help="Upsert discovered products into the store")
    parser.add_argument("--store", type=str, default=None, help="Path to a JSON store file")
    args = parser.parse_args()

    load_dotenv(".env.local")
    load_dotenv()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
