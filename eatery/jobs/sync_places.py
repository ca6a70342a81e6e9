"""CLI job to materialize Foursquare places as local restaurants."""

import argparse
import logging
import time
from typing import Dict, Iterable, List, Optional

from eatery.core.config import get_settings
from eatery.core.db import PostgresStore, init_pool
from eatery.services.restaurants import resolve_restaurant_id
from eatery.vendors import foursquare

logger = logging.getLogger(__name__)


def sync_places(store, fsq_ids: Iterable[str], place_lookup=None) -> Dict[str, str]:
    """Resolve each Foursquare id to a local id, skipping the ones that fail."""
    fsq_ids = list(fsq_ids)
    resolved: Dict[str, str] = {}
    for fsq_id in fsq_ids:
        try:
            resolved[fsq_id] = resolve_restaurant_id(store, fsq_id, place_lookup)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to materialize %s: %s", fsq_id, exc)
            continue
        time.sleep(0.15)
    logger.info("Materialized %d of %d places", len(resolved), len(fsq_ids))
    return resolved


def search_place_ids(query: Optional[str], near: Optional[str], limit: Optional[int]) -> List[str]:
    settings = get_settings()
    places = foursquare.search_places(settings.foursquare_api_key, query=query, near=near, limit=limit)
    return [place["fsq_id"] for place in places if place.get("fsq_id")]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Materialize Foursquare places into the restaurants table")
    parser.add_argument("--fsq-id", dest="fsq_ids", action="append", default=[], help="Foursquare place id")
    parser.add_argument("--query", dest="query", help="Search query, e.g. 'sushi'")
    parser.add_argument("--near", dest="near", help="Named location to search near")
    parser.add_argument("--limit", dest="limit", type=int, help="Maximum number of search results")
    return parser


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args()

    fsq_ids = list(args.fsq_ids)
    if args.query or args.near:
        fsq_ids.extend(search_place_ids(args.query, args.near, args.limit))
    if not fsq_ids:
        parser.error("provide --fsq-id or a --query/--near search")

    init_pool()
    resolved = sync_places(PostgresStore(), fsq_ids)
    for fsq_id, restaurant_id in resolved.items():
        print(f"{fsq_id}\t{restaurant_id}")


if __name__ == "__main__":
    main()
