"""CLI job that recomputes aggregate ratings to repair drift."""

import argparse
import logging
from typing import Iterable, Optional

from eatery.core.db import PostgresStore, init_pool
from eatery.services.ratings import recompute_rating

logger = logging.getLogger(__name__)


def recompute_ratings(store, restaurant_ids: Optional[Iterable[str]] = None) -> int:
    """Recompute the given restaurants, or every active one; returns failures."""
    if restaurant_ids is None:
        restaurant_ids = store.list_active_restaurant_ids()

    processed = 0
    failures = 0
    for restaurant_id in restaurant_ids:
        processed += 1
        if recompute_rating(store, restaurant_id) is None:
            failures += 1

    logger.info("Recomputed ratings: processed=%d failures=%d", processed, failures)
    return failures


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Recompute restaurant ratings from active reviews")
    parser.add_argument(
        "--restaurant-id",
        dest="restaurant_ids",
        action="append",
        help="Restaurant to recompute (repeatable); defaults to all active restaurants",
    )
    return parser


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args()

    init_pool()
    failures = recompute_ratings(PostgresStore(), args.restaurant_ids)
    if failures:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
