"""Recomputation of a restaurant's aggregate rating from its active reviews."""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

_ONE_PLACE = Decimal("0.1")


def average_rating(ratings: Iterable[int]) -> Decimal:
    """Mean of the ratings rounded half-up to one decimal, 0 when empty."""
    values = [Decimal(int(rating)) for rating in ratings]
    if not values:
        return Decimal("0")
    return (sum(values) / len(values)).quantize(_ONE_PLACE, rounding=ROUND_HALF_UP)


def recompute_rating(store, restaurant_id: str) -> Optional[Decimal]:
    """Rewrite the restaurant's rating; failures are logged and never raised.

    A failed recompute leaves the stored rating stale until the next review
    mutation for the same restaurant (or a ``recompute_ratings`` job run).
    """
    try:
        rating = average_rating(store.active_review_ratings(restaurant_id))
        store.set_restaurant_rating(restaurant_id, rating)
    except Exception:  # noqa: BLE001
        logger.exception("Failed to recompute rating for restaurant %s", restaurant_id)
        return None
    logger.debug("Restaurant %s rating is now %s", restaurant_id, rating)
    return rating
