"""Review lifecycle: create, update, soft delete and photo attachment.

Every mutation re-runs the rating aggregator for the review's restaurant. A
soft-deleted review is terminal and can no longer be changed.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from eatery.core.errors import ForbiddenError, NotFoundError, ValidationError
from eatery.services.ratings import recompute_rating
from eatery.services.restaurants import PlaceLookup, is_local_id, resolve_restaurant_id
from eatery.services.users import require_user_id

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5
MAX_COMMENT_LENGTH = 2000

UNSET: Any = object()


def validate_rating(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError("Rating must be a whole number")
    if isinstance(value, str):
        value = value.strip()
        if not value.lstrip("-").isdecimal():
            raise ValidationError("Rating must be a whole number")
        value = int(value)
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValidationError("Rating must be a whole number")
        value = int(value)
    elif not isinstance(value, int):
        raise ValidationError("Rating must be a whole number")

    if not MIN_RATING <= value <= MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
    return value


def validate_comment(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("Comment must be a string")
    if len(value) > MAX_COMMENT_LENGTH:
        raise ValidationError(f"Comment must be {MAX_COMMENT_LENGTH} characters or less")
    return value


def create_review(
    store,
    auth_id: str,
    restaurant_ref: str,
    rating: Any,
    comment: Optional[str] = None,
    place_lookup: Optional[PlaceLookup] = None,
) -> Dict[str, Any]:
    rating = validate_rating(rating)
    comment = validate_comment(comment)
    author_id = require_user_id(store, auth_id)
    restaurant_id = resolve_restaurant_id(store, restaurant_ref, place_lookup)

    review = store.insert_review({
        "id": str(uuid.uuid4()),
        "restaurant_id": restaurant_id,
        "author_id": author_id,
        "rating": rating,
        "comment": comment,
    })
    logger.info("Review %s created for restaurant %s", review["id"], restaurant_id)

    recompute_rating(store, restaurant_id)
    return review


def get_review(store, review_id: str) -> Dict[str, Any]:
    review = store.get_review(review_id) if is_local_id(review_id) else None
    if not review or not review["active"]:
        raise NotFoundError("Review not found")
    return review


def list_restaurant_reviews(
    store, restaurant_id: str, page: int = 1, limit: int = 20
) -> Tuple[List[Dict[str, Any]], int]:
    """Active reviews for a restaurant, newest first, with the total count."""
    if page < 1 or not 1 <= limit <= 100:
        raise ValidationError("page must be >= 1 and limit between 1 and 100")
    if not is_local_id(restaurant_id) or not store.get_restaurant(restaurant_id):
        raise NotFoundError("Restaurant not found")
    return store.list_reviews(restaurant_id, limit=limit, offset=(page - 1) * limit)


def _owned_active_review(store, review_id: str, user_id: str) -> Dict[str, Any]:
    review = get_review(store, review_id)
    if str(review["author_id"]) != str(user_id):
        raise ForbiddenError("You do not have permission to perform this action")
    return review


def update_review(
    store,
    review_id: str,
    auth_id: str,
    rating: Any = UNSET,
    comment: Any = UNSET,
) -> Dict[str, Any]:
    """Change rating and/or comment; passing ``comment=None`` clears the comment."""
    fields: Dict[str, Any] = {}
    if rating is not UNSET:
        fields["rating"] = validate_rating(rating)
    if comment is not UNSET:
        fields["comment"] = validate_comment(comment)
    if not fields:
        raise ValidationError("At least one field (rating or comment) must be provided")

    user_id = require_user_id(store, auth_id)
    _owned_active_review(store, review_id, user_id)

    updated = store.update_review(review_id, user_id, fields)
    if not updated:
        raise NotFoundError("Review not found")

    recompute_rating(store, updated["restaurant_id"])
    return updated


def delete_review(store, review_id: str, auth_id: str) -> Dict[str, Any]:
    user_id = require_user_id(store, auth_id)
    _owned_active_review(store, review_id, user_id)

    deleted = store.deactivate_review(review_id, user_id)
    if not deleted:
        raise NotFoundError("Review not found")
    logger.info("Review %s soft-deleted", review_id)

    recompute_rating(store, deleted["restaurant_id"])
    return deleted


def attach_review_photo(store, review_id: str, auth_id: str, photo_url: str) -> Tuple[Dict[str, Any], bool]:
    """Set the review photo; the first one also becomes the restaurant cover.

    Returns the updated review and whether the restaurant cover was set.
    """
    photo_url = (photo_url or "").strip()
    if not photo_url:
        raise ValidationError("Photo URL is required")

    user_id = require_user_id(store, auth_id)
    _owned_active_review(store, review_id, user_id)

    updated = store.update_review(review_id, user_id, {"photo_url": photo_url})
    if not updated:
        raise NotFoundError("Review not found")

    cover_set = store.set_cover_photo_if_missing(updated["restaurant_id"], photo_url)
    if cover_set:
        logger.info("Restaurant %s cover photo set from review %s", updated["restaurant_id"], review_id)
    return updated, cover_set
