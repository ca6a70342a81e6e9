"""Eatlist lifecycle for a (user, restaurant) pair.

States: absent, active (visited or not) and inactive. Removing an entry only
deactivates it; adding the pair again reactivates the same row with the new
``visited`` flag instead of inserting a duplicate.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from eatery.core.errors import ConflictError, NotFoundError, ValidationError
from eatery.services.restaurants import PlaceLookup, is_local_id, resolve_restaurant_id
from eatery.services.users import require_user_id

logger = logging.getLogger(__name__)


def _validate_visited(visited: Any) -> bool:
    if not isinstance(visited, bool):
        raise ValidationError("visited must be a boolean")
    return visited


def add_to_eatlist(
    store,
    auth_id: str,
    restaurant_ref: str,
    visited: bool = False,
    place_lookup: Optional[PlaceLookup] = None,
) -> Tuple[Dict[str, Any], bool]:
    """Add the restaurant to the user's eatlist.

    Returns the entry and whether an inactive entry was reactivated. Raises
    ConflictError when the pair is already active.
    """
    visited = _validate_visited(visited)
    user_id = require_user_id(store, auth_id)
    restaurant_id = resolve_restaurant_id(store, restaurant_ref, place_lookup)

    result = store.upsert_eatlist_entry(user_id, restaurant_id, visited)
    if result is None:
        raise ConflictError("Restaurant already in eatlist")

    entry, reactivated = result
    logger.info(
        "Eatlist entry user=%s restaurant=%s %s (visited=%s)",
        user_id,
        restaurant_id,
        "reactivated" if reactivated else "created",
        visited,
    )
    return entry, reactivated


def find_eatlist_entry(
    store, auth_id: str, restaurant_id: str, include_inactive: bool = False
) -> Optional[Dict[str, Any]]:
    user_id = require_user_id(store, auth_id)
    if not is_local_id(restaurant_id):
        return None
    return store.get_eatlist_entry(user_id, restaurant_id, include_inactive=include_inactive)


def update_eatlist_flag(store, auth_id: str, restaurant_id: str, visited: bool) -> Dict[str, Any]:
    visited = _validate_visited(visited)
    user_id = require_user_id(store, auth_id)

    entry = store.update_eatlist_flag(user_id, restaurant_id, visited) if is_local_id(restaurant_id) else None
    if not entry:
        raise NotFoundError("Eatlist entry not found")
    return entry


def remove_from_eatlist(store, auth_id: str, restaurant_id: str) -> Dict[str, Any]:
    user_id = require_user_id(store, auth_id)

    entry = store.deactivate_eatlist_entry(user_id, restaurant_id) if is_local_id(restaurant_id) else None
    if not entry:
        raise NotFoundError("Eatlist entry not found")
    logger.info("Eatlist entry user=%s restaurant=%s removed", user_id, restaurant_id)
    return entry


def list_eatlist(store, auth_id: str, visited: Optional[bool] = None) -> List[Dict[str, Any]]:
    """Active entries, newest first, each with a restaurant summary."""
    if visited is not None:
        visited = _validate_visited(visited)
    user_id = require_user_id(store, auth_id)
    return store.list_eatlist(user_id, visited=visited)
