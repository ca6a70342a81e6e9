"""Restaurant identity resolution and catalog reads.

A restaurant can be referenced by its local UUID or by a Foursquare place id.
``resolve_restaurant_id`` turns either into the canonical local id, creating
the local row the first time a Foursquare place is referenced.
"""

import logging
import re
import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from eatery.core.config import get_settings
from eatery.core.errors import NotFoundError, ValidationError
from eatery.etl.transform import to_restaurant_row
from eatery.vendors import foursquare

logger = logging.getLogger(__name__)

PlaceLookup = Callable[[str], Dict[str, Any]]

UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)
SORT_OPTIONS = ("recent", "rating", "distance")
MAX_PAGE_LIMIT = 100


def is_local_id(ref: str) -> bool:
    return bool(ref) and UUID_PATTERN.match(ref) is not None


def _default_lookup(place_lookup: Optional[PlaceLookup]) -> PlaceLookup:
    return place_lookup if place_lookup is not None else foursquare.place_lookup()


def _with_food_types(store, restaurant: Dict[str, Any]) -> Dict[str, Any]:
    return {**restaurant, "food_types": store.get_restaurant_food_types(restaurant["id"])}


def get_or_create_restaurant(
    store, foursquare_id: str, place_lookup: Optional[PlaceLookup] = None
) -> Tuple[Dict[str, Any], bool]:
    """Return the local row for a Foursquare place, materializing it if needed.

    The existing-row lookup ignores the active flag because Foursquare ids are
    permanent. Concurrent first references both reach the insert; the unique
    constraint on ``foursquare_id`` lets exactly one of them create the row.
    """
    existing = store.get_restaurant_by_foursquare_id(foursquare_id)
    if existing:
        return existing, False

    place = _default_lookup(place_lookup)(foursquare_id)
    row = to_restaurant_row(place, photo_size=get_settings().photo_size)
    if not row["name"]:
        raise ValidationError(f"Foursquare place {foursquare_id} has no name")

    restaurant_row = {
        "id": str(uuid.uuid4()),
        "name": row["name"],
        "address": row["address"],
        "latitude": row["latitude"],
        "longitude": row["longitude"],
        "cover_photo_url": row["cover_photo_url"],
        "website_url": row["website_url"],
        "foursquare_id": foursquare_id,
    }
    restaurant, created = store.materialize_restaurant(restaurant_row, row["food_type_ids"])
    if created:
        logger.info(
            "Created restaurant %s for foursquare_id=%s with %d food types",
            restaurant["id"],
            foursquare_id,
            len(row["food_type_ids"]),
        )
    return restaurant, created


def resolve_restaurant_id(store, ref: str, place_lookup: Optional[PlaceLookup] = None) -> str:
    """Return the canonical local id for a local UUID or a Foursquare place id."""
    ref = (ref or "").strip()
    if not ref:
        raise ValidationError("Restaurant reference cannot be empty")

    if is_local_id(ref):
        restaurant = store.get_restaurant(ref)
        if not restaurant:
            raise NotFoundError("Restaurant not found")
        return str(restaurant["id"])

    restaurant, _ = get_or_create_restaurant(store, ref, place_lookup)
    return str(restaurant["id"])


def get_restaurant(store, restaurant_id: str) -> Dict[str, Any]:
    restaurant = store.get_restaurant(restaurant_id) if is_local_id(restaurant_id) else None
    if not restaurant:
        raise NotFoundError("Restaurant not found")
    return _with_food_types(store, restaurant)


def get_restaurant_by_foursquare_id(store, foursquare_id: str) -> Dict[str, Any]:
    restaurant = store.get_restaurant_by_foursquare_id(foursquare_id, active_only=True)
    if not restaurant:
        raise NotFoundError("Restaurant not found")
    return _with_food_types(store, restaurant)


def _validate_page(page: int, limit: int) -> None:
    if page < 1:
        raise ValidationError("page must be at least 1")
    if not 1 <= limit <= MAX_PAGE_LIMIT:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_LIMIT}")


def list_restaurants(
    store,
    food_type_id: Optional[str] = None,
    min_rating: Optional[float] = None,
    sort: str = "recent",
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[Dict[str, Any]], int]:
    """List active restaurants with simple field-order sorting and pagination."""
    if sort not in SORT_OPTIONS:
        raise ValidationError(f"sort must be one of: {', '.join(SORT_OPTIONS)}")
    if min_rating is not None and not 0 <= min_rating <= 5:
        raise ValidationError("min_rating must be between 0 and 5")
    if food_type_id is not None and not is_local_id(food_type_id):
        raise ValidationError("food_type_id must be a UUID")
    _validate_page(page, limit)

    return store.list_restaurants(
        food_type_id=food_type_id,
        min_rating=min_rating,
        sort=sort,
        limit=limit,
        offset=(page - 1) * limit,
    )


def top_rated_restaurants(store, limit: int = 10) -> List[Dict[str, Any]]:
    if not 1 <= limit <= 50:
        raise ValidationError("limit must be between 1 and 50")
    return store.top_rated_restaurants(limit)


def create_restaurant(
    store,
    name: str,
    address: Optional[str] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    cover_photo_url: Optional[str] = None,
    website_url: Optional[str] = None,
    food_type_ids: Iterable[str] = (),
) -> Dict[str, Any]:
    """Create a restaurant that does not come from the external catalog."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Restaurant name is required")
    _validate_coordinates(latitude, longitude)
    food_type_ids = list(food_type_ids)
    if any(not is_local_id(food_type_id) for food_type_id in food_type_ids):
        raise ValidationError("food_type_ids must be UUIDs")

    row = {
        "id": str(uuid.uuid4()),
        "name": name,
        "address": address,
        "latitude": latitude,
        "longitude": longitude,
        "cover_photo_url": cover_photo_url,
        "website_url": website_url,
        "foursquare_id": None,
    }
    restaurant = store.create_restaurant(row, food_type_ids)
    logger.info("Created restaurant %s (%s)", restaurant["id"], name)
    return restaurant


def _validate_coordinates(latitude: Optional[float], longitude: Optional[float]) -> None:
    if latitude is not None and not -90 <= latitude <= 90:
        raise ValidationError("latitude must be between -90 and 90")
    if longitude is not None and not -180 <= longitude <= 180:
        raise ValidationError("longitude must be between -180 and 180")


def update_restaurant(store, restaurant_id: str, **fields: Any) -> Dict[str, Any]:
    """Update descriptive fields; the rating is owned by the rating aggregator."""
    allowed = {"name", "address", "latitude", "longitude", "cover_photo_url", "website_url"}
    unknown = set(fields) - allowed
    if unknown:
        raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
    if not fields:
        raise ValidationError("No fields to update")
    if "name" in fields and not (fields["name"] or "").strip():
        raise ValidationError("Restaurant name cannot be empty")
    _validate_coordinates(fields.get("latitude"), fields.get("longitude"))

    if not is_local_id(restaurant_id):
        raise NotFoundError("Restaurant not found")
    restaurant = store.update_restaurant(restaurant_id, fields)
    if not restaurant:
        raise NotFoundError("Restaurant not found")
    return restaurant
