"""Utilities for transforming Foursquare place payloads into restaurant rows."""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from eatery.etl.categories import map_categories

logger = logging.getLogger(__name__)


def format_address(location: Optional[Dict[str, Any]]) -> Optional[str]:
    location = location or {}
    formatted = location.get("formatted_address")
    if formatted:
        return formatted
    parts = [location.get("address"), location.get("locality"), location.get("region")]
    joined = ", ".join(part for part in parts if part)
    return joined or None


def extract_coordinates(place: Dict[str, Any]) -> Tuple[Optional[float], Optional[float]]:
    latitude = place.get("latitude")
    longitude = place.get("longitude")
    if latitude is not None and longitude is not None:
        return latitude, longitude
    main = (place.get("geocodes") or {}).get("main") or {}
    return main.get("latitude"), main.get("longitude")


def build_photo_url(photos: Optional[Iterable[Dict[str, Any]]], size: str = "original") -> Optional[str]:
    photos = list(photos or [])
    if not photos:
        return None
    first = photos[0] or {}
    prefix = first.get("prefix")
    suffix = first.get("suffix")
    if not prefix or not suffix:
        logger.debug("Ignoring photo without prefix/suffix: %s", first)
        return None
    return f"{prefix}{size}{suffix}"


def extract_categories(place: Dict[str, Any]) -> List[Dict[str, Any]]:
    categories = []
    for category in place.get("categories") or []:
        if isinstance(category, dict):
            categories.append({"id": category.get("id"), "name": category.get("name")})
    return categories


def to_restaurant_row(place: Dict[str, Any], photo_size: str = "original") -> Dict[str, Any]:
    """Build the restaurant columns and the mapped food types for a catalog place."""
    latitude, longitude = extract_coordinates(place)
    categories = extract_categories(place)

    return {
        "foursquare_id": place.get("fsq_id") or place.get("fsq_place_id"),
        "name": place.get("name"),
        "address": format_address(place.get("location")),
        "latitude": latitude,
        "longitude": longitude,
        "cover_photo_url": build_photo_url(place.get("photos"), photo_size),
        "website_url": place.get("website") or None,
        "categories": categories,
        "food_type_ids": sorted(map_categories(categories)),
        "distance": place.get("distance"),
    }
