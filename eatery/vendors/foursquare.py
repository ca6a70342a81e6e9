"""Client utilities for the Foursquare Places API."""

import logging
from typing import Any, Dict, List, Optional

import requests

from eatery.core.config import get_settings
from eatery.core.errors import UpstreamError

logger = logging.getLogger(__name__)
_SESSION = requests.Session()

PLACE_FIELDS = "fsq_id,name,location,categories,geocodes,website,tel,rating,price,photos,description"
SEARCH_FIELDS = "fsq_id,name,location,categories,distance,geocodes,website,tel,rating,price,photos"
FOOD_AND_DINING_CATEGORY = "13000"
DEFAULT_SEARCH_RADIUS = 10000
DEFAULT_SEARCH_LIMIT = 20
MAX_SEARCH_LIMIT = 50


class FoursquareError(UpstreamError):
    """Raised when the Places API cannot be reached or answers with an error."""


def _headers(api_key: str) -> Dict[str, str]:
    if not api_key:
        raise FoursquareError("FOURSQUARE_API_KEY is not configured")
    return {
        "Authorization": f"Bearer {api_key}",
        "Accept": "application/json",
        "X-Places-Api-Version": get_settings().foursquare_api_version,
    }


def _get(path: str, params: Dict[str, Any], api_key: str) -> Any:
    url = f"{get_settings().foursquare_api_url}{path}"
    logger.debug("GET %s params=%s", url, params)
    try:
        response = _SESSION.get(url, params=params, headers=_headers(api_key), timeout=10)
    except requests.RequestException as exc:
        logger.error("Foursquare request failed: %s", exc)
        raise FoursquareError(f"Foursquare request failed: {exc}") from exc

    if not 200 <= response.status_code < 300:
        logger.error("Foursquare API error: status=%s body=%s", response.status_code, response.text[:500])
        raise FoursquareError(f"Foursquare API error: {response.status_code}")

    try:
        return response.json()
    except ValueError as exc:
        raise FoursquareError("Foursquare returned a non-JSON payload") from exc


def _validate_place_id(fsq_id: str) -> str:
    value = (fsq_id or "").strip()
    if not value or "/" in value or any(ch.isspace() for ch in value):
        raise FoursquareError(f"Malformed Foursquare place id: {fsq_id!r}")
    return value


def place_details(fsq_id: str, api_key: str) -> Dict[str, Any]:
    place_id = _validate_place_id(fsq_id)
    payload = _get(f"/places/{place_id}", {"fields": PLACE_FIELDS}, api_key)
    if not isinstance(payload, dict) or not payload.get("name"):
        raise FoursquareError(f"Foursquare returned no place for {place_id}")
    return payload


def search_places(
    api_key: str,
    query: Optional[str] = None,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    radius: Optional[int] = None,
    near: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Search Food & Dining places by coordinates or by a named location."""
    params: Dict[str, Any] = {
        "categories": FOOD_AND_DINING_CATEGORY,
        "limit": min(limit or DEFAULT_SEARCH_LIMIT, MAX_SEARCH_LIMIT),
        "fields": SEARCH_FIELDS,
    }
    if query:
        params["query"] = query

    if lat is not None and lng is not None:
        params["ll"] = f"{lat},{lng}"
        params["radius"] = radius or DEFAULT_SEARCH_RADIUS
        params["sort"] = "DISTANCE"
    else:
        default_near = get_settings().default_search_near
        if near:
            params["near"] = near if default_near.lower() in near.lower() else f"{near}, {default_near}"
        else:
            params["near"] = default_near
        params["sort"] = "RELEVANCE"

    payload = _get("/places/search", params, api_key)
    results = payload.get("results", []) if isinstance(payload, dict) else []
    logger.info("Foursquare search returned %d places", len(results))
    return results


def place_lookup(api_key: Optional[str] = None):
    """Return a one-argument ``fsq_id -> place`` callable bound to an API key."""
    key = api_key if api_key is not None else get_settings().foursquare_api_key

    def lookup(fsq_id: str) -> Dict[str, Any]:
        return place_details(fsq_id, key)

    return lookup
