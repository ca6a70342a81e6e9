"""Mapping of Foursquare categories onto the local food-type taxonomy.

Foursquare category reference: https://docs.foursquare.com/data-products/docs/categories
"""

import logging
from typing import Any, Iterable, Mapping, Optional, Set

logger = logging.getLogger(__name__)

AMERICAN = "830db5c8-ecfe-4416-b307-f2c382cd2c39"
BARBECUE = "18e40ccd-0d29-475c-91c4-67ebca9eb2c6"
BURGERS = "18425637-89aa-4c00-8e69-6b84de2e12bc"
CHINESE = "96209165-1bf0-4b82-94c8-c37fa301a55a"
COSTA_RICAN = "23cb1708-e204-4c2b-9be0-4ebb8cc29dff"
FRENCH = "1a1b6210-e157-49eb-b495-c3bb5000d616"
GREEK = "a6f90cc7-43cf-4cf1-967e-26627e6b102d"
INDIAN = "2e4be2e5-dd40-425f-94ad-a7b80cd8885b"
ITALIAN = "209ff5dd-a2a0-44eb-8026-2b6183851f4f"
JAPANESE = "847f33e5-00ab-4a04-87c2-aed327c44c15"
MEDITERRANEAN = "bb12311f-0921-46cc-86af-b88d2336d8aa"
MEXICAN = "289d3b1e-ffdb-435e-99a3-97f913f537a7"
MIDDLE_EASTERN = "b1d3f2c1-f9cb-4fac-aa05-dc2b97539273"
PIZZA = "601a0791-1cc8-4832-9567-1f5b8746eecf"
SEAFOOD = "e659fd7a-f80c-4a68-a42f-8666db007fdb"
SPANISH = "3f869378-ea11-407f-9cd9-1dcf99a38452"
SUSHI = "dd3bf7f1-b986-498b-a994-5aa7c3b60013"
THAI = "6d678d3e-300a-49f2-a03b-aa0c029191a0"
VEGAN = "ececcb64-f1d4-4001-baef-69eaba7700f1"
VEGETARIAN = "a2ac5398-3b00-4088-acd3-d0c829189814"

FOOD_TYPE_NAMES = {
    AMERICAN: "American",
    BARBECUE: "Barbecue",
    BURGERS: "Burgers",
    CHINESE: "Chinese",
    COSTA_RICAN: "Costa Rican",
    FRENCH: "French",
    GREEK: "Greek",
    INDIAN: "Indian",
    ITALIAN: "Italian",
    JAPANESE: "Japanese",
    MEDITERRANEAN: "Mediterranean",
    MEXICAN: "Mexican",
    MIDDLE_EASTERN: "Middle Eastern",
    PIZZA: "Pizza",
    SEAFOOD: "Seafood",
    SPANISH: "Spanish",
    SUSHI: "Sushi",
    THAI: "Thai",
    VEGAN: "Vegan",
    VEGETARIAN: "Vegetarian",
}

CATEGORY_CODE_MAP = {
    13003: AMERICAN,  # American Restaurant
    13001: AMERICAN,  # Diner
    13026: AMERICAN,  # Comfort Food Restaurant
    13028: BARBECUE,  # BBQ Joint
    13031: BURGERS,  # Burger Joint
    13145: BURGERS,  # Fast Food Restaurant
    13065: CHINESE,  # Chinese Restaurant
    13072: CHINESE,  # Dim Sum Restaurant
    13066: CHINESE,  # Cantonese Restaurant
    13067: CHINESE,  # Congee Restaurant
    13105: COSTA_RICAN,  # Latin American Restaurant
    13064: COSTA_RICAN,  # Caribbean Restaurant
    13069: COSTA_RICAN,  # Cuban Restaurant
    13151: COSTA_RICAN,  # Peruvian Restaurant
    13023: COSTA_RICAN,  # Arepa Restaurant
    13042: COSTA_RICAN,  # Central American Restaurant
    13087: FRENCH,  # French Restaurant
    13029: FRENCH,  # Bistro
    13030: FRENCH,  # Brasserie
    13068: FRENCH,  # Creperie
    13092: GREEK,  # Greek Restaurant
    13099: INDIAN,  # Indian Restaurant
    13142: INDIAN,  # Pakistani Restaurant
    13025: INDIAN,  # Biryani Restaurant
    13104: ITALIAN,  # Italian Restaurant
    13144: ITALIAN,  # Pasta Restaurant
    13178: ITALIAN,  # Trattoria
    13107: JAPANESE,  # Japanese Restaurant
    13154: JAPANESE,  # Ramen Restaurant
    13199: JAPANESE,  # Udon Restaurant
    13184: JAPANESE,  # Tempura Restaurant
    13176: JAPANESE,  # Tonkatsu Restaurant
    13187: JAPANESE,  # Teppanyaki Restaurant
    13106: JAPANESE,  # Izakaya
    13117: MEDITERRANEAN,  # Mediterranean Restaurant
    13121: MEXICAN,  # Mexican Restaurant
    13183: MEXICAN,  # Taco Restaurant
    13033: MEXICAN,  # Burrito Restaurant
    13186: MEXICAN,  # Tex-Mex Restaurant
    13123: MIDDLE_EASTERN,  # Middle Eastern Restaurant
    13083: MIDDLE_EASTERN,  # Falafel Restaurant
    13103: MIDDLE_EASTERN,  # Kebab Restaurant
    13109: MIDDLE_EASTERN,  # Lebanese Restaurant
    13181: MIDDLE_EASTERN,  # Turkish Restaurant
    13143: MIDDLE_EASTERN,  # Persian Restaurant
    13152: PIZZA,  # Pizza Place
    13159: SEAFOOD,  # Seafood Restaurant
    13086: SEAFOOD,  # Fish & Chips Restaurant
    13130: SEAFOOD,  # New England Restaurant
    13045: SEAFOOD,  # Ceviche Restaurant
    13141: SEAFOOD,  # Oyster Bar
    13166: SPANISH,  # Spanish Restaurant
    13182: SPANISH,  # Tapas Restaurant
    13024: SPANISH,  # Basque Restaurant
    13040: SPANISH,  # Catalan Restaurant
    13174: SUSHI,  # Sushi Restaurant
    13188: THAI,  # Thai Restaurant
    13377: VEGAN,  # Vegan and Vegetarian Restaurant
    13379: VEGETARIAN,  # Vegetarian Restaurant
}

# Checked in order; the first keyword contained in the lowercased name wins.
CATEGORY_NAME_KEYWORDS = (
    ("american", AMERICAN),
    ("bbq", BARBECUE),
    ("barbecue", BARBECUE),
    ("burger", BURGERS),
    ("chinese", CHINESE),
    ("latin", COSTA_RICAN),
    ("caribbean", COSTA_RICAN),
    ("costa rica", COSTA_RICAN),
    ("french", FRENCH),
    ("greek", GREEK),
    ("indian", INDIAN),
    ("italian", ITALIAN),
    ("pasta", ITALIAN),
    ("japanese", JAPANESE),
    ("ramen", JAPANESE),
    ("mediterranean", MEDITERRANEAN),
    ("mexican", MEXICAN),
    ("taco", MEXICAN),
    ("middle eastern", MIDDLE_EASTERN),
    ("kebab", MIDDLE_EASTERN),
    ("falafel", MIDDLE_EASTERN),
    ("pizza", PIZZA),
    ("seafood", SEAFOOD),
    ("fish", SEAFOOD),
    ("spanish", SPANISH),
    ("tapas", SPANISH),
    ("sushi", SUSHI),
    ("thai", THAI),
    ("vegan", VEGAN),
    ("vegetarian", VEGETARIAN),
)


def _parse_code(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    return None


def map_category(code: Any, name: Optional[str] = None) -> Optional[str]:
    """Return the food type id for one category, or None when nothing matches."""
    food_type_id = CATEGORY_CODE_MAP.get(_parse_code(code))
    if food_type_id:
        return food_type_id

    if isinstance(name, str) and name:
        lower_name = name.lower()
        for keyword, keyword_food_type in CATEGORY_NAME_KEYWORDS:
            if keyword in lower_name:
                return keyword_food_type
    return None


def map_categories(categories: Iterable[Mapping[str, Any]]) -> Set[str]:
    """Map catalog categories to a de-duplicated set of food type ids.

    Each category is a mapping with the catalog code under ``id`` (or ``code``)
    and a display ``name``. Unknown or malformed entries are dropped.
    """
    food_type_ids: Set[str] = set()
    for category in categories or []:
        if not isinstance(category, Mapping):
            logger.debug("Skipping malformed category %r", category)
            continue
        code = category.get("id", category.get("code"))
        food_type_id = map_category(code, category.get("name"))
        if food_type_id:
            food_type_ids.add(food_type_id)
    return food_type_ids
