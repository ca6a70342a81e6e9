"""Food type listing and user-created food types."""

import logging
import uuid
from typing import Any, Dict, List

from eatery.core.errors import ConflictError, ValidationError

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 50


def list_food_types(store) -> List[Dict[str, Any]]:
    return store.list_food_types()


def create_food_type(store, name: str) -> Dict[str, Any]:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Food type name is required")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Food type name must be {MAX_NAME_LENGTH} characters or less")
    if store.food_type_name_exists(name):
        raise ConflictError(f"Food type {name!r} already exists")

    food_type = store.insert_food_type({"id": str(uuid.uuid4()), "name": name})
    logger.info("Food type created: %s (%s)", food_type["id"], name)
    return food_type
