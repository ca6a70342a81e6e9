"""Mapping of authenticated identities onto local user ids."""

from eatery.core.errors import NotFoundError


def require_user_id(store, auth_id: str) -> str:
    """Return the active local user id for ``auth_id`` or raise NotFoundError."""
    user_id = store.get_user_id(auth_id) if auth_id else None
    if not user_id:
        raise NotFoundError("User not found")
    return user_id
