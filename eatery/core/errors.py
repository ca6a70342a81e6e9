"""Error kinds raised by the restaurant, review and eatlist services.

Each error carries a stable ``code`` so an HTTP adapter can map it onto a
status without inspecting messages.
"""


class EateryError(RuntimeError):
    code = "INTERNAL_SERVER_ERROR"


class ValidationError(EateryError):
    """Malformed input, e.g. an out-of-range rating or an empty external id."""

    code = "VALIDATION_ERROR"


class NotFoundError(EateryError):
    """The referenced row does not exist or is no longer active."""

    code = "NOT_FOUND"


class ForbiddenError(EateryError):
    """The caller does not own the resource it tries to mutate."""

    code = "FORBIDDEN"


class ConflictError(EateryError):
    code = "CONFLICT"


class UpstreamError(EateryError):
    """The external place catalog could not serve the request."""

    code = "UPSTREAM_ERROR"
