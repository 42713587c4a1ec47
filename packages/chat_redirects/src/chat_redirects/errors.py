"""
Redirect engine errors.

Raised synchronously by the orchestrator; the HTTP layer maps them to status
codes and the reconciler logs them per record.
"""

from typing import Any


class RedirectError(Exception):
    """Base error for redirect operations."""

    status_code = 500
    default_code = "REDIRECT_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}


class NotFoundError(RedirectError):
    """Unknown id, unresolved user, or no matching account/override."""

    status_code = 404
    default_code = "NOT_FOUND"


class BadRequestError(RedirectError):
    """Invalid date ordering, start date in the past, malformed key."""

    status_code = 400
    default_code = "BAD_REQUEST"


class ConflictError(RedirectError):
    """Duplicate record or an illegal lifecycle transition."""

    status_code = 409
    default_code = "CONFLICT"
