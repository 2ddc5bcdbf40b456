"""Error taxonomy.

Services and dependencies raise these; the app turns every one of them into
a JSON ``{"error": "..."}`` response carrying ``status_code``. Browser-facing
flows (LINE login) catch them and redirect with a short error code instead.
"""

from __future__ import annotations


class MarketError(Exception):
    """Base class for all application errors."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(MarketError):
    """Malformed or missing input."""

    status_code = 400
    default_message = "Invalid input"


class AuthenticationError(MarketError):
    """Missing, invalid or expired credential."""

    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(MarketError):
    """Authenticated but not allowed."""

    status_code = 403
    default_message = "Forbidden"

    def __init__(self, message: str | None = None, reason: str | None = None) -> None:
        self.reason = reason
        super().__init__(message)


class NotFoundError(MarketError):
    status_code = 404
    default_message = "Not found"


class ConflictError(MarketError):
    """A storage uniqueness constraint rejected the write."""

    # "Already taken" is reported like any other bad input
    status_code = 400
    default_message = "Resource already exists"


class UpstreamError(MarketError):
    """An external provider failed."""

    status_code = 500
    default_message = "Upstream service failure"


class InternalError(MarketError):
    status_code = 500
