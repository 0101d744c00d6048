"""Exceptions raised by the upstream clients."""

from __future__ import annotations


class SodexAPIError(Exception):
    """Base class for upstream failures."""


class FetchError(SodexAPIError):
    """Raised when an upstream responds with a non-success HTTP status."""

    def __init__(self, what: str, status_code: int | None, reason: str | None):
        self.what = what
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"Failed to fetch {what}: {reason or status_code}")


class ApiError(SodexAPIError):
    """Raised when a response body reports failure despite HTTP success.

    Sodex signals this with a non-zero ``code`` field.
    """

    def __init__(self, what: str, code: object, message: str | None = None):
        self.what = what
        self.code = code
        self.upstream_message = message
        if message:
            super().__init__(f"API error: {message}")
        else:
            super().__init__(f"API error: Failed to fetch {what} (code={code})")
