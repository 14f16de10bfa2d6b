"""
Exception hierarchy for the BambooHR timesheet client.

Every error raised by the package derives from BambooError so callers
can catch the whole family in one place.
"""

from typing import Optional


class BambooError(Exception):
    """Base class for all client errors."""
    pass


class AuthError(BambooError):
    """Raised when no credential can be found for the target host."""
    pass


class ScrapeError(BambooError):
    """Raised when an expected marker or embedded value is missing from a page."""
    pass


class NetworkError(BambooError):
    """Raised when the transport fails (DNS, connection, SSL, timeout)."""
    pass


class RequestError(BambooError):
    """
    Raised when the server answers with a non-2xx status.

    Attributes:
        status_code: HTTP status returned by the server
        body: Raw response body (may be truncated by the caller)
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class UnauthorizedError(RequestError):
    """Raised when the server still answers 401 after a fresh login."""
    pass


# The platform reports an expired session as a plain 401
SessionExpiredError = UnauthorizedError


class DateRangeError(BambooError, ValueError):
    """Raised when a date or date range cannot be resolved."""
    pass


class TaskNotFoundError(BambooError, KeyError):
    """Raised when a task name does not match any catalog entry."""

    def __str__(self):
        # KeyError would repr() the message
        return str(self.args[0]) if self.args else ""
