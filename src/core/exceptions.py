"""Exception hierarchy for the reconciliation core.

"Not found" is never an exception: resolvers return ``None`` for it.
Only conditions a caller must react to are modelled here.
"""

from __future__ import annotations

__all__ = [
    "AuthConfigurationError",
    "BacklogTrackerError",
    "OracleError",
    "RateLimitedError",
    "SteamImportError",
    "TransactionalWriteError",
]


class BacklogTrackerError(Exception):
    """Base class for all errors raised by this package."""


class AuthConfigurationError(BacklogTrackerError):
    """A credential or API key is missing or was rejected.

    Fatal for the operation that hit it: the operation aborts before any
    partial write and the message is meant to be shown to the user.

    Attributes:
        service: Name of the external service the credential belongs to.
    """

    def __init__(self, service: str, message: str) -> None:
        super().__init__(message)
        self.service = service


class RateLimitedError(BacklogTrackerError):
    """An external service answered 429 or 503.

    Raised by HTTP clients and absorbed by the resolver layer, which logs
    a warning and degrades the item to "not found".

    Attributes:
        service: Name of the external service.
        status_code: HTTP status code that triggered the error.
    """

    def __init__(self, service: str, status_code: int) -> None:
        super().__init__(f"{service} rate limit hit (HTTP {status_code})")
        self.service = service
        self.status_code = status_code


class TransactionalWriteError(BacklogTrackerError):
    """An atomic write batch failed to commit; none of its writes applied."""


class SteamImportError(BacklogTrackerError):
    """The Steam account could not be resolved or its library could not be read."""


class OracleError(BacklogTrackerError):
    """The recommendation oracle could not be reached or refused the request."""
