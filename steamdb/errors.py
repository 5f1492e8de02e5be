"""Exception taxonomy for the steamdb fetch layer.

Transport and solver failures are raised by the components that hit them;
``HttpClient.fetch`` re-raises any of them as a single :class:`FetchError`
chained to the original cause.
"""

from typing import Any, Optional


class SteamDBError(Exception):
    """Base exception for the steamdb package."""
    pass


class FetchError(SteamDBError):
    """Raised when a fetch cannot complete.

    The underlying :class:`TransportError` or :class:`SolverError` is kept
    as ``__cause__``.
    """

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class TransportError(SteamDBError):
    """DNS, connect or read failure on a direct request."""
    pass


class SolverError(SteamDBError):
    """Base exception for challenge solver failures."""
    pass


class SolverTransportError(SolverError):
    """HTTP-level failure while talking to the solver service."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SolverTimeoutError(SolverTransportError):
    """The solver did not finish within the requested bound."""
    pass


class SolverProtocolError(SolverError):
    """The solver replied with an error status or an unparseable body."""
    pass


class ChallengeUnsolvedError(SolverError):
    """The solver replied successfully but returned no solution."""
    pass


class HTTPStatusError(SteamDBError):
    """Raised by ``fetch_page`` for a non-2xx response."""

    def __init__(self, message: str, response: Any = None):
        super().__init__(message)
        self.response = response

    @property
    def status(self) -> Optional[int]:
        return getattr(self.response, "status", None)


class BrowserAutomationError(SteamDBError):
    """Browser automation is unavailable or failed."""
    pass


__all__ = [
    "SteamDBError",
    "FetchError",
    "TransportError",
    "SolverError",
    "SolverTransportError",
    "SolverTimeoutError",
    "SolverProtocolError",
    "ChallengeUnsolvedError",
    "HTTPStatusError",
    "BrowserAutomationError",
]
