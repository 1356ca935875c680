"""Error taxonomy shared by the discovery, geocoding and weather clients.

Only ``ValidationError`` and ``AuthError`` are allowed to leave the search
orchestrator. ``UpstreamError`` and ``NotFoundError`` are caught by the client
that raised them and turned into a fallback value or an omission.
"""


class TripScoutError(RuntimeError):
    """Base class for all TripScout errors."""


class ValidationError(TripScoutError):
    """Malformed input. Raised before any network call is made."""


class AuthError(TripScoutError):
    """The client-credentials exchange failed or a fresh token was rejected."""


class NotFoundError(TripScoutError):
    """A location or forecast is unavailable for one item."""


class LocationNotFoundError(NotFoundError):
    """The location search returned no results for a code."""


class AmbiguousLocationError(NotFoundError):
    """The location search returned results without usable coordinates."""


class UpstreamError(TripScoutError):
    """Network failure, timeout, rate limit, 5xx or malformed response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
