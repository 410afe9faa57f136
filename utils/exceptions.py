"""Error types raised by the WHOOP client, token store and rate limiter."""

from typing import Optional


class WhoopError(Exception):
    """Base class for all WHOOP sync errors."""


class WhoopAuthError(WhoopError):
    """OAuth handshake failed (e.g. authorization code exchange rejected)."""


class ReauthenticationRequired(WhoopAuthError):
    """
    The stored credential is unusable and the user must complete OAuth again.

    Raised when the refresh token is rejected, when no credential is stored,
    or when a freshly refreshed token is still refused. ``sync_all`` stops
    the remaining data types when it sees this error.
    """

    def __init__(self, message: str = "Refresh token invalid; user must re-authenticate"):
        super().__init__(message)


class NotAuthenticatedError(ReauthenticationRequired):
    """No credential is stored for the principal."""

    def __init__(self, message: str = "Not authenticated; user must re-authenticate"):
        super().__init__(message)


class TokenRefreshError(WhoopAuthError):
    """Token endpoint returned a transient failure. Not retried automatically."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Token refresh failed ({status_code}): {body}")


class WhoopAPIError(WhoopError):
    """Upstream resource call returned a non-2xx status other than 401/429."""

    def __init__(self, status_code: int, body: str, path: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        self.path = path
        where = f" on {path}" if path else ""
        super().__init__(f"WHOOP API error {status_code}{where}: {body}")


class DailyRateLimitExceeded(WhoopError):
    """Local daily request budget is spent; waiting within this run will not help."""

    def __init__(self, message: str = "Daily API rate limit reached (10,000/day). Try again tomorrow."):
        super().__init__(message)
