"""WHOOP API client with OAuth, rate limiting, and error handling."""

import secrets
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlencode
import requests
from config.settings import settings
from utils.exceptions import (
    NotAuthenticatedError,
    ReauthenticationRequired,
    TokenRefreshError,
    WhoopAPIError,
    WhoopAuthError,
)
from utils.logger import get_logger
from utils.rate_limiter import RateLimiter
from utils.token_store import Credential, TokenStore

logger = get_logger(__name__)

WHOOP_AUTH_URL = "https://api.prod.whoop.com/oauth/oauth2/auth"
WHOOP_TOKEN_URL = "https://api.prod.whoop.com/oauth/oauth2/token"
WHOOP_API_BASE = "https://api.prod.whoop.com/developer"
SCOPES = "read:recovery read:cycles read:workout read:sleep read:profile read:body_measurement offline"

DEFAULT_RETRY_AFTER_SECONDS = 60

# Resource endpoints
PROFILE_PATH = "/v2/user/profile/basic"
BODY_MEASUREMENT_PATH = "/v2/user/measurement/body"
CYCLE_PATH = "/v2/cycle"
RECOVERY_PATH = "/v2/recovery"
SLEEP_PATH = "/v2/activity/sleep"
WORKOUT_PATH = "/v2/activity/workout"


def generate_state() -> str:
    """Random 8-hex-character CSRF state for the authorization redirect."""
    return secrets.token_hex(4)


def _retry_after_seconds(response) -> int:
    value = response.headers.get("Retry-After")
    if value is None:
        return DEFAULT_RETRY_AFTER_SECONDS
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return DEFAULT_RETRY_AFTER_SECONDS


class WhoopClient:
    """
    Authenticated WHOOP API client:
    - OAuth2 code exchange and refresh with token rotation
    - Proactive refresh shortly before expiry
    - Shared rate limiter gate on every resource call
    - 429 wait-and-retry, single refresh-and-retry on 401
    - Continuation-token pagination
    """

    def __init__(
        self,
        token_store: TokenStore,
        rate_limiter: RateLimiter,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        http_session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
        refresh_margin: Optional[int] = None,
        page_size: Optional[int] = None,
        max_attempts: Optional[int] = None,
        timeout: Optional[int] = None,
    ):
        """
        Initialize WHOOP client.

        Args:
            token_store: Credential persistence for the signed-in principal
            rate_limiter: Request budget shared by every call
            client_id: OAuth2 client ID (WHOOP_CLIENT_ID)
            client_secret: OAuth2 client secret (WHOOP_CLIENT_SECRET)
            redirect_uri: OAuth2 callback URL (WHOOP_REDIRECT_URI)
            http_session: Pre-configured requests session (for testing)
            sleep: Blocks the caller during 429 backoff
            clock: Returns wall-clock epoch seconds
            refresh_margin: Refresh this many seconds before expiry
            page_size: Records per page for list endpoints
            max_attempts: Cap on attempts per call; 0 or None is unbounded
            timeout: HTTP timeout in seconds
        """
        self.token_store = token_store
        self.rate_limiter = rate_limiter
        self.client_id = client_id if client_id is not None else settings.WHOOP_CLIENT_ID
        self.client_secret = client_secret if client_secret is not None else settings.WHOOP_CLIENT_SECRET
        self.redirect_uri = redirect_uri or settings.WHOOP_REDIRECT_URI
        self.http = http_session or requests.Session()
        self._sleep = sleep
        self._clock = clock
        self.refresh_margin = settings.WHOOP_TOKEN_REFRESH_MARGIN if refresh_margin is None else refresh_margin
        self.page_size = page_size or settings.WHOOP_PAGE_SIZE
        self.max_attempts = settings.WHOOP_MAX_ATTEMPTS if max_attempts is None else max_attempts
        self.timeout = timeout or settings.WHOOP_REQUEST_TIMEOUT

        # Serializes refreshes so a rotated refresh token is never reused
        self._token_lock = threading.RLock()

    # ------------------------------------------------------------------
    # OAuth
    # ------------------------------------------------------------------

    def get_authorization_url(self, state: Optional[str] = None) -> Tuple[str, str]:
        """
        Build the WHOOP OAuth authorization URL.

        Args:
            state: CSRF state to embed; generated when omitted

        Returns:
            (authorization URL, state) tuple
        """
        state = state or generate_state()
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": SCOPES,
            "state": state,
        }
        return f"{WHOOP_AUTH_URL}?{urlencode(params)}", state

    def exchange_code_for_token(self, code: str) -> Dict[str, Any]:
        """
        Exchange authorization code for an access/refresh token pair.

        Args:
            code: Authorization code from OAuth callback

        Returns:
            Token response dictionary
        """
        logger.info("Exchanging authorization code for token")
        response = self.http.post(
            WHOOP_TOKEN_URL,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_uri,
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=self.timeout,
        )
        if not response.ok:
            raise WhoopAuthError(f"Token exchange failed ({response.status_code}): {response.text}")

        data = response.json()
        self.token_store.save(
            data["access_token"], data["refresh_token"], data.get("expires_in", 3600), data.get("scope")
        )
        logger.info("WHOOP authorization completed")
        return data

    def refresh_access_token(self) -> Credential:
        """
        Exchange the stored refresh token for a new token pair.

        Returns:
            The newly stored credential

        Raises:
            NotAuthenticatedError: No credential is stored
            ReauthenticationRequired: Refresh token rejected (credential deleted)
            TokenRefreshError: Transient token endpoint failure
        """
        with self._token_lock:
            tokens = self.token_store.get()
            if tokens is None:
                raise NotAuthenticatedError("No tokens stored; user must re-authenticate")

            logger.info("Refreshing WHOOP access token")
            response = self.http.post(
                WHOOP_TOKEN_URL,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": tokens.refresh_token,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )

            if not response.ok:
                if response.status_code in (400, 401):
                    logger.error(f"Refresh token rejected ({response.status_code}); deleting stored credential")
                    self.token_store.delete()
                    raise ReauthenticationRequired()
                logger.warning(f"Token refresh failed ({response.status_code})")
                raise TokenRefreshError(response.status_code, response.text)

            data = response.json()
            # WHOOP rotates BOTH tokens on refresh; the old refresh token is now dead
            credential = self.token_store.save(
                data["access_token"], data["refresh_token"], data.get("expires_in", 3600), data.get("scope")
            )
            logger.info("WHOOP access token refreshed")
            return credential

    def get_valid_token(self) -> str:
        """
        Return an access token that will not expire within the refresh margin.

        Raises:
            NotAuthenticatedError: No credential is stored
        """
        with self._token_lock:
            tokens = self.token_store.get()
            if tokens is None:
                raise NotAuthenticatedError()

            if tokens.needs_refresh(self.refresh_margin, now=self._clock()):
                tokens = self.refresh_access_token()
            return tokens.access_token

    def logout(self):
        """Delete the stored credential."""
        self.token_store.delete()
        logger.info("User logged out")

    @property
    def is_authenticated(self) -> bool:
        """Check if a credential is stored."""
        return self.token_store.get() is not None

    # ------------------------------------------------------------------
    # Resource calls
    # ------------------------------------------------------------------

    def call(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Authenticated GET against the WHOOP developer API.

        Args:
            path: Resource path, e.g. ``/v2/cycle``
            params: Query parameters; ``None`` values are dropped

        Returns:
            Decoded JSON body
        """
        url = f"{WHOOP_API_BASE}{path}"
        query = {k: v for k, v in (params or {}).items() if v is not None}
        refreshed = False
        attempt = 0

        while True:
            attempt += 1
            if self.max_attempts and attempt > self.max_attempts:
                raise WhoopAPIError(429, f"gave up after {self.max_attempts} attempts", path)

            self.rate_limiter.acquire()
            token = self.get_valid_token()
            response = self.http.get(
                url,
                params=query,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )

            if response.status_code == 429:
                wait_time = _retry_after_seconds(response)
                logger.warning(f"Rate limited (429) on {path}, retrying in {wait_time}s")
                self._sleep(wait_time)
                continue

            if response.status_code == 401:
                if refreshed:
                    logger.error(f"401 on {path} after token refresh")
                    raise ReauthenticationRequired("Access token rejected after refresh; user must re-authenticate")
                # Token may have expired mid-request
                logger.info(f"401 on {path}, attempting token refresh")
                self.refresh_access_token()
                refreshed = True
                continue

            if not response.ok:
                raise WhoopAPIError(response.status_code, response.text, path)

            return response.json()

    def fetch_paginated(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Fetch every page of a list endpoint.

        Pages are requested sequentially, following the continuation token
        until the upstream stops returning one.

        Returns:
            All records in fetch order
        """
        records: List[Dict[str, Any]] = []
        next_token: Optional[str] = None

        while True:
            query = dict(params or {})
            query["limit"] = self.page_size
            if next_token:
                query["nextToken"] = next_token

            data = self.call(path, query)
            page = data.get("records") or []
            records.extend(page)
            if page:
                logger.info(f"Fetched {len(page)} records from {path} (total: {len(records)})")

            next_token = data.get("next_token") or data.get("nextToken")
            if not next_token:
                return records

    def fetch_profile(self) -> Dict[str, Any]:
        """Get basic user profile."""
        logger.info("Fetching user profile")
        return self.call(PROFILE_PATH)

    def fetch_body_measurements(self) -> Dict[str, Any]:
        """Get body measurements."""
        logger.info("Fetching body measurements")
        return self.call(BODY_MEASUREMENT_PATH)

    def fetch_cycles(self, start: Optional[str] = None, end: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get physiological cycles, optionally bounded by ISO-8601 start/end."""
        return self.fetch_paginated(CYCLE_PATH, {"start": start, "end": end})

    def fetch_recovery(self, start: Optional[str] = None, end: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get recovery scores."""
        return self.fetch_paginated(RECOVERY_PATH, {"start": start, "end": end})

    def fetch_sleep(self, start: Optional[str] = None, end: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get sleep activities (naps included)."""
        return self.fetch_paginated(SLEEP_PATH, {"start": start, "end": end})

    def fetch_workouts(self, start: Optional[str] = None, end: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get workout activities."""
        return self.fetch_paginated(WORKOUT_PATH, {"start": start, "end": end})

    @property
    def rate_limit_status(self) -> Dict[str, int]:
        """Get current rate limit status."""
        return self.rate_limiter.status


def create_whoop_client(
    token_store: Optional[TokenStore] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> WhoopClient:
    """
    Factory function to create a WHOOP client from settings.

    Args:
        token_store: Credential store (defaults to the single-user store)
        rate_limiter: Request budget (defaults to a fresh limiter)

    Returns:
        Configured WhoopClient instance
    """
    return WhoopClient(
        token_store=token_store or TokenStore(),
        rate_limiter=rate_limiter or RateLimiter(),
    )
