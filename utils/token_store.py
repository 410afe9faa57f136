"""Persistence of the WHOOP OAuth credential."""

import time
from dataclasses import dataclass
from typing import Callable, Optional
from sqlalchemy.orm import sessionmaker
from config.settings import get_session_maker
from models.database.oauth_token import OAuthToken, DEFAULT_PRINCIPAL
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Credential:
    """Detached snapshot of a stored OAuth credential."""

    access_token: str
    refresh_token: str
    expires_at: int
    scope: Optional[str] = None

    def needs_refresh(self, margin_seconds: int = 60, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return self.expires_at <= now + margin_seconds


class TokenStore:
    """
    Single-row credential store for one principal.

    WHOOP invalidates a refresh token the moment it issues a new one, so the
    access/refresh pair is always replaced together in one transaction.
    """

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        principal: str = DEFAULT_PRINCIPAL,
        clock: Callable[[], float] = time.time,
    ):
        self._session_factory = session_factory or get_session_maker()
        self.principal = principal
        self._clock = clock

    def save(self, access_token: str, refresh_token: str, expires_in: int, scope: Optional[str] = None) -> Credential:
        """
        Store a new token pair, replacing any existing one.

        Args:
            access_token: Bearer token for API calls
            refresh_token: Token for the next refresh
            expires_in: Access token lifetime in seconds
            scope: Granted scopes (space separated)

        Returns:
            The stored credential
        """
        expires_at = int(self._clock()) + int(expires_in)
        session = self._session_factory()
        try:
            token = session.get(OAuthToken, self.principal)
            if token is None:
                token = OAuthToken(principal=self.principal)
                session.add(token)

            token.access_token = access_token
            token.refresh_token = refresh_token
            token.expires_at = expires_at
            token.scope = scope or None
            session.commit()

        except Exception as e:
            session.rollback()
            logger.error(f"Error saving token: {e}", exc_info=True)
            raise
        finally:
            session.close()

        logger.info(f"Saved token for principal '{self.principal}', expires at {expires_at}")
        return Credential(access_token, refresh_token, expires_at, scope or None)

    def get(self) -> Optional[Credential]:
        """Load the stored credential, or None when not authenticated."""
        session = self._session_factory()
        try:
            token = session.get(OAuthToken, self.principal)
            if token is None:
                return None
            return Credential(
                access_token=token.access_token,
                refresh_token=token.refresh_token,
                expires_at=token.expires_at,
                scope=token.scope,
            )
        finally:
            session.close()

    def delete(self):
        """Forget the stored credential (logout or dead refresh token)."""
        session = self._session_factory()
        try:
            deleted = session.query(OAuthToken).filter_by(principal=self.principal).delete()
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        if deleted:
            logger.info(f"Deleted token for principal '{self.principal}'")
