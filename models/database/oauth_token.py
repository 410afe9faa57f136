"""OAuth token model for storing WHOOP authentication tokens."""

import time
from typing import Optional
from sqlalchemy import Column, Integer, String, Text
from models.database.base import Base, TimestampMixin

DEFAULT_PRINCIPAL = "default"


class OAuthToken(Base, TimestampMixin):
    """
    WHOOP OAuth2 credential, one row per principal.

    Single-user deployments only ever use the ``default`` principal; the
    session-keyed variant stores one row per browser session id. Both tokens
    are rotated together by the upstream on every refresh, so they always
    live in the same row and are written in the same transaction.
    """

    __tablename__ = "oauth_tokens"

    # Primary key (principal / session id)
    principal = Column(String(128), primary_key=True, default=DEFAULT_PRINCIPAL)

    # OAuth tokens
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=False)
    expires_at = Column(Integer, nullable=False)  # epoch seconds

    # Token metadata
    token_type = Column(String(20), default="Bearer")
    scope = Column(String(255), nullable=True)  # Granted permissions

    def __repr__(self) -> str:
        return f"<OAuthToken(principal='{self.principal}', expires_at={self.expires_at})>"

    def is_expired(self, now: Optional[float] = None) -> bool:
        """Check if the access token is expired."""
        now = time.time() if now is None else now
        return now >= self.expires_at

    def needs_refresh(self, buffer_seconds: int = 60, now: Optional[float] = None) -> bool:
        """
        Check if the token needs to be refreshed.

        Args:
            buffer_seconds: Refresh this many seconds before actual expiry
            now: Current epoch seconds (defaults to wall clock)

        Returns:
            True if token should be refreshed
        """
        now = time.time() if now is None else now
        return self.expires_at <= now + buffer_seconds
