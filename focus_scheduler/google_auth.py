"""
Google OAuth credential handling for the scheduler.

The caller hands us tokens explicitly (access token + optional refresh token);
nothing here reads ambient storage. A CredentialProvider is the capability
passed to the gateway boundary: it builds google-auth Credentials and knows
how to refresh them once they expire.

IMPORTANT:
- client_id / client_secret come from Settings (environment variables)
- tokens are never logged
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from focus_scheduler.config import Settings
from focus_scheduler.errors import ConfigurationError, GatewayAuthError

logger = logging.getLogger(__name__)

SCOPES: List[str] = ["https://www.googleapis.com/auth/calendar"]
TOKEN_URI = "https://oauth2.googleapis.com/token"


class CredentialProvider:
    """
    Holds one user's Google tokens for the length of a scheduling run.
    """

    def __init__(
        self,
        access_token: Optional[str],
        refresh_token: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
    ):
        self._creds = Credentials(
            token=access_token,
            refresh_token=refresh_token,
            token_uri=TOKEN_URI,
            client_id=client_id,
            client_secret=client_secret,
            scopes=SCOPES,
        )

    @classmethod
    def from_settings(cls, settings: Settings, access_token: str, refresh_token: Optional[str] = None):
        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
        )

    @property
    def access_token(self) -> Optional[str]:
        return self._creds.token

    @property
    def can_refresh(self) -> bool:
        return bool(self._creds.refresh_token)

    def credentials(self) -> Credentials:
        return self._creds

    def refresh(self) -> str:
        """
        Exchange the refresh token for a new access token.

        Raises:
            GatewayAuthError: no refresh token, or Google refused the refresh.
        """
        if not self.can_refresh:
            raise GatewayAuthError("Access token expired and no refresh token is available")
        try:
            self._creds.refresh(Request())
        except RefreshError as e:
            raise GatewayAuthError(f"Failed to refresh Google access token: {e}") from e
        logger.info("Google access token refreshed")
        return self._creds.token


def get_calendar_service(credentials: Credentials):
    """
    Return a Google Calendar API client for the given credentials.
    """
    return build("calendar", "v3", credentials=credentials, cache_discovery=False)


def refresh_access_token(refresh_token: str, settings: Settings) -> Dict[str, Any]:
    """
    Refresh an access token on behalf of a client that cannot hold the client secret.

    Returns:
        {"access_token": "...", "expires_in": seconds or None}
    """
    if not settings.google_client_id or not settings.google_client_secret:
        raise ConfigurationError("GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET are not configured")

    provider = CredentialProvider.from_settings(settings, access_token=None, refresh_token=refresh_token)
    token = provider.refresh()

    expires_in = None
    expiry = provider.credentials().expiry
    if expiry is not None:
        # google-auth stores expiry as naive UTC
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        expires_in = max(0, int((expiry - now).total_seconds()))

    return {"access_token": token, "expires_in": expires_in}
