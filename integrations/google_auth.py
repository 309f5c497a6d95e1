import logging
import threading
from datetime import timedelta
from typing import Optional

import httpx

from utils.clock import utcnow

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"


class GoogleAuthError(Exception):
    pass


class GoogleTokenProvider:
    """
    Access tokens for the Sheets and Calendar APIs, minted from a long-lived
    OAuth refresh token and cached until five minutes before expiry.
    """

    def __init__(self, client_id: str, client_secret: str, refresh_token: str, timeout: float = 10.0):
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.timeout = timeout
        self._access_token: Optional[str] = None
        self._expires_at = None
        self._lock = threading.Lock()

    def token(self) -> str:
        with self._lock:
            if self._access_token and self._expires_at > utcnow() + timedelta(minutes=5):
                return self._access_token

            try:
                response = httpx.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "refresh_token": self.refresh_token,
                        "grant_type": "refresh_token",
                    },
                    timeout=self.timeout,
                )
            except httpx.HTTPError as exc:
                raise GoogleAuthError(f"token refresh failed: {exc}") from exc

            if response.status_code != 200:
                raise GoogleAuthError(f"token refresh failed: {response.status_code} {response.text}")

            tokens = response.json()
            access_token = tokens.get("access_token")
            if not access_token:
                raise GoogleAuthError("no access token in refresh response")

            self._access_token = access_token
            self._expires_at = utcnow() + timedelta(seconds=int(tokens.get("expires_in", 3600)))
            logger.info("Google access token refreshed")
            return access_token

    def headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token()}"}
